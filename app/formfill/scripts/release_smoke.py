from __future__ import annotations

import os
from pathlib import Path
from typing import Dict

from fastapi.testclient import TestClient

from formfill.config import FORM_URL_ENV
from formfill.main import app
from formfill.pipeline.profile import AUTOFILL_ACTION
from formfill.scripts.run_sample import SAMPLE_PROFILE

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "tests" / "fixtures"
LOCAL_FORM_PATH = FIXTURES_DIR / "form.html"


def _form_fixture_url() -> str:
    if not LOCAL_FORM_PATH.exists():
        raise FileNotFoundError(f"Local form fixture missing: {LOCAL_FORM_PATH}")
    return LOCAL_FORM_PATH.resolve().as_uri()


def _outcome(summary: Dict) -> Dict:
    result = summary.get("result") or {}
    return {
        "filledCount": result.get("filledCount"),
        "failures": result.get("failures"),
        "fields": [(field["control"], field["semanticKey"], field["state"]) for field in result.get("fields", [])],
    }


def run_release_smoke() -> Dict:
    form_url = _form_fixture_url()
    os.environ[FORM_URL_ENV] = form_url
    payload = {"action": AUTOFILL_ACTION, "data": SAMPLE_PROFILE}

    client = TestClient(app)
    assert client.get("/health").json() == {"status": "ok"}

    autofill_resp_1 = client.post("/autofill", json=payload)
    assert autofill_resp_1.status_code == 200
    summary_1 = autofill_resp_1.json()
    assert summary_1["success"] is True
    assert Path(summary_1["trace_path"]).exists()
    assert form_url in summary_1["final_url"]
    assert summary_1["result"]["filledCount"] >= 5

    # A second invocation rediscovers the page and must land on the same assignment.
    autofill_resp_2 = client.post("/autofill", json=payload)
    assert autofill_resp_2.status_code == 200
    summary_2 = autofill_resp_2.json()
    assert _outcome(summary_1) == _outcome(summary_2)
    assert Path(summary_2["trace_path"]).exists()

    return {
        "autofill_run_ids": [summary_1["run_id"], summary_2["run_id"]],
        "filled_count": summary_1["result"]["filledCount"],
        "form_url": form_url,
    }


if __name__ == "__main__":
    print(run_release_smoke())
