from __future__ import annotations

import json

from fastapi.testclient import TestClient

from formfill import main
from formfill.field_registry import FIELD_ORDER


def test_health() -> None:
    client = TestClient(main.app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_field_registry_endpoint() -> None:
    client = TestClient(main.app)
    payload = client.get("/field_registry").json()
    assert payload["order"] == FIELD_ORDER
    assert {field["key"] for field in payload["fields"]} >= {"fullName", "email", "gender", "campus"}


def test_autofill_rejects_unknown_action(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main, "RUNS_DIR", tmp_path)
    client = TestClient(main.app)
    response = client.post("/autofill", json={"action": "submit", "data": {"email": "a@b.co"}})
    assert response.status_code == 400
    assert response.json() == {"success": False, "error": "Unknown action: 'submit'"}
    assert list(tmp_path.iterdir()) == []


def test_autofill_rejects_missing_profile(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main, "RUNS_DIR", tmp_path)
    client = TestClient(main.app)
    response = client.post("/autofill", json={"action": "autofill"})
    assert response.status_code == 400
    assert response.json()["error"] == "Missing profile data"


def test_autofill_rejects_malformed_payload(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main, "RUNS_DIR", tmp_path)
    client = TestClient(main.app)
    response = client.post("/autofill", json={"data": {"email": "a@b.co"}})
    assert response.status_code == 400
    assert response.json()["success"] is False


def test_autofill_runs_fill_and_writes_summary(tmp_path, monkeypatch) -> None:
    monkeypatch.setattr(main, "RUNS_DIR", tmp_path)
    calls = []

    def fake_fill_form(data, run_dir, form_url, headless, slow_mo_ms, keep_open_ms, debug):
        calls.append({"data": data, "run_dir": run_dir, "form_url": form_url, "debug": debug})
        return {
            "success": True,
            "result": {"filledCount": 1, "failures": [], "message": "Success", "fields": []},
            "trace_path": str(run_dir / "trace.zip"),
        }

    monkeypatch.setattr(main, "fill_form", fake_fill_form)
    client = TestClient(main.app)
    response = client.post(
        "/autofill",
        json={
            "action": "autofill",
            "data": {"email": "a@b.co"},
            "form_url": "https://forms.example.com/apply",
            "debug": True,
        },
    )
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["result"]["filledCount"] == 1

    run_dir = tmp_path / payload["run_id"]
    assert calls == [
        {"data": {"email": "a@b.co"}, "run_dir": run_dir, "form_url": "https://forms.example.com/apply", "debug": True}
    ]
    summary = json.loads((run_dir / "autofill_summary.json").read_text())
    assert summary["result"]["message"] == "Success"
    assert "Autofill complete. success=True filled=1 failures=0" in (run_dir / "run.log").read_text()
