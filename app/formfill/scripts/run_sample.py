from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, Optional

import requests

from formfill.automation.fill_form import fill_form
from formfill.config import CONFIG, resolve_form_url
from formfill.pipeline.profile import AUTOFILL_ACTION

FIXTURES_DIR = Path(__file__).resolve().parents[1] / "tests" / "fixtures"

SAMPLE_PROFILE: Dict[str, object] = {
    "fullName": "Asha Reddy",
    "email": "asha.reddy@example.com",
    "phone": "9876543210",
    "studentNumber": "22BCE7001",
    "gender": "F",
    "campus": "VIT-AP",
    "dateOfBirth": "2003-08-14",
    "customFields": {},
}


def _fixture_form_uri() -> str:
    form_path = FIXTURES_DIR / "form.html"
    if not form_path.exists():
        raise FileNotFoundError(f"Local form fixture missing: {form_path}")
    return form_path.resolve().as_uri()


def _load_profile(path: Optional[str]) -> Dict[str, object]:
    if not path:
        return dict(SAMPLE_PROFILE)
    return json.loads(Path(path).read_text())


def main() -> None:
    parser = argparse.ArgumentParser(description="Fill a form once with a saved profile.")
    parser.add_argument("--profile", help="JSON file holding the profile (defaults to a sample profile)")
    parser.add_argument("--form-url", help="Form to fill (defaults to FORMFILL_FORM_URL, then the local fixture)")
    parser.add_argument("--headed", action="store_true", help="Show the browser window")
    parser.add_argument("--keep-open-ms", type=int, default=0)
    parser.add_argument("--debug", action="store_true", help="Log per-control scores")
    parser.add_argument("--api", help="Base URL of a running server; posts to /autofill instead of filling locally")
    args = parser.parse_args()

    profile = _load_profile(args.profile)
    form_url = args.form_url or resolve_form_url(None)
    if form_url == CONFIG.autofill.form_url:
        form_url = _fixture_form_uri()

    if args.api:
        resp = requests.post(
            args.api.rstrip("/") + "/autofill",
            json={"action": AUTOFILL_ACTION, "data": profile, "form_url": form_url, "debug": args.debug},
            timeout=120,
        )
        resp.raise_for_status()
        print(json.dumps(resp.json(), indent=2))
        return

    run_dir = CONFIG.runs_dir / "sample"
    summary = fill_form(
        profile,
        run_dir,
        form_url=form_url,
        headless=not args.headed,
        keep_open_ms=args.keep_open_ms,
        debug=args.debug,
    )
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
