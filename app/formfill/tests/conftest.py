import sys
from pathlib import Path
from typing import Dict

import pytest
from playwright.sync_api import sync_playwright

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


FIXTURES_DIR = Path(__file__).resolve().parent / "fixtures"
LOCAL_FORM_PATH = FIXTURES_DIR / "form.html"


@pytest.fixture(scope="session")
def form_fixture_url() -> str:
    if not LOCAL_FORM_PATH.exists():
        pytest.fail(f"Local form fixture missing at {LOCAL_FORM_PATH}")
    return LOCAL_FORM_PATH.resolve().as_uri()


@pytest.fixture
def student_profile() -> Dict[str, object]:
    return {
        "fullName": "Ravi Kumar",
        "email": "ravi.kumar@example.com",
        "phone": "9876543210",
        "studentNumber": "22BCE7123",
        "gender": "M",
        "campus": "VIT-AP",
        "dateOfBirth": "2002-11-05",
        "linkedinUrl": "",
        "customFields": {},
    }


@pytest.fixture(scope="module")
def browser():
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=True)
        yield browser
        browser.close()


@pytest.fixture
def page(browser):
    context = browser.new_context()
    page = context.new_page()
    yield page
    context.close()
