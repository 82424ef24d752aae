from __future__ import annotations

import textwrap

import pytest

from formfill.automation.fill_form import handle_message, perform_autofill
from formfill.pipeline.profile import InvalidInvocation, Profile
from formfill.schemas import FILL_FAILED, NO_MATCH, UNRESOLVED_SELECTION

EVENT_FORM = textwrap.dedent(
    """
    <form id="wrapper">
      <div class="form-group">
        <label for="email">Email</label>
        <input id="email" name="email" type="email" />
      </div>
    </form>
    <script>
      window.__events = [];
      const wrapper = document.getElementById('wrapper');
      ['input', 'change', 'keydown', 'keyup', 'blur'].forEach((type) => {
        wrapper.addEventListener(type, (event) => window.__events.push(event.type));
      });
    </script>
    """
)

CONTROLLED_FORM = textwrap.dedent(
    """
    <div class="form-group">
      <label for="email">Email</label>
      <input id="email" name="email" type="email" />
    </div>
    <script>
      const el = document.getElementById('email');
      el.addEventListener('input', () => { el.value = ''; });
    </script>
    """
)


def test_fill_dispatches_bubbling_events_in_order(page) -> None:
    page.set_content(EVENT_FORM)
    result = perform_autofill(page, Profile.from_payload({"email": "ravi@example.com"}), settle_ms=0)
    assert result.filled_count == 1
    assert result.message == "Success"
    assert page.input_value("#email") == "ravi@example.com"
    assert page.evaluate("() => window.__events") == ["input", "change", "keydown", "keyup", "blur"]


def test_reverting_control_is_reported_as_fill_failure(page) -> None:
    page.set_content(CONTROLLED_FORM)
    result = perform_autofill(page, Profile.from_payload({"email": "ravi@example.com"}), settle_ms=0)
    assert result.filled_count == 0
    assert result.message == "Fill failed"
    assert len(result.failures) == 1
    failure = result.failures[0]
    assert failure.kind == FILL_FAILED
    assert failure.semantic_key == "email"
    assert failure.expected == "ravi@example.com"
    assert failure.actual == ""


def test_bare_named_inputs_fill(page) -> None:
    page.set_content('<form><input name="full_name" /><input name="user_email" /></form>')
    result = perform_autofill(
        page, Profile.from_payload({"fullName": "Jane Doe", "email": "jane@x.com"}), settle_ms=0
    )
    assert result.filled_count == 2
    assert [(field.semantic_key, field.state) for field in result.fields] == [
        ("fullName", "filled"),
        ("email", "filled"),
    ]
    assert page.input_value("input[name=full_name]") == "Jane Doe"
    assert page.input_value("input[name=user_email]") == "jane@x.com"


def test_gender_abbreviation_selects_male(page) -> None:
    page.set_content(
        """
        <label for="g">Gender</label>
        <select id="g"><option>Male</option><option>Female</option><option>Other</option></select>
        """
    )
    page.select_option("#g", "Other")
    result = perform_autofill(page, Profile.from_payload({"gender": "M"}), settle_ms=0)
    assert result.filled_count == 1
    assert page.input_value("#g") == "Male"


def test_fixture_form_fill(page, form_fixture_url: str, student_profile) -> None:
    page.goto(form_fixture_url)
    result = perform_autofill(page, Profile.from_payload(student_profile), settle_ms=0)

    assert page.input_value("#full_name") == "Ravi Kumar"
    assert page.input_value("#user_email") == "ravi.kumar@example.com"
    assert page.input_value("#phone") == "9876543210"
    assert page.input_value("input.whsOnd") == "22BCE7123"
    assert page.input_value("#gender") == "male"
    assert page.is_checked("input[name=sex][value=M]")
    assert page.input_value("#dob") == "2002-11-05"
    assert page.input_value("#hobby") == ""

    assert result.filled_count == 7
    assert result.message == "Success"
    assert [failure.kind for failure in result.failures] == [NO_MATCH, UNRESOLVED_SELECTION]


def test_unresolved_campus_leaves_select_untouched(page, form_fixture_url: str, student_profile) -> None:
    page.goto(form_fixture_url)
    result = perform_autofill(page, Profile.from_payload(student_profile), settle_ms=0)
    assert page.input_value("#campus") == ""
    unresolved = [failure for failure in result.failures if failure.kind == UNRESOLVED_SELECTION]
    assert len(unresolved) == 1
    assert unresolved[0].semantic_key == "campus"
    assert unresolved[0].expected == "VIT-AP"
    assert unresolved[0].reason == "no_option_match"


def test_campus_fallback_selects_variant(page) -> None:
    page.set_content(
        """
        <div class="form-group">
          <label for="campus">Campus</label>
          <select id="campus" name="campus">
            <option value="">Select</option>
            <option value="vlr">VIT Vellore</option>
            <option value="amr">VIT-Amaravathi</option>
          </select>
        </div>
        """
    )
    result = perform_autofill(page, Profile.from_payload({"campus": "VIT-AP"}), settle_ms=0)
    assert result.filled_count == 1
    assert page.input_value("#campus") == "amr"
    assert result.fields[0].reason == "matched_fallback"


def test_no_fields_and_no_matches(page) -> None:
    page.set_content("<p>Thanks for visiting</p>")
    result = perform_autofill(page, Profile.from_payload({"email": "ravi@example.com"}))
    assert result.filled_count == 0
    assert result.message == "No fields found"

    page.set_content('<div class="form-group"><label for="q">Favourite colour</label><input id="q" /></div>')
    result = perform_autofill(page, Profile.from_payload({"email": "ravi@example.com"}))
    assert result.filled_count == 0
    assert result.message == "No matches found"
    assert result.failures[0].kind == NO_MATCH
    assert result.failures[0].search_text == "q favourite colour"


def test_handle_message_wraps_result(page) -> None:
    page.set_content(EVENT_FORM)
    response = handle_message(page, {"action": "autofill", "data": {"email": "ravi@example.com"}}, settle_ms=0)
    assert response["success"] is True
    assert response["result"]["filledCount"] == 1
    assert response["result"]["failures"] == []
    assert "error" not in response


def test_handle_message_rejects_unknown_action(page) -> None:
    page.set_content(EVENT_FORM)
    with pytest.raises(InvalidInvocation):
        handle_message(page, {"action": "submit", "data": {}})
    assert page.input_value("#email") == ""


def test_padded_email_counts_as_filled(page) -> None:
    page.set_content(
        '<div class="form-group"><label for="email">Email</label><input id="email" type="email" /></div>'
    )
    result = perform_autofill(page, Profile.from_payload({"email": "  jane@x.com "}), settle_ms=0)
    assert result.filled_count == 1
    assert result.failures == []
    assert page.input_value("#email") == "jane@x.com"


def test_text_input_still_needs_exact_value(page) -> None:
    page.set_content(
        """
        <div class="form-group"><label for="name">Full Name</label><input id="name" type="text" /></div>
        <script>
          const el = document.getElementById('name');
          el.addEventListener('input', () => { el.value = el.value.toUpperCase(); });
        </script>
        """
    )
    result = perform_autofill(page, Profile.from_payload({"fullName": "Jane Doe"}), settle_ms=0)
    assert result.filled_count == 0
    assert result.failures[0].kind == FILL_FAILED
    assert result.failures[0].actual == "JANE DOE"


def test_unparseable_date_is_not_written(page) -> None:
    page.set_content(
        '<div class="form-group"><label for="dob">Date of Birth</label><input id="dob" type="date" /></div>'
    )
    result = perform_autofill(page, Profile.from_payload({"dateOfBirth": "not a date"}), settle_ms=0)
    assert result.filled_count == 0
    failure = result.failures[0]
    assert failure.kind == FILL_FAILED
    assert failure.semantic_key == "dateOfBirth"
    assert failure.reason == "invalid_date"
    assert page.input_value("#dob") == ""


def test_no_match_suggests_custom_field_from_label(page) -> None:
    page.set_content(
        '<div class="form-group"><label for="blood">Blood group</label><input id="blood" name="blood" /></div>'
    )
    result = perform_autofill(page, Profile.from_payload({"email": "ravi@example.com"}), settle_ms=0)
    assert result.message == "No matches found"
    assert result.failures[0].reason == "Add a custom field named 'Blood group'"


def test_empty_profile_is_noted_in_run_log(page, tmp_path) -> None:
    page.set_content(EVENT_FORM)
    result = perform_autofill(page, Profile.from_payload({"email": ""}), run_dir=tmp_path)
    assert result.message == "No matches found"
    assert "Profile has no values" in (tmp_path / "run.log").read_text()
