from __future__ import annotations

import logging
import time
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from ..config import CONFIG, resolve_form_url
from ..field_registry import Taxonomy, load_taxonomy
from ..pipeline.matcher import (
    FILL_FAILED,
    FILLED,
    UNRESOLVED,
    AssignmentEntry,
    CandidateControl,
    build_assignment,
)
from ..pipeline.normalize import collapse_whitespace, normalize_date
from ..pipeline.options import resolve_option
from ..pipeline.profile import AUTOFILL_ACTION, Profile, parse_autofill_message
from ..schemas import (
    FILL_FAILED as FAILURE_FILL_FAILED,
    NO_MATCH,
    UNRESOLVED_SELECTION,
    AutofillResponse,
    AutofillResult,
    FieldResult,
    FillFailure,
)
from .discovery import discover_controls

LOGGER = logging.getLogger(__name__)

# Value sanitization for these types drops surrounding whitespace on assignment.
TRIMMED_INPUT_TYPES = {"email", "url"}

# input, change, keydown, keyup, blur: once each, bubbling, in this order.
_DISPATCH_JS = """
    const dispatchSequence = (node) => {
      node.dispatchEvent(new Event('input', { bubbles: true }));
      node.dispatchEvent(new Event('change', { bubbles: true }));
      node.dispatchEvent(new KeyboardEvent('keydown', { bubbles: true }));
      node.dispatchEvent(new KeyboardEvent('keyup', { bubbles: true }));
      node.dispatchEvent(new FocusEvent('blur', { bubbles: true }));
    };
"""

_RADIO_GROUP_JS = """
    const radioGroup = (node) => {
      const name = node.getAttribute('name');
      if (!name) return [node];
      const scope = node.form || document;
      return Array.from(scope.querySelectorAll('input[type="radio"]')).filter((r) => r.getAttribute('name') === name);
    };
"""

SET_TEXT_JS = (
    "(el, value) => {"
    + _DISPATCH_JS
    + """
    const tag = el.tagName.toLowerCase();
    if (tag === 'input' || tag === 'textarea') {
      const proto = tag === 'textarea' ? HTMLTextAreaElement.prototype : HTMLInputElement.prototype;
      const descriptor = Object.getOwnPropertyDescriptor(proto, 'value');
      if (descriptor && descriptor.set) {
        descriptor.set.call(el, value);
      } else {
        el.value = value;
      }
    } else {
      el.textContent = value;
    }
    dispatchSequence(el);
}"""
)

SELECT_OPTION_JS = (
    "(el, index) => {"
    + _DISPATCH_JS
    + """
    const option = el.options[index];
    if (!option) return false;
    const descriptor = Object.getOwnPropertyDescriptor(HTMLSelectElement.prototype, 'value');
    if (descriptor && descriptor.set) {
      descriptor.set.call(el, option.value);
    } else {
      el.value = option.value;
    }
    option.selected = true;
    dispatchSequence(el);
    return true;
}"""
)

CHECK_RADIO_JS = (
    "(el, index) => {"
    + _DISPATCH_JS
    + _RADIO_GROUP_JS
    + """
    const radio = radioGroup(el)[index];
    if (!radio) return false;
    radio.focus();
    radio.checked = true;
    dispatchSequence(radio);
    return true;
}"""
)

READ_VALUE_JS = (
    "(el) => {"
    + _RADIO_GROUP_JS
    + """
    const tag = el.tagName.toLowerCase();
    if (tag === 'select') return el.value;
    if (tag === 'input' && (el.getAttribute('type') || '').toLowerCase() === 'radio') {
      const checked = radioGroup(el).find((r) => r.checked);
      return checked ? checked.value : null;
    }
    if (tag === 'input' || tag === 'textarea') return el.value;
    return (el.innerText || el.textContent || '').trim();
}"""
)


def _append_run_log(run_dir: Optional[Path], message: str) -> None:
    if run_dir is None:
        return
    timestamp = datetime.now(timezone.utc).isoformat()
    with (run_dir / "run.log").open("a") as f:
        f.write(f"[{timestamp}] {message}\n")


def _truncate(value: Optional[str], limit: int = 30) -> str:
    if value is None:
        return ""
    text = str(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "…"


def _read_back(control: CandidateControl) -> Optional[str]:
    value = control.handle.evaluate(READ_VALUE_JS)
    return None if value is None else str(value)


def _matches_expected(intended: str, actual: Optional[str], input_type: str) -> bool:
    if actual is None:
        return False
    if input_type == "contenteditable":
        return collapse_whitespace(actual) == collapse_whitespace(intended)
    if input_type in TRIMMED_INPUT_TYPES:
        return actual.strip() == intended.strip()
    return actual == intended


def _fill_enumerated(page, entry: AssignmentEntry, taxonomy: Taxonomy, settle_ms: int) -> None:
    control = entry.control
    option, reason = resolve_option(control.options, entry.value, taxonomy.fallback_groups(entry.key))
    if option is None:
        LOGGER.info(
            "No option for %s=%r on %s (options: %s)",
            entry.key,
            _truncate(entry.value),
            control.describe(),
            [f"{opt.get('label')} ({opt.get('value')})" for opt in control.options],
        )
        entry.transition(UNRESOLVED, reason=reason, actual=control.value)
        return
    script = SELECT_OPTION_JS if control.input_type == "select" else CHECK_RADIO_JS
    control.handle.focus()
    if not control.handle.evaluate(script, option.get("index")):
        entry.transition(FILL_FAILED, reason="option_missing")
        return
    page.wait_for_timeout(settle_ms)
    actual = _read_back(control)
    expected = str(option.get("value") or "")
    if actual != expected:
        entry.transition(FILL_FAILED, reason="readback_mismatch", actual=actual)
        return
    LOGGER.info("Selected %r for %s via %s", option.get("label"), control.describe(), reason)
    entry.transition(FILLED, reason=reason, actual=actual)


def _fill_text(page, entry: AssignmentEntry, settle_ms: int) -> None:
    control = entry.control
    intended = entry.value
    if control.input_type == "date":
        intended = normalize_date(entry.value)
        if intended is None:
            entry.transition(FILL_FAILED, reason="invalid_date")
            return
    control.handle.focus()
    control.handle.evaluate(SET_TEXT_JS, intended)
    page.wait_for_timeout(settle_ms)
    actual = _read_back(control)
    if not _matches_expected(intended, actual, control.input_type):
        entry.transition(FILL_FAILED, reason="readback_mismatch", actual=actual)
        return
    entry.transition(FILLED, actual=actual)


def fill_control(
    page,
    entry: AssignmentEntry,
    taxonomy: Optional[Taxonomy] = None,
    settle_ms: Optional[int] = None,
) -> AssignmentEntry:
    """Apply one assignment entry and verify it stuck; failures are recorded on the entry."""
    taxonomy = taxonomy or load_taxonomy(CONFIG.matching.taxonomy_path)
    settle_ms = CONFIG.autofill.settle_ms if settle_ms is None else settle_ms
    try:
        if entry.control.is_enumerated:
            _fill_enumerated(page, entry, taxonomy, settle_ms)
        else:
            _fill_text(page, entry, settle_ms)
    except PlaywrightError as exc:
        LOGGER.warning("Failed to fill %s: %s", entry.control.describe(), exc)
        entry.transition(FILL_FAILED, reason=f"fill_error:{exc}")
    return entry


def _no_match_suggestion(control: CandidateControl) -> str:
    label = control.primary_label
    if label:
        return f"Add a custom field named '{_truncate(label, 60)}'"
    return "Add a custom field whose label appears in this text"


def _failure_for(entry: AssignmentEntry) -> FillFailure:
    return FillFailure(
        kind=UNRESOLVED_SELECTION if entry.state == UNRESOLVED else FAILURE_FILL_FAILED,
        control=entry.control.describe(),
        semantic_key=entry.key,
        search_text=entry.control.search_text,
        reason=entry.reason,
        expected=entry.value,
        actual=entry.actual,
    )


def _field_result(entry: AssignmentEntry) -> FieldResult:
    return FieldResult(
        control=entry.control.describe(),
        semantic_key=entry.key,
        source=entry.match.source,
        confidence=round(entry.match.confidence, 3),
        score=entry.match.score,
        matched_keywords=entry.match.matched_keywords,
        state=entry.state,
        reason=entry.reason,
    )


def perform_autofill(
    page,
    profile: Profile,
    taxonomy: Optional[Taxonomy] = None,
    settle_ms: Optional[int] = None,
    debug: Optional[bool] = None,
    run_dir: Optional[Path] = None,
) -> AutofillResult:
    """Discover, match and fill the current page once, from a fresh snapshot."""
    taxonomy = taxonomy or load_taxonomy(CONFIG.matching.taxonomy_path)
    debug = CONFIG.matching.debug if debug is None else debug

    controls = discover_controls(page)
    _append_run_log(run_dir, f"Candidate controls discovered: {len(controls)}")
    if not controls:
        return AutofillResult(filled_count=0, message="No fields found")

    assignment = build_assignment(controls, profile, taxonomy, debug=debug)
    if profile.is_empty():
        _append_run_log(run_dir, "Profile has no values; every control will be unmatched")
    failures: List[FillFailure] = []
    for control in assignment.unmatched:
        _append_run_log(run_dir, f"No match for {control.describe()} search_text='{control.search_text}'")
        failures.append(
            FillFailure(
                kind=NO_MATCH,
                control=control.describe(),
                search_text=control.search_text,
                reason=_no_match_suggestion(control),
            )
        )

    filled_count = 0
    for entry in assignment.entries:
        fill_control(page, entry, taxonomy, settle_ms)
        _append_run_log(
            run_dir,
            f"{entry.control.describe()} -> {entry.key} confidence={entry.match.confidence:.2f} "
            f"state={entry.state} value='{_truncate(entry.value)}'",
        )
        if entry.state == FILLED:
            filled_count += 1
        else:
            failures.append(_failure_for(entry))

    if not assignment.entries:
        message = "No matches found"
    elif filled_count:
        message = "Success"
    else:
        message = "Fill failed"
    LOGGER.info("Autofill finished: filled %d of %d matched controls", filled_count, len(assignment.entries))
    return AutofillResult(
        filled_count=filled_count,
        failures=failures,
        message=message,
        fields=[_field_result(entry) for entry in assignment.entries],
    )


def handle_message(
    page,
    message: Dict[str, object],
    taxonomy: Optional[Taxonomy] = None,
    settle_ms: Optional[int] = None,
    debug: Optional[bool] = None,
    run_dir: Optional[Path] = None,
) -> Dict[str, object]:
    """``{action: 'autofill', data: Profile}`` -> ``{success, result | error}``.

    Raises ``InvalidInvocation`` for malformed commands; everything else is reported.
    """
    profile = parse_autofill_message(message)
    try:
        result = perform_autofill(page, profile, taxonomy, settle_ms, debug, run_dir)
    except PlaywrightError as exc:
        LOGGER.warning("Autofill error: %s", exc)
        return AutofillResponse(success=False, error=str(exc)).to_payload()
    return AutofillResponse(success=True, result=result).to_payload()


def fill_form(
    profile_data: Dict[str, object],
    run_dir: Path,
    form_url: Optional[str] = None,
    headless: Optional[bool] = None,
    slow_mo_ms: Optional[int] = None,
    keep_open_ms: Optional[int] = None,
    debug: Optional[bool] = None,
) -> Dict[str, object]:
    message = {"action": AUTOFILL_ACTION, "data": profile_data}
    parse_autofill_message(message)

    run_dir.mkdir(parents=True, exist_ok=True)
    trace_path = run_dir / "trace.zip"
    start_time = time.perf_counter()

    autofill_cfg = CONFIG.autofill
    headless = autofill_cfg.headless if headless is None else headless
    slow_mo_ms = autofill_cfg.slow_mo_ms if slow_mo_ms is None else slow_mo_ms
    keep_open_ms = autofill_cfg.keep_open_ms if keep_open_ms is None else keep_open_ms
    target_url = resolve_form_url(form_url)
    _append_run_log(
        run_dir,
        "Autofill start. "
        f"Form URL: {target_url} | headless={headless} | slow_mo_ms={slow_mo_ms} | keep_open_ms={keep_open_ms}",
    )

    response: Dict[str, object] = {}
    final_url = ""
    with sync_playwright() as playwright:
        browser = playwright.chromium.launch(headless=headless, slow_mo=slow_mo_ms)
        context = browser.new_context()
        context.tracing.start(screenshots=True, snapshots=True, sources=True)
        page = context.new_page()
        try:
            page.set_default_timeout(15000)
            try:
                page.goto(target_url, wait_until="domcontentloaded", timeout=45000)
            except PlaywrightError as exc:
                LOGGER.warning("Navigation to %s failed: %s", target_url, exc)
                response = AutofillResponse(success=False, error=f"navigation_failed:{exc}").to_payload()
            if not response:
                try:
                    page.wait_for_load_state("networkidle", timeout=10000)
                except PlaywrightTimeoutError:
                    _append_run_log(run_dir, "Network did not go idle; continuing")
                response = handle_message(page, message, debug=debug, run_dir=run_dir)
            final_url = page.url
            if keep_open_ms > 0 and not headless:
                _append_run_log(run_dir, f"Keeping browser open for {keep_open_ms}ms")
                page.wait_for_timeout(keep_open_ms)
        finally:
            try:
                context.tracing.stop(path=str(trace_path))
            except PlaywrightError as exc:
                LOGGER.warning("Trace capture failed: %s", exc)
            context.close()
            browser.close()

    result = response.get("result") if isinstance(response.get("result"), dict) else {}
    failures = result.get("failures") or []
    if failures:
        reason_counts = Counter(str(failure.get("kind")) for failure in failures)
        _append_run_log(run_dir, f"Failure kinds: {dict(reason_counts)}")
    duration_ms = int((time.perf_counter() - start_time) * 1000)
    _append_run_log(
        run_dir,
        f"Autofill complete. Filled {result.get('filledCount', 0)}; Failures {len(failures)}; "
        f"Runtime {duration_ms}ms; Trace: {trace_path}",
    )

    summary = dict(response)
    summary.update(
        {
            "duration_ms": duration_ms,
            "trace_path": str(trace_path),
            "final_url": final_url,
            "form_url": target_url,
        }
    )
    return summary
