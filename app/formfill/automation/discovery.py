from __future__ import annotations

import logging
from typing import Dict, List, Optional, Set, Tuple

from ..config import CONFIG
from ..pipeline.matcher import CandidateControl
from ..pipeline.normalize import build_search_text
from .labels import extract_label_set

LOGGER = logging.getLogger(__name__)

CONTROL_SELECTOR = (
    "input, textarea, select, [contenteditable=''], [contenteditable='true'], [role='textbox']"
)

# Anything else (hidden, submit, checkbox, password, file, ...) carries no profile data.
TEXT_INPUT_TYPES = {"", "text", "email", "tel", "url", "number", "search", "date"}

SNAPSHOT_JS = """(el, textTypes) => {
    const tag = el.tagName.toLowerCase();
    const rendered = (node) => {
      const rect = node.getBoundingClientRect();
      if (rect.width === 0 && rect.height === 0) return false;
      const style = window.getComputedStyle(node);
      return style.display !== 'none' && style.visibility !== 'hidden';
    };
    const usable = (node) => !node.disabled && !node.readOnly && rendered(node);
    const attrs = {
      name: el.getAttribute('name') || '',
      id: el.getAttribute('id') || '',
      placeholder: el.getAttribute('placeholder') || '',
      aria_label: el.getAttribute('aria-label') || '',
    };
    const optionLabel = (radio) => {
      const id = radio.id || '';
      if (id) {
        const labelEl = document.querySelector(`label[for="${CSS.escape(id)}"]`);
        if (labelEl && labelEl.innerText) return labelEl.innerText.trim();
      }
      const parentLabel = radio.closest('label');
      if (parentLabel && parentLabel.innerText) return parentLabel.innerText.trim();
      return radio.value || '';
    };

    if (tag === 'select') {
      const options = Array.from(el.options).map((o, index) => ({
        index, value: o.value, label: (o.label || o.text || '').trim(), disabled: o.disabled,
      }));
      if (el.disabled || !rendered(el)) return { fillable: false, reason: 'not_usable' };
      if (!options.length) return { fillable: false, reason: 'empty_select' };
      return { fillable: true, tag, type: 'select', value: el.value || '', attrs, options };
    }

    if (tag === 'textarea') {
      if (!usable(el)) return { fillable: false, reason: 'not_usable' };
      return { fillable: true, tag, type: 'textarea', value: el.value || '', attrs };
    }

    if (tag === 'input') {
      const type = (el.getAttribute('type') || '').toLowerCase();
      if (type === 'radio') {
        const name = el.getAttribute('name');
        const scope = el.form || document;
        const group = name
          ? Array.from(scope.querySelectorAll('input[type="radio"]')).filter((r) => r.getAttribute('name') === name)
          : [el];
        const live = group.filter(usable);
        if (!live.length) return { fillable: false, reason: 'not_usable' };
        const options = group.map((radio, index) => ({
          index, value: radio.value || '', label: optionLabel(radio), disabled: !usable(radio),
        }));
        const checked = group.find((radio) => radio.checked);
        const formIndex = el.form ? Array.from(document.forms).indexOf(el.form) : -1;
        return {
          fillable: true, tag, type: 'radio', group: name || '', formIndex,
          value: checked ? checked.value || '' : '',
          attrs, options,
        };
      }
      if (!textTypes.includes(type)) return { fillable: false, reason: 'non_data_type' };
      if (!usable(el)) return { fillable: false, reason: 'not_usable' };
      return { fillable: true, tag, type: type || 'text', value: el.value || '', attrs };
    }

    const editable = el.isContentEditable || el.getAttribute('role') === 'textbox';
    if (!editable) return { fillable: false, reason: 'unsupported_input' };
    const parent = el.parentElement;
    if (parent && parent.closest('[contenteditable=""], [contenteditable="true"]')) {
      return { fillable: false, reason: 'nested_editable' };
    }
    if (el.getAttribute('aria-disabled') === 'true' || el.getAttribute('aria-readonly') === 'true' || !rendered(el)) {
      return { fillable: false, reason: 'not_usable' };
    }
    return { fillable: true, tag, type: 'contenteditable', value: (el.innerText || '').trim(), attrs };
}"""


def _snapshot(handle) -> Optional[Dict[str, object]]:
    snapshot = handle.evaluate(SNAPSHOT_JS, sorted(TEXT_INPUT_TYPES))
    if not isinstance(snapshot, dict):
        return None
    return snapshot


def discover_controls(page, label_text_limit: Optional[int] = None) -> List[CandidateControl]:
    """Fillable controls of the current page, in document order.

    Radio groups yield one control, represented by their first radio.
    """
    limit = label_text_limit if label_text_limit is not None else CONFIG.matching.label_text_limit
    controls: List[CandidateControl] = []
    seen_groups: Set[Tuple[object, str]] = set()
    skipped: Dict[str, int] = {}
    for handle in page.query_selector_all(CONTROL_SELECTOR):
        snapshot = _snapshot(handle)
        if not snapshot or not snapshot.get("fillable"):
            reason = str((snapshot or {}).get("reason") or "unknown")
            skipped[reason] = skipped.get(reason, 0) + 1
            continue
        input_type = str(snapshot.get("type") or "text")
        if input_type == "radio":
            name = str(snapshot.get("group") or "")
            # Same-named radios in different forms are separate groups.
            group = (snapshot.get("formIndex"), name)
            if name and group in seen_groups:
                continue
            seen_groups.add(group)
        attributes = {key: str(value) for key, value in (snapshot.get("attrs") or {}).items()}
        labels = extract_label_set(handle, input_type, limit)
        control = CandidateControl(
            index=len(controls),
            tag=str(snapshot.get("tag") or ""),
            input_type=input_type,
            value=str(snapshot.get("value") or ""),
            attributes=attributes,
            labels=labels,
            options=list(snapshot.get("options") or []),
            search_text=build_search_text(attributes, labels),
            handle=handle,
        )
        controls.append(control)
    LOGGER.info("Discovered %d fillable controls (skipped: %s)", len(controls), skipped)
    return controls
