from __future__ import annotations

import logging
from typing import List

LOGGER = logging.getLogger(__name__)

# Priority order: ARIA structure, Google Forms item classes, then generic wrappers.
CONTAINER_MARKERS = [
    '[role="listitem"]',
    ".freebirdFormviewerViewItemsItemItem",
    ".Qr7Oae",
    "[data-params]",
    "fieldset",
    ".form-group",
    ".form-field",
    ".field",
    ".question",
    "li",
    "div",
]

QUESTION_SELECTORS = [
    '[role="heading"]',
    ".freebirdFormviewerViewItemsItemItemTitle",
    ".M7eMe",
    ".Xb9hP",
    "span[jsslot]",
    ".exportLabel",
    "legend",
    "label",
    "h1, h2, h3, h4, h5, h6",
]

DESCRIPTION_SELECTORS = [
    ".freebirdFormviewerViewItemsItemItemHelpText",
    ".freebirdFormviewerViewItemsItemItemDescription",
    ".exportItemDescription",
    ".gubaDc",
]

LABELS_JS = """(el, args) => {
    const { markers, questionSelectors, descriptionSelectors, textLimit, isRadio } = args;
    const labels = [];
    const clean = (text) => (text || '').replace(/\\n+/g, ' ').replace(/\\s+/g, ' ').trim();
    const push = (text) => {
      const value = clean(text);
      if (value && !labels.includes(value)) labels.push(value);
    };
    const controlSelector = 'input:not([type="hidden"]):not([type="submit"]):not([type="button"])'
      + ':not([type="reset"]):not([type="image"]), select, textarea, [contenteditable="true"], [role="textbox"]';
    const ownsSingleQuestion = (container) => {
      const keys = new Set();
      for (const node of container.querySelectorAll(controlSelector)) {
        const type = (node.getAttribute('type') || '').toLowerCase();
        const name = node.getAttribute('name');
        keys.add(type === 'radio' && name ? `radio:${name}` : node);
        if (keys.size > 1) return false;
      }
      return true;
    };

    let container = null;
    for (const marker of markers) {
      const found = el.closest(marker);
      if (found && ownsSingleQuestion(found)) {
        container = found;
        break;
      }
    }

    let structural = false;
    if (container) {
      for (const selector of questionSelectors) {
        const node = container.querySelector(selector);
        if (node && clean(node.textContent)) {
          push(node.textContent);
          structural = true;
          break;
        }
      }
      for (const selector of descriptionSelectors) {
        const node = container.querySelector(selector);
        if (node && clean(node.textContent)) push(node.textContent);
      }
      if (!structural && labels.length === 0) {
        const text = (container.textContent || '').trim();
        if (text && text.length < textLimit) push(text);
      }
    }

    if (!isRadio) {
      if (el.labels) {
        Array.from(el.labels).forEach((label) => push(label.textContent));
      }
      const parentLabel = el.closest('label');
      if (parentLabel) push(parentLabel.textContent);
    }
    push(el.getAttribute('title'));

    if (labels.length === 0) {
      const texts = [];
      let sibling = el.previousElementSibling;
      let count = 0;
      while (sibling && count < 3) {
        const text = clean(sibling.textContent || sibling.innerText || '');
        if (text && text.length < 200) texts.push(text);
        sibling = sibling.previousElementSibling;
        count += 1;
      }
      let parent = el.parentElement;
      count = 0;
      while (parent && count < 2) {
        const direct = Array.from(parent.childNodes)
          .filter((node) => node.nodeType === Node.TEXT_NODE)
          .map((node) => node.textContent.trim())
          .filter((text) => text && text.length < 100)
          .join(' ');
        if (direct) texts.push(direct);
        parent = parent.parentElement;
        count += 1;
      }
      push(texts.join(' '));
    }

    const dataParams = el.getAttribute('data-params');
    if (dataParams) {
      try {
        const params = JSON.parse(dataParams);
        if (params && typeof params[1] === 'string') push(params[1]);
      } catch (err) {
        // Not JSON; Google Forms sometimes prefixes the payload.
      }
    }
    return labels;
}"""


def extract_label_set(handle, input_type: str, text_limit: int = 300) -> List[str]:
    """Ordered label strings for one control; the first structural hit is the primary label."""
    labels = handle.evaluate(
        LABELS_JS,
        {
            "markers": CONTAINER_MARKERS,
            "questionSelectors": QUESTION_SELECTORS,
            "descriptionSelectors": DESCRIPTION_SELECTORS,
            "textLimit": text_limit,
            "isRadio": input_type == "radio",
        },
    )
    if not isinstance(labels, list):
        return []
    cleaned = [str(label) for label in labels if isinstance(label, str) and label.strip()]
    if not cleaned:
        LOGGER.debug("No label text found for %s control", input_type)
    return cleaned
