from __future__ import annotations

import re
from typing import Dict, Iterable, Optional

from dateutil import parser

ATTRIBUTE_ORDER = ("name", "id", "placeholder", "aria_label")

_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: Optional[str]) -> str:
    """Lowercase, replace anything but letters/digits/whitespace with a space, collapse runs.

    Idempotent: ``normalize_text(normalize_text(x)) == normalize_text(x)``.
    """
    if not text:
        return ""
    lowered = str(text).lower()
    cleaned = "".join(ch if ch.isalnum() or ch.isspace() else " " for ch in lowered)
    return _WHITESPACE.sub(" ", cleaned).strip()


def build_search_text(attributes: Dict[str, Optional[str]], labels: Iterable[str]) -> str:
    parts = [attributes.get(key) or "" for key in ATTRIBUTE_ORDER]
    parts.extend(labels)
    joined = " ".join(part.strip() for part in parts if isinstance(part, str) and part.strip())
    return normalize_text(joined)


def collapse_whitespace(text: Optional[str]) -> str:
    if not text:
        return ""
    return _WHITESPACE.sub(" ", str(text)).strip()


def contains_phrase(haystack: str, phrase: str) -> bool:
    """Whole-word containment of an already-normalized phrase."""
    if not haystack or not phrase:
        return False
    return f" {phrase} " in f" {haystack} "


def normalize_date(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    raw = value.strip()
    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", raw):
        return raw
    try:
        return parser.parse(raw, dayfirst=False, yearfirst=True).date().isoformat()
    except (ValueError, OverflowError):
        return None
