from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple

from .normalize import contains_phrase, normalize_text

Option = Dict[str, object]


def _text(option: Option, field: str) -> str:
    value = option.get(field)
    return "" if value is None else str(value)


def _selectable(options: Sequence[Option]) -> List[Option]:
    return [opt for opt in options if not opt.get("disabled")]


def fallback_alternatives(value: str, fallback_groups: Sequence[Sequence[str]]) -> List[str]:
    """The value followed by its equivalents, in declared order.

    The group is chosen by normalized membership of ``value``; keys without a
    group fall back to the value alone.
    """
    target = normalize_text(value)
    alternatives = [value]
    seen = {target}
    for group in fallback_groups:
        if target not in {normalize_text(item) for item in group}:
            continue
        for item in group:
            key = normalize_text(item)
            if key and key not in seen:
                alternatives.append(item)
                seen.add(key)
        break
    return alternatives


def resolve_option(
    options: Sequence[Option],
    value: str,
    fallback_groups: Sequence[Sequence[str]] = (),
) -> Tuple[Optional[Option], str]:
    candidates = _selectable(options)
    if not candidates:
        return None, "no_select_options"
    if value is None or not str(value).strip():
        return None, "empty_value"

    for opt in candidates:
        if _text(opt, "label") == value or _text(opt, "value") == value:
            return opt, "matched_exact"

    alternatives = [normalize_text(alt) for alt in fallback_alternatives(value, fallback_groups)]
    alternatives = [alt for alt in alternatives if alt]

    for alt in alternatives:
        for opt in candidates:
            if normalize_text(_text(opt, "label")) == alt or normalize_text(_text(opt, "value")) == alt:
                return opt, "matched_fallback"

    for alt in alternatives:
        for opt in candidates:
            if contains_phrase(normalize_text(_text(opt, "label")), alt) or contains_phrase(
                normalize_text(_text(opt, "value")), alt
            ):
                return opt, "matched_fallback_phrase"

    return None, "no_option_match"
