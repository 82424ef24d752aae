from __future__ import annotations

from typing import Iterable, List, Tuple

from ..config import CONFIG


def keyword_score(search_text: str, keywords: Iterable[str], weight: int = 1) -> Tuple[int, List[str]]:
    """Sum of keyword lengths for every keyword found as a substring of ``search_text``.

    Keywords are expected in normalized form; an empty search text never scores.
    """
    if not search_text:
        return 0, []
    score = 0
    matched: List[str] = []
    for keyword in keywords:
        if keyword and keyword in search_text:
            score += len(keyword) * weight
            matched.append(keyword)
    return score, matched


def confidence_for_score(score: float, divisor: float = CONFIG.matching.confidence_divisor) -> float:
    if score <= 0:
        return 0.0
    return min(score / divisor, 1.0)


def is_accepted(confidence: float, threshold: float = CONFIG.matching.threshold) -> bool:
    return confidence > threshold
