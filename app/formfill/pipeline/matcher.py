from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..config import CONFIG
from ..field_registry import Taxonomy
from .confidence import confidence_for_score, is_accepted, keyword_score
from .normalize import normalize_text
from .profile import Profile

LOGGER = logging.getLogger(__name__)

MATCHED = "matched"
FILLED = "filled"
FILL_FAILED = "fill_failed"
UNRESOLVED = "unresolved"
TERMINAL_STATES = {FILLED, FILL_FAILED, UNRESOLVED}

SOURCE_TAXONOMY = "taxonomy"
SOURCE_CUSTOM = "custom"

ENUMERATED_TYPES = {"select", "radio"}


@dataclass
class CandidateControl:
    index: int
    tag: str
    input_type: str
    value: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    labels: List[str] = field(default_factory=list)
    options: List[Dict[str, object]] = field(default_factory=list)
    search_text: str = ""
    handle: Optional[object] = field(default=None, repr=False, compare=False)

    @property
    def is_enumerated(self) -> bool:
        return self.input_type in ENUMERATED_TYPES

    @property
    def primary_label(self) -> str:
        return self.labels[0] if self.labels else ""

    def describe(self) -> str:
        name = self.attributes.get("name")
        control_id = self.attributes.get("id")
        base = self.tag if self.tag == self.input_type else f"{self.tag}[type={self.input_type}]"
        if name:
            base += f"[name={name}]"
        if control_id:
            base += f"#{control_id}"
        return f"{base}@{self.index}"


@dataclass
class MatchResult:
    control: CandidateControl
    key: str
    value: str
    score: int
    confidence: float
    matched_keywords: List[str]
    source: str = SOURCE_TAXONOMY


@dataclass
class AssignmentEntry:
    match: MatchResult
    state: str = MATCHED
    reason: Optional[str] = None
    actual: Optional[str] = None

    @property
    def control(self) -> CandidateControl:
        return self.match.control

    @property
    def key(self) -> str:
        return self.match.key

    @property
    def value(self) -> str:
        return self.match.value

    def transition(self, state: str, reason: Optional[str] = None, actual: Optional[str] = None) -> None:
        if self.state in TERMINAL_STATES:
            raise RuntimeError(f"{self.control.describe()} already {self.state}")
        self.state = state
        self.reason = reason
        self.actual = actual


@dataclass
class Assignment:
    entries: List[AssignmentEntry] = field(default_factory=list)
    unmatched: List[CandidateControl] = field(default_factory=list)


def score_control(control: CandidateControl, profile: Profile, taxonomy: Taxonomy) -> List[MatchResult]:
    """Every scoring (key, score) for one control, taxonomy keys first in declaration order."""
    results: List[MatchResult] = []
    search_text = control.search_text
    if not search_text:
        return results
    for entry in taxonomy.entries:
        value = profile.get(entry.key)
        if value is None:
            continue
        score, matched = keyword_score(search_text, entry.match_keywords)
        if score <= 0:
            continue
        results.append(
            MatchResult(
                control=control,
                key=entry.key,
                value=value,
                score=score,
                confidence=confidence_for_score(score),
                matched_keywords=matched,
            )
        )
    weight = CONFIG.matching.custom_field_weight
    for label, value in profile.iter_custom_fields():
        keyword = normalize_text(label)
        score, matched = keyword_score(search_text, [keyword], weight=weight)
        if score <= 0:
            continue
        results.append(
            MatchResult(
                control=control,
                key=label,
                value=value,
                score=score,
                confidence=confidence_for_score(score),
                matched_keywords=matched,
                source=SOURCE_CUSTOM,
            )
        )
    return results


def best_match(results: Sequence[MatchResult]) -> Optional[MatchResult]:
    best: Optional[MatchResult] = None
    for result in results:
        # Strictly greater: earlier declarations win ties.
        if best is None or result.score > best.score:
            best = result
    return best


def build_assignment(
    controls: Sequence[CandidateControl],
    profile: Profile,
    taxonomy: Taxonomy,
    threshold: float = CONFIG.matching.threshold,
    debug: bool = CONFIG.matching.debug,
) -> Assignment:
    """Greedy per-control resolution; several controls may take the same key."""
    assignment = Assignment()
    log = LOGGER.info if debug else LOGGER.debug
    for control in controls:
        results = score_control(control, profile, taxonomy)
        log(
            "Control %s search_text=%r scores=%s",
            control.describe(),
            control.search_text,
            {result.key: result.score for result in results},
        )
        best = best_match(results)
        if best is None or not is_accepted(best.confidence, threshold):
            log("Control %s NO MATCH", control.describe())
            assignment.unmatched.append(control)
            continue
        log(
            "Control %s matched %s confidence=%.2f keywords=%s",
            control.describe(),
            best.key,
            best.confidence,
            best.matched_keywords,
        )
        assignment.entries.append(AssignmentEntry(match=best))
    LOGGER.info(
        "Matching complete: %d matched, %d unmatched", len(assignment.entries), len(assignment.unmatched)
    )
    return assignment
