from __future__ import annotations

from formfill.pipeline.confidence import confidence_for_score, is_accepted, keyword_score


def test_keyword_score_sums_lengths_of_found_keywords() -> None:
    score, matched = keyword_score("user email email address", ["email", "email address", "phone"])
    assert score == len("email") + len("email address")
    assert matched == ["email", "email address"]


def test_keyword_score_is_substring_based() -> None:
    score, matched = keyword_score("studentemail", ["mail"])
    assert score == 4
    assert matched == ["mail"]


def test_keyword_score_weight_multiplies() -> None:
    assert keyword_score("hostel block", ["hostel"], weight=2)[0] == 12


def test_empty_search_text_never_scores() -> None:
    assert keyword_score("", ["email", "name"]) == (0, [])


def test_confidence_is_bounded() -> None:
    assert confidence_for_score(0) == 0.0
    assert confidence_for_score(1) == 0.2
    assert confidence_for_score(5) == 1.0
    assert confidence_for_score(40) == 1.0


def test_threshold_is_strict() -> None:
    assert is_accepted(0.2)
    assert not is_accepted(0.05)
    assert not is_accepted(0.0)
