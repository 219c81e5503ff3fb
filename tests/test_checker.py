"""Tests for the acceptability checker.

The checker is a pure function over parsed payloads, so these tests
feed it hand-built dictionaries and compare the violation names it
returns.  Violation names matter: they are sent back to the backend
verbatim as retry feedback.
"""

from __future__ import annotations

import copy
from typing import Any, Dict

from mindscan.analysis.checker import check_result


def _cognitive(**overrides: Any) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "intelligenceScore": 78,
        "characteristics": ["analytical", "systematic", "precise"],
        "detailedAnalysis": "The author builds the argument step by step.",
        "strengths": ["logical coherence", "structured thinking"],
        "tendencies": ["methodical progression", "explicit structure"],
    }
    payload.update(overrides)
    return payload


def _psychological() -> Dict[str, Any]:
    return {
        "emotionalProfile": {
            "primaryEmotions": ["calm", "curious"],
            "emotionalStability": 70,
            "detailedAnalysis": "Measured affect.",
        },
        "motivationalStructure": {
            "primaryDrives": ["understanding", "accuracy"],
            "motivationalPatterns": ["investigation", "thoroughness"],
            "detailedAnalysis": "Driven by accuracy.",
        },
        "interpersonalDynamics": {
            "attachmentStyle": "secure",
            "socialOrientations": ["independent", "collaborative"],
            "relationshipPatterns": ["boundaries", "respect"],
            "detailedAnalysis": "Addresses the reader as a peer.",
        },
        "strengths": ["analysis", "stability"],
        "challenges": ["over-analysis", "detachment"],
        "overallSummary": "Balanced and methodical.",
    }


def test_valid_cognitive_result_passes() -> None:
    result = check_result("cognitive", _cognitive())
    assert result.valid is True
    assert result.violations == []


def test_missing_and_invalid_cognitive_fields_are_named() -> None:
    payload = _cognitive(characteristics=["only one"], detailedAnalysis="   ")
    del payload["intelligenceScore"]
    result = check_result("cognitive", payload)
    assert result.valid is False
    assert result.violations == [
        "Missing intelligence score",
        "Invalid characteristics array",
        "Invalid detailed analysis",
    ]


def test_score_out_of_range_is_invalid() -> None:
    assert check_result("cognitive", _cognitive(intelligenceScore=0)).violations == ["Invalid intelligence score"]
    assert check_result("cognitive", _cognitive(intelligenceScore=101)).violations == ["Invalid intelligence score"]
    # Booleans are not scores even though bool subclasses int
    assert check_result("cognitive", _cognitive(intelligenceScore=True)).violations == ["Invalid intelligence score"]


def test_refusal_boilerplate_is_rejected() -> None:
    payload = _cognitive(detailedAnalysis="As an AI language model, I will try my best.")
    result = check_result("cognitive", payload)
    assert result.valid is False
    assert result.violations == ["Text must not contain the phrase 'as an ai language model'"]


def test_exceptional_tier_requires_high_score() -> None:
    low = _cognitive(intelligenceScore=70, characteristics=["genius", "systematic"])
    result = check_result("cognitive", low)
    assert result.valid is False
    assert result.violations == [
        "Exceptional-tier description requires an intelligence score of at least 85"
    ]
    high = _cognitive(intelligenceScore=92, characteristics=["genius", "systematic"])
    assert check_result("cognitive", high).valid is True


def test_valid_psychological_result_passes() -> None:
    assert check_result("psychological", _psychological()).valid is True


def test_psychological_violations_follow_section_order() -> None:
    payload = _psychological()
    del payload["emotionalProfile"]
    payload["interpersonalDynamics"]["socialOrientations"] = "independent"
    del payload["overallSummary"]
    result = check_result("psychological", payload)
    assert result.violations == [
        "Missing emotional profile",
        "Invalid social orientations array",
        "Missing overall summary",
    ]


def test_psychological_stability_range() -> None:
    payload = _psychological()
    payload["emotionalProfile"]["emotionalStability"] = 150
    assert check_result("psychological", payload).violations == ["Invalid emotional stability score"]


def test_unknown_kind_and_non_object() -> None:
    assert check_result("astrological", _cognitive()).violations == ["Unknown analysis kind 'astrological'"]
    assert check_result("cognitive", ["not", "an", "object"]).violations == ["Result is not a JSON object"]
    assert check_result("cognitive", None).valid is False


def test_checker_is_deterministic_and_does_not_mutate() -> None:
    payload = _cognitive(characteristics=["x"])
    snapshot = copy.deepcopy(payload)
    first = check_result("cognitive", payload)
    second = check_result("cognitive", payload)
    assert first == second
    assert payload == snapshot


def test_non_finite_scores_are_invalid() -> None:
    for score in (float("nan"), float("inf"), float("-inf")):
        assert check_result("cognitive", _cognitive(intelligenceScore=score)).violations == [
            "Invalid intelligence score"
        ]
    payload = _psychological()
    payload["emotionalProfile"]["emotionalStability"] = float("nan")
    assert check_result("psychological", payload).violations == ["Invalid emotional stability score"]


def test_exceptional_tier_matches_whole_words_only() -> None:
    payload = _cognitive(
        intelligenceScore=60,
        detailedAnalysis="An unexceptional but careful writer who reasons in small steps.",
    )
    assert check_result("cognitive", payload).valid is True
    payload = _cognitive(intelligenceScore=60, detailedAnalysis="Truly exceptional, even brilliant.")
    assert check_result("cognitive", payload).valid is False
