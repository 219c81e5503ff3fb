"""Acceptability checker for backend results.

This module implements a deterministic gate that judges a parsed
backend result against the contract of its analysis kind.  It checks
that required fields are present and well typed, that list fields
carry enough items, that scalar scores are in range, that free text
does not contain refusal boilerplate, and that an exceptional-tier
description is not paired with a low score.

The checker is pure and total: it performs no I/O, never raises and
returns the same :class:`CheckResult` for the same input.  Violation
names are short human-readable sentences because they are fed back to
the backend verbatim on the next attempt.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Dict, List, Mapping

from .models import CheckResult

# Phrases that mark a refusal or boilerplate instead of an analysis.
FORBIDDEN_PHRASES: List[str] = [
    "as an ai language model",
    "as an ai model",
    "i cannot analyze",
    "i can't analyze",
    "i am unable to",
    "i'm unable to",
    "i cannot provide",
]

# Words that declare an exceptional intelligence tier.
EXCEPTIONAL_TIER_TERMS: List[str] = ["genius", "exceptional", "brilliant", "extraordinary"]
_EXCEPTIONAL_TIER_RE = re.compile(r"\b(?:" + "|".join(EXCEPTIONAL_TIER_TERMS) + r")\b")

# A cognitive score below this contradicts exceptional-tier language.
EXCEPTIONAL_TIER_MIN_SCORE: int = 85

MIN_LIST_ITEMS: int = 2


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    # NaN and infinities compare False against any bound
    return isinstance(value, int) or math.isfinite(value)


def _check_text(payload: Mapping[str, Any], key: str, label: str, issues: List[str]) -> None:
    value = payload.get(key)
    if key not in payload or value is None:
        issues.append(f"Missing {label}")
    elif not isinstance(value, str) or not value.strip():
        issues.append(f"Invalid {label}")


def _check_list(payload: Mapping[str, Any], key: str, label: str, issues: List[str]) -> None:
    value = payload.get(key)
    if key not in payload or value is None:
        issues.append(f"Missing {label}")
    elif (
        not isinstance(value, list)
        or len(value) < MIN_LIST_ITEMS
        or not all(isinstance(item, str) and item.strip() for item in value)
    ):
        issues.append(f"Invalid {label} array")


def _check_score(payload: Mapping[str, Any], key: str, label: str, issues: List[str]) -> None:
    value = payload.get(key)
    if key not in payload or value is None:
        issues.append(f"Missing {label}")
    elif not _is_number(value) or value < 1 or value > 100:
        issues.append(f"Invalid {label}")


def _check_section(
    payload: Mapping[str, Any], key: str, label: str, issues: List[str]
) -> Mapping[str, Any] | None:
    section = payload.get(key)
    if section is None:
        issues.append(f"Missing {label}")
        return None
    if not isinstance(section, dict):
        issues.append(f"Invalid {label}")
        return None
    return section


def _free_text(payload: Any) -> List[str]:
    """Collect every string in a payload, depth first, in key order."""
    out: List[str] = []
    if isinstance(payload, str):
        out.append(payload)
    elif isinstance(payload, dict):
        for key in sorted(payload):
            out.extend(_free_text(payload[key]))
    elif isinstance(payload, list):
        for item in payload:
            out.extend(_free_text(item))
    return out


def _check_forbidden_phrases(payload: Mapping[str, Any], issues: List[str]) -> None:
    text = " ".join(_free_text(payload)).lower()
    for phrase in FORBIDDEN_PHRASES:
        if phrase in text:
            issues.append(f"Text must not contain the phrase '{phrase}'")


def _check_cognitive(payload: Mapping[str, Any]) -> List[str]:
    issues: List[str] = []
    _check_score(payload, "intelligenceScore", "intelligence score", issues)
    _check_list(payload, "characteristics", "characteristics", issues)
    _check_text(payload, "detailedAnalysis", "detailed analysis", issues)
    _check_list(payload, "strengths", "strengths", issues)
    _check_list(payload, "tendencies", "tendencies", issues)
    _check_forbidden_phrases(payload, issues)
    score = payload.get("intelligenceScore")
    if _is_number(score) and score < EXCEPTIONAL_TIER_MIN_SCORE:
        described = " ".join(
            _free_text(payload.get("detailedAnalysis")) + _free_text(payload.get("characteristics"))
        ).lower()
        if _EXCEPTIONAL_TIER_RE.search(described):
            issues.append(
                "Exceptional-tier description requires an intelligence score of at least "
                f"{EXCEPTIONAL_TIER_MIN_SCORE}"
            )
    return issues


def _check_psychological(payload: Mapping[str, Any]) -> List[str]:
    issues: List[str] = []
    emotional = _check_section(payload, "emotionalProfile", "emotional profile", issues)
    if emotional is not None:
        _check_list(emotional, "primaryEmotions", "primary emotions", issues)
        _check_score(emotional, "emotionalStability", "emotional stability score", issues)
        _check_text(emotional, "detailedAnalysis", "emotional profile detailed analysis", issues)
    motivational = _check_section(payload, "motivationalStructure", "motivational structure", issues)
    if motivational is not None:
        _check_list(motivational, "primaryDrives", "primary drives", issues)
        _check_list(motivational, "motivationalPatterns", "motivational patterns", issues)
        _check_text(motivational, "detailedAnalysis", "motivational structure detailed analysis", issues)
    interpersonal = _check_section(payload, "interpersonalDynamics", "interpersonal dynamics", issues)
    if interpersonal is not None:
        _check_text(interpersonal, "attachmentStyle", "attachment style", issues)
        _check_list(interpersonal, "socialOrientations", "social orientations", issues)
        _check_list(interpersonal, "relationshipPatterns", "relationship patterns", issues)
        _check_text(interpersonal, "detailedAnalysis", "interpersonal dynamics detailed analysis", issues)
    _check_list(payload, "strengths", "strengths", issues)
    _check_list(payload, "challenges", "challenges", issues)
    _check_text(payload, "overallSummary", "overall summary", issues)
    _check_forbidden_phrases(payload, issues)
    return issues


CONTRACTS: Dict[str, Callable[[Mapping[str, Any]], List[str]]] = {
    "cognitive": _check_cognitive,
    "psychological": _check_psychological,
}


def check_result(kind: str, result: Any) -> CheckResult:
    """Judge a parsed backend result against the contract for ``kind``.

    Args:
        kind: The analysis kind the result was produced for.
        result: The parsed payload, normally a dict.

    Returns:
        CheckResult: ``valid`` is True when no constraint is violated;
        otherwise ``violations`` names each broken constraint in a
        stable order.
    """
    contract = CONTRACTS.get(kind)
    if contract is None:
        return CheckResult(valid=False, violations=[f"Unknown analysis kind '{kind}'"])
    if not isinstance(result, dict):
        return CheckResult(valid=False, violations=["Result is not a JSON object"])
    try:
        issues = contract(result)
    except Exception as exc:  # pragma: no cover - contracts only inspect plain data
        issues = [f"Result could not be checked: {exc}"]
    return CheckResult(valid=not issues, violations=issues)
