"""Backend layer for the MINDSCAN project.

This package provides the models handed to analysis backends, the
policy tables that name them, their prompts and the capability
implementations.  It abstracts every vendor behind
``BackendCapability`` and uses the deterministic ``FakeBackend`` for
offline runs and tests.
"""

from .models import (
    ANALYSIS_KINDS,
    AnalysisKind,
    AnalysisInput,
    BackendRequest,
    CognitiveResult,
    PsychologicalResult,
)
from .policy import ALLOWED_BACKENDS, BACKEND_ALIASES, alias_for, validate_backends
from .client import BackendCapability, FakeBackend, build_registry, parse_json_response

__all__ = [
    # models
    "ANALYSIS_KINDS",
    "AnalysisKind",
    "AnalysisInput",
    "BackendRequest",
    "CognitiveResult",
    "PsychologicalResult",
    # policy
    "ALLOWED_BACKENDS",
    "BACKEND_ALIASES",
    "alias_for",
    "validate_backends",
    # clients
    "BackendCapability",
    "FakeBackend",
    "build_registry",
    "parse_json_response",
]
