"""
Configuration constants for the MINDSCAN project.

This module centralises configuration values that are used across the
application.  New values should be added here deliberately.  Values
that differ between deployments (API keys, database URL, backend
selection) are read from the environment at their use sites; the
helpers at the bottom of this module resolve those with the defaults
defined here.
"""

import os
from typing import Final, List

# Branding for the project.  The Python package is ``mindscan`` and the
# public documentation and help refer to MINDSCAN.
PROJECT_NAME: Final[str] = "MINDSCAN"

# Version of the streaming wire protocol (``data: <json>\n\n`` frames
# and the provider alias table).  Bump only on breaking changes.
PROTOCOL_VERSION: Final[str] = "v1"

# Upper bound on backend calls per (backend, request), first attempt
# included.  Must be >= 1.
DEFAULT_MAX_ATTEMPTS: Final[int] = 3

# Requests with less text than this are rejected before dispatch.
MIN_TEXT_CHARS: Final[int] = 100

# Flat price of one analysis request in credits.
ANALYSIS_COST: Final[int] = 100

# Free-text fields of anonymous previews are cut to this many words.
PREVIEW_WORD_LIMIT: Final[int] = 50

# Backends dispatched when nothing else is configured, in dispatch order.
DEFAULT_BACKENDS: Final[List[str]] = ["A", "B", "C", "D"]

# Per-call HTTP timeout for live backends, in seconds.
BACKEND_TIMEOUT_SECONDS: Final[float] = 120.0


def llm_mode() -> str:
    """Return the configured backend mode (``fake`` or ``live``)."""
    return os.getenv("LLM_MODE", "fake").strip().lower() or "fake"


def configured_backends() -> List[str]:
    """Return the backend identifiers selected via ``MINDSCAN_BACKENDS``.

    The variable holds a comma separated list such as ``A,C``.  When it
    is unset or empty :data:`DEFAULT_BACKENDS` is used.
    """
    raw = os.getenv("MINDSCAN_BACKENDS", "")
    selected = [b.strip().upper() for b in raw.split(",") if b.strip()]
    return selected or list(DEFAULT_BACKENDS)


def configured_max_attempts() -> int:
    """Return ``MINDSCAN_MAX_ATTEMPTS`` or :data:`DEFAULT_MAX_ATTEMPTS`."""
    raw = os.getenv("MINDSCAN_MAX_ATTEMPTS")
    if not raw:
        return DEFAULT_MAX_ATTEMPTS
    value = int(raw)
    if value < 1:
        raise ValueError(f"MINDSCAN_MAX_ATTEMPTS must be >= 1, got {value}")
    return value


__all__ = [
    "PROJECT_NAME",
    "PROTOCOL_VERSION",
    "DEFAULT_MAX_ATTEMPTS",
    "MIN_TEXT_CHARS",
    "ANALYSIS_COST",
    "PREVIEW_WORD_LIMIT",
    "DEFAULT_BACKENDS",
    "BACKEND_TIMEOUT_SECONDS",
    "llm_mode",
    "configured_backends",
    "configured_max_attempts",
]
