"""Backend policy and alias definitions for the analysis layer.

This module defines the fixed set of backend identifiers, the vendor
behind each one and the caller-facing alias under which each backend
appears in responses and stream frames.  Only identifiers listed in
``ALLOWED_BACKENDS`` may be dispatched.

The alias table is part of the wire protocol.  Clients key their
rendering on these strings, so an alias must never be renamed or
reassigned to a different identifier once released; new backends get
new aliases.

Current assignment:

- ``A`` -> ``provider-1`` (OpenAI)
- ``B`` -> ``provider-2`` (Anthropic)
- ``C`` -> ``provider-3`` (DeepSeek)
- ``D`` -> ``provider-4`` (Perplexity)
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Set

__all__ = [
    "ALLOWED_BACKENDS",
    "BACKEND_ALIASES",
    "BACKEND_VENDORS",
    "VENDOR_API_KEYS",
    "alias_for",
    "backend_for_alias",
    "validate_backends",
]

# Caller-facing aliases.  Do not modify existing entries.
BACKEND_ALIASES: Dict[str, str] = {
    "A": "provider-1",
    "B": "provider-2",
    "C": "provider-3",
    "D": "provider-4",
}

# Vendor serving each backend identifier in live mode.
BACKEND_VENDORS: Dict[str, str] = {
    "A": "openai",
    "B": "anthropic",
    "C": "deepseek",
    "D": "perplexity",
}

# Environment variable holding each vendor's API key.
VENDOR_API_KEYS: Dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "deepseek": "DEEPSEEK_API_KEY",
    "perplexity": "PERPLEXITY_API_KEY",
}

ALLOWED_BACKENDS: Set[str] = set(BACKEND_ALIASES)


def alias_for(backend: Optional[str]) -> Optional[str]:
    """Translate an internal backend identifier to its public alias.

    ``None`` maps to ``None`` (used for request-level errors that are
    not tied to a backend).  Unknown identifiers raise ``KeyError``.
    """
    if backend is None:
        return None
    return BACKEND_ALIASES[backend]


def backend_for_alias(alias: str) -> str:
    """Reverse lookup of :func:`alias_for`."""
    for backend, name in BACKEND_ALIASES.items():
        if name == alias:
            return backend
    raise KeyError(alias)


def validate_backends(configured: Iterable[str]) -> List[str]:
    """Validate configured backend identifiers and return them as a list.

    Order is preserved and duplicates are dropped.

    Raises:
        ValueError: If any identifier is not allowed or none is given.
    """
    seen: List[str] = []
    for backend in configured:
        if backend not in seen:
            seen.append(backend)
    invalid = set(seen) - ALLOWED_BACKENDS
    if invalid:
        raise ValueError(
            f"Unknown backends configured: {', '.join(sorted(invalid))}. "
            f"Allowed backends are: {', '.join(sorted(ALLOWED_BACKENDS))}"
        )
    if not seen:
        raise ValueError("At least one backend must be configured")
    return seen
