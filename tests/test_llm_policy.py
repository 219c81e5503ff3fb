"""Tests for the backend policy and alias table."""

from __future__ import annotations

import pytest

from mindscan.llm.policy import (
    ALLOWED_BACKENDS,
    BACKEND_ALIASES,
    BACKEND_VENDORS,
    VENDOR_API_KEYS,
    alias_for,
    backend_for_alias,
    validate_backends,
)


def test_alias_table_is_stable() -> None:
    """Aliases are a wire contract and must not drift."""
    assert BACKEND_ALIASES == {
        "A": "provider-1",
        "B": "provider-2",
        "C": "provider-3",
        "D": "provider-4",
    }
    assert set(BACKEND_VENDORS) == ALLOWED_BACKENDS
    # Every vendor has an API key variable
    assert set(BACKEND_VENDORS.values()) == set(VENDOR_API_KEYS)


def test_alias_lookups() -> None:
    assert alias_for("C") == "provider-3"
    assert alias_for(None) is None
    assert backend_for_alias("provider-4") == "D"
    with pytest.raises(KeyError):
        alias_for("Z")
    with pytest.raises(KeyError):
        backend_for_alias("provider-9")


def test_validate_backends_preserves_order_and_dedupes() -> None:
    assert validate_backends(["C", "A", "C"]) == ["C", "A"]


def test_validate_backends_rejects_unknown_and_empty() -> None:
    with pytest.raises(ValueError, match="Unknown backends configured: X"):
        validate_backends(["A", "X"])
    with pytest.raises(ValueError, match="At least one backend"):
        validate_backends([])
