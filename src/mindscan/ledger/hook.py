"""Ledger hook protocol and pricing policy.

The orchestrator consults the ledger twice per request and only
outside the concurrent region: ``reserve`` before any backend is
dispatched and ``debit`` once after all of them finished.  It passes
counts only; turning counts into credits is the ledger's business,
implemented here by :func:`price_request`.
"""

from __future__ import annotations

from typing import Protocol

from ..config import ANALYSIS_COST
from .models import LedgerDelta, UsageReport


class LedgerHook(Protocol):
    """Admission control and debit interface."""

    def reserve(self, account_id: str, usage: UsageReport) -> bool:
        """Return True if ``account_id`` may run a request of this size."""
        raise NotImplementedError

    def debit(self, account_id: str, usage: UsageReport) -> LedgerDelta:
        """Charge ``account_id`` for a completed request."""
        raise NotImplementedError


def price_request(usage: UsageReport) -> int:
    """Return the credits charged for a request.

    A request costs a flat :data:`~mindscan.config.ANALYSIS_COST`.  A
    request in which no backend produced a result costs nothing.
    """
    if usage.backends_succeeded <= 0:
        return 0
    return ANALYSIS_COST


def count_words(text: str) -> int:
    """Count whitespace separated words."""
    return len(text.split())
