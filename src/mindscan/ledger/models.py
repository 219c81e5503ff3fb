"""Pydantic models exchanged with the credit ledger.

The orchestrator never prices anything itself.  It hands the ledger a
:class:`UsageReport` of counts and receives a :class:`LedgerDelta`
describing what was charged.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class UsageReport(BaseModel):
    """Counts describing one analysis request."""

    model_config = ConfigDict(frozen=True)

    word_count: int
    backends_dispatched: int
    backends_succeeded: int
    request_id: Optional[str] = None


class LedgerDelta(BaseModel):
    """Outcome of the single debit made after a request completes.

    ``settled`` is False when the debit failed; ``balance`` is then
    ``None`` and nothing is known to have been charged.
    """

    model_config = ConfigDict(frozen=True)

    charged: int = 0
    balance: Optional[int] = None
    settled: bool = True
