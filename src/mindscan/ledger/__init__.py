"""Credit ledger for MINDSCAN.

Exposes the :class:`LedgerHook` protocol consulted by the orchestrator,
the pricing policy and a SQL implementation.
"""

from .models import LedgerDelta, UsageReport
from .hook import LedgerHook, count_words, price_request
from .sql import SqlCreditLedger

__all__ = [
    "LedgerDelta",
    "UsageReport",
    "LedgerHook",
    "count_words",
    "price_request",
    "SqlCreditLedger",
]
