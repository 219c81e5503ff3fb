"""Exception types raised by the analysis orchestrator.

The taxonomy mirrors the ways a request can go wrong:

* :class:`TransportFailure` - one backend could not be reached or
  returned output that could not be parsed.  Never retried; surfaced
  as a per-backend error entry.
* :class:`AdmissionDenied` - the ledger refused the request before any
  backend was dispatched.
* :class:`TotalFailure` - every dispatched backend failed.  The only
  condition that aborts a whole blocking request.
* :class:`LedgerError` - a ledger operation failed.  Debit failures are
  logged and swallowed by the orchestrator.

Results that violate the acceptability contract are not errors; they
are retried and, once the attempt bound is reached, returned with a
``degraded`` flag.
"""

from __future__ import annotations

from typing import Any, Optional


class MindscanError(Exception):
    """Base class for all orchestrator errors."""


class TransportFailure(MindscanError):
    """A backend call failed at the transport or parsing level."""

    def __init__(self, backend: str, reason: str) -> None:
        super().__init__(f"{backend}: {reason}")
        self.backend = backend
        self.reason = reason


class AdmissionDenied(MindscanError):
    """The ledger refused to admit a request."""

    def __init__(self, required: int, reason: str = "Insufficient credits") -> None:
        super().__init__(reason)
        self.required = required
        self.reason = reason


class TotalFailure(MindscanError):
    """Every dispatched backend ended in a failure.

    ``outcome`` holds the all-failure :class:`AggregateOutcome` so
    callers can report the individual reasons.
    """

    def __init__(self, outcome: Any, message: Optional[str] = None) -> None:
        super().__init__(message or "All analysis providers failed")
        self.outcome = outcome


class LedgerError(MindscanError):
    """A ledger operation could not be completed."""
