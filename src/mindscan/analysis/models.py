"""Pydantic models for the orchestration layer.

A backend run ends in either a :class:`BackendResult` (the domain
payload plus how many attempts it took and whether it still violated
the acceptability contract) or a :class:`BackendFailure`.  Blocking
requests collect these into an :class:`AggregateOutcome`; streaming
requests surface them as :class:`Completed` / :class:`Errored` events
followed by exactly one :class:`Done`.

Stream events render themselves into the fixed wire format
``data: <json>\\n\\n`` via :meth:`to_frame`, translating backend
identifiers to their public aliases.
"""

from __future__ import annotations

import json
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..ledger.models import LedgerDelta
from ..llm.models import AnalysisKind
from ..llm.policy import alias_for


class CheckResult(BaseModel):
    """Verdict of the acceptability checker."""

    model_config = ConfigDict(frozen=True)

    valid: bool
    violations: List[str] = Field(default_factory=list)


class BackendResult(BaseModel):
    """A parsed result handed over by a retrying invoker.

    ``degraded`` is True when the attempt bound was reached while the
    payload still violated the contract; ``violations`` then lists the
    constraints it breaks.
    """

    model_config = ConfigDict(frozen=True)

    backend: str
    payload: Dict[str, Any]
    attempts: int
    degraded: bool = False
    violations: List[str] = Field(default_factory=list)


class BackendFailure(BaseModel):
    """A backend that could not produce a result."""

    model_config = ConfigDict(frozen=True)

    backend: str
    reason: str


BackendOutcome = Union[BackendResult, BackendFailure]


class AggregateOutcome(BaseModel):
    """Per-backend outcome map for one blocking request.

    Holds exactly one entry per dispatched backend.
    """

    model_config = ConfigDict(frozen=True)

    kind: AnalysisKind
    entries: Dict[str, BackendOutcome]

    def successes(self) -> Dict[str, BackendResult]:
        return {k: v for k, v in self.entries.items() if isinstance(v, BackendResult)}

    def failures(self) -> Dict[str, BackendFailure]:
        return {k: v for k, v in self.entries.items() if isinstance(v, BackendFailure)}

    def degraded(self) -> List[str]:
        return [k for k, v in self.successes().items() if v.degraded]


def _frame(payload: Dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, allow_nan=False)}\n\n"


class Completed(BaseModel):
    """A backend reached a terminal state with a result."""

    model_config = ConfigDict(frozen=True)

    status: Literal["completed"] = "completed"
    backend: str
    result: Dict[str, Any]
    degraded: bool = False

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "provider": alias_for(self.backend),
            "result": self.result,
            "degraded": self.degraded,
        }

    def to_frame(self) -> str:
        return _frame(self.to_payload())


class Errored(BaseModel):
    """A backend failed, or the request was refused before dispatch.

    ``backend`` is ``None`` only for request-level errors such as a
    denied admission; the frame then carries ``"provider": null``.
    """

    model_config = ConfigDict(frozen=True)

    status: Literal["error"] = "error"
    backend: Optional[str] = None
    reason: str

    def to_payload(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "provider": alias_for(self.backend),
            "error": self.reason,
        }

    def to_frame(self) -> str:
        return _frame(self.to_payload())


class Done(BaseModel):
    """Terminal event of every stream."""

    model_config = ConfigDict(frozen=True)

    status: Literal["done"] = "done"
    updated_credits: Optional[LedgerDelta] = None

    def to_payload(self) -> Dict[str, Any]:
        credits = self.updated_credits.model_dump() if self.updated_credits is not None else None
        return {"status": self.status, "updatedCredits": credits}

    def to_frame(self) -> str:
        return _frame(self.to_payload())


StreamEvent = Union[Completed, Errored, Done]


def event_for(outcome: BackendOutcome) -> StreamEvent:
    """Translate a backend outcome into its stream event."""
    if isinstance(outcome, BackendResult):
        return Completed(backend=outcome.backend, result=outcome.payload, degraded=outcome.degraded)
    return Errored(backend=outcome.backend, reason=outcome.reason)
