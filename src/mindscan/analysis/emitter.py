"""Streaming emitter: completion-ordered events for one request.

:func:`run_streaming` performs the same dispatch as
:func:`~mindscan.analysis.aggregator.run_all` but yields a
:class:`Completed` or :class:`Errored` event the moment each backend
finishes.  After the last backend it awaits the optional ``settle``
callback exactly once with the final tally and yields a single
:class:`Done` carrying its result.  ``Done`` is always the last event,
including when every backend failed.

If the consumer stops iterating early, in-flight backends are
cancelled and ``settle`` is never called, so aborted work is not
charged.  Events already yielded are not replayed.
"""

from __future__ import annotations

from typing import AsyncIterator, Awaitable, Callable, Mapping, Optional

from ..config import DEFAULT_MAX_ATTEMPTS
from ..ledger.models import LedgerDelta
from ..llm.client import BackendCapability
from ..llm.models import AnalysisInput
from .checker import check_result
from .fanout import dispatch
from .invoker import Checker
from .models import BackendResult, Done, StreamEvent, event_for

Settle = Callable[[int, int], Awaitable[Optional[LedgerDelta]]]


async def run_streaming(
    analysis_input: AnalysisInput,
    registry: Mapping[str, BackendCapability],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    checker: Checker = check_result,
    settle: Optional[Settle] = None,
) -> AsyncIterator[StreamEvent]:
    """Yield backend events in completion order, then one ``Done``.

    Args:
        analysis_input: The text and analysis kind.
        registry: Backends to dispatch to.
        max_attempts: Per-backend attempt bound.
        checker: Acceptability checker.
        settle: Called once after all backends terminated with
            ``(dispatched, succeeded)``; its return value becomes the
            ``Done`` event's credit update.
    """
    dispatched = len(registry)
    succeeded = 0
    outcomes = dispatch(analysis_input, registry, max_attempts=max_attempts, checker=checker)
    try:
        async for outcome in outcomes:
            if isinstance(outcome, BackendResult):
                succeeded += 1
            yield event_for(outcome)
    finally:
        # Cancels in-flight workers when the consumer stops early
        await outcomes.aclose()
    delta = await settle(dispatched, succeeded) if settle is not None else None
    yield Done(updated_credits=delta)
