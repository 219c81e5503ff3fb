"""Concurrent dispatch of one input to every registered backend.

Each backend gets its own worker task running a retrying invoker.
Workers never share state; each one posts exactly one terminal
outcome onto a queue read by a single collector, so outcomes arrive in
completion order and no lock is needed.

Closing the iterator early (caller disconnected, request cancelled)
cancels every worker that is still in flight.  Cancelled workers post
nothing and make no further attempts.  A synchronous backend call
already running in a worker thread cannot be interrupted, though: the
thread runs until the call returns or hits its own HTTP timeout
(:data:`~mindscan.config.BACKEND_TIMEOUT_SECONDS` for the live
backends), and its result is discarded.
"""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Mapping

from ..config import DEFAULT_MAX_ATTEMPTS
from ..errors import TransportFailure
from ..llm.client import BackendCapability
from ..llm.models import AnalysisInput
from .checker import check_result
from .invoker import Checker, invoke
from .models import BackendFailure, BackendOutcome

logger = logging.getLogger(__name__)


async def _run_worker(
    analysis_input: AnalysisInput,
    backend_id: str,
    backend: BackendCapability,
    *,
    max_attempts: int,
    checker: Checker,
    queue: "asyncio.Queue[BackendOutcome]",
) -> None:
    outcome: BackendOutcome
    try:
        outcome = await invoke(
            analysis_input,
            backend_id,
            backend,
            max_attempts=max_attempts,
            checker=checker,
        )
    except TransportFailure as exc:
        logger.warning("Backend %s failed: %s", backend_id, exc.reason)
        outcome = BackendFailure(backend=backend_id, reason=exc.reason)
    except Exception as exc:
        # Anything else is still confined to this backend
        logger.exception("Backend %s raised unexpectedly", backend_id)
        outcome = BackendFailure(backend=backend_id, reason=str(exc) or type(exc).__name__)
    await queue.put(outcome)


async def dispatch(
    analysis_input: AnalysisInput,
    registry: Mapping[str, BackendCapability],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    checker: Checker = check_result,
) -> AsyncIterator[BackendOutcome]:
    """Yield one terminal outcome per backend, in completion order.

    Raises:
        ValueError: If the registry is empty or ``max_attempts`` < 1.
    """
    if not registry:
        raise ValueError("No backends configured")
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    queue: asyncio.Queue[BackendOutcome] = asyncio.Queue()
    tasks = [
        asyncio.create_task(
            _run_worker(
                analysis_input,
                backend_id,
                backend,
                max_attempts=max_attempts,
                checker=checker,
                queue=queue,
            ),
            name=f"mindscan-backend-{backend_id}",
        )
        for backend_id, backend in registry.items()
    ]
    try:
        for _ in range(len(tasks)):
            yield await queue.get()
    finally:
        pending = [t for t in tasks if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            logger.info("Cancelled %d in-flight backend call(s)", len(pending))
            await asyncio.gather(*pending, return_exceptions=True)
