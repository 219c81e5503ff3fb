"""Retrying invoker: one backend, bounded attempts, feedback on retry.

The invoker calls a single backend capability, parses the response and
runs the acceptability checker on it.  A valid result is returned
immediately.  An invalid one is retried with the violation names fed
back into the next request until ``max_attempts`` calls have been
made, after which the last result is returned flagged as degraded.

Transport problems are not retried here: a backend that raises, or
answers with something that is not a JSON object, ends the invocation
with :class:`~mindscan.errors.TransportFailure` straight away.

Attempts within one invocation are strictly sequential, and the loop
touches no state outside its own :class:`AttemptState`.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from ..config import DEFAULT_MAX_ATTEMPTS
from ..errors import TransportFailure
from ..llm.client import BackendCapability, parse_json_response
from ..llm.models import AnalysisInput, BackendRequest
from .checker import check_result
from .models import BackendResult, CheckResult

logger = logging.getLogger(__name__)

Checker = Callable[[str, Any], CheckResult]


@dataclass
class AttemptState:
    """Per-(backend, request) retry state.

    Attributes:
        backend: Identifier of the backend being invoked.
        max_attempts: Upper bound on backend calls.
        attempts: Calls made so far.
        feedback: Violations of the previous attempt, joined, or None.
        last_result: The most recently parsed payload.
        violations: Violations of ``last_result``.
    """

    backend: str
    max_attempts: int
    attempts: int = 0
    feedback: Optional[str] = None
    last_result: Optional[Dict[str, Any]] = None
    violations: List[str] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.attempts >= self.max_attempts


async def call_backend(backend: BackendCapability, request: BackendRequest) -> Any:
    """Call a capability, awaiting coroutine functions and threading plain ones."""
    analyze = backend.analyze
    if inspect.iscoroutinefunction(analyze):
        return await analyze(request)
    return await asyncio.to_thread(analyze, request)


async def invoke(
    analysis_input: AnalysisInput,
    backend_id: str,
    backend: BackendCapability,
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    checker: Checker = check_result,
) -> BackendResult:
    """Run the request/validate loop for one backend.

    Args:
        analysis_input: The text and analysis kind.
        backend_id: Identifier used in results, errors and logs.
        backend: The capability to call.
        max_attempts: Maximum number of backend calls, at least 1.
        checker: Acceptability checker, ``check_result`` by default.

    Returns:
        BackendResult: The first valid result, or the last result with
        ``degraded=True`` once the bound is reached.

    Raises:
        ValueError: If ``max_attempts`` is smaller than 1.
        TransportFailure: If the backend errors or returns output that
            is not a JSON object.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
    state = AttemptState(backend=backend_id, max_attempts=max_attempts)
    kind = analysis_input.kind
    while True:
        request = BackendRequest(
            input=analysis_input,
            feedback=state.feedback,
            attempt=state.attempts + 1,
        )
        try:
            raw = await call_backend(backend, request)
        except TransportFailure:
            raise
        except Exception as exc:
            raise TransportFailure(backend_id, str(exc) or type(exc).__name__) from exc
        state.attempts += 1
        try:
            payload = parse_json_response(raw)
        except ValueError as exc:
            raise TransportFailure(backend_id, f"malformed response: {exc}") from exc
        state.last_result = payload
        verdict = checker(kind, payload)
        if verdict.valid:
            return BackendResult(backend=backend_id, payload=payload, attempts=state.attempts)
        state.violations = list(verdict.violations)
        if state.exhausted:
            logger.warning(
                "Backend %s exhausted %d attempts; accepting result with violations: %s",
                backend_id,
                state.attempts,
                "; ".join(state.violations),
            )
            return BackendResult(
                backend=backend_id,
                payload=payload,
                attempts=state.attempts,
                degraded=True,
                violations=state.violations,
            )
        state.feedback = ", ".join(state.violations)
        logger.info(
            "Invalid result from %s on attempt %d, retrying with feedback: %s",
            backend_id,
            state.attempts,
            state.feedback,
        )
