"""Fan-out/fan-in aggregation for blocking requests.

:func:`run_all` dispatches the input to every registered backend, waits
until each has reached a terminal state and returns the per-backend
outcome map.  A failing backend never cancels or delays its siblings.
When no backend produced a result the call raises
:class:`~mindscan.errors.TotalFailure` instead of returning an
all-failure map.  No global deadline is imposed; each backend enforces
its own timeout.
"""

from __future__ import annotations

import logging
from typing import Dict, Mapping

from ..config import DEFAULT_MAX_ATTEMPTS
from ..errors import TotalFailure
from ..llm.client import BackendCapability
from ..llm.models import AnalysisInput
from .checker import check_result
from .fanout import dispatch
from .invoker import Checker
from .models import AggregateOutcome, BackendOutcome

logger = logging.getLogger(__name__)


async def run_all(
    analysis_input: AnalysisInput,
    registry: Mapping[str, BackendCapability],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    checker: Checker = check_result,
) -> AggregateOutcome:
    """Run every backend concurrently and collect their outcomes.

    Returns:
        AggregateOutcome: One entry per backend in ``registry``, keyed
        in registry order.

    Raises:
        TotalFailure: If every backend failed.
        ValueError: If the registry is empty or ``max_attempts`` < 1.
    """
    collected: Dict[str, BackendOutcome] = {}
    async for outcome in dispatch(
        analysis_input, registry, max_attempts=max_attempts, checker=checker
    ):
        collected[outcome.backend] = outcome
    # Present entries in dispatch order rather than completion order
    entries = {backend_id: collected[backend_id] for backend_id in registry}
    outcome_map = AggregateOutcome(kind=analysis_input.kind, entries=entries)
    if not outcome_map.successes():
        reasons = "; ".join(f"{b}: {f.reason}" for b, f in outcome_map.failures().items())
        logger.error("All %d backends failed (%s)", len(entries), reasons)
        raise TotalFailure(outcome_map)
    return outcome_map
