"""Orchestration layer for the MINDSCAN project.

This package dispatches one analysis input to several backends at
once.  The acceptability checker judges each result, the retrying
invoker drives one backend through bounded attempts with feedback, and
results are either aggregated into one blocking response or emitted as
a completion-ordered event stream.
"""

from .models import (
    AggregateOutcome,
    BackendFailure,
    BackendResult,
    CheckResult,
    Completed,
    Done,
    Errored,
    StreamEvent,
)
from .checker import check_result
from .invoker import AttemptState, invoke
from .fanout import dispatch
from .aggregator import run_all
from .emitter import run_streaming
from .preview import make_preview

__all__ = [
    # models
    "AggregateOutcome",
    "BackendFailure",
    "BackendResult",
    "CheckResult",
    "Completed",
    "Done",
    "Errored",
    "StreamEvent",
    # checker
    "check_result",
    # invoker
    "AttemptState",
    "invoke",
    # fan-out, aggregation and streaming
    "dispatch",
    "run_all",
    "run_streaming",
    # preview
    "make_preview",
]
