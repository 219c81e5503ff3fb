"""Top-level package for the MINDSCAN project.

MINDSCAN sends one text to several language-model backends at once,
checks every answer against the contract of the requested analysis and
returns the combined results, either all at once or streamed as each
backend finishes.  The command-line interface lives in
:mod:`mindscan.cli`, the HTTP API in :mod:`mindscan.api`, the
concurrent machinery in :mod:`mindscan.analysis` and credit accounting
in :mod:`mindscan.ledger`.
"""

__all__ = [
    "analysis",
    "api",
    "cli",
    "db",
    "ledger",
    "llm",
    "orchestration",
]
