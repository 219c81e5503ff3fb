"""Command-line interface for MINDSCAN.

This module uses :mod:`click` to expose the analysis orchestrator
locally (``analyze``), run the HTTP server (``serve``), manage the
credit ledger database (``db-init``, ``credits``) and validate the
environment (``config-check``).
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from typing import List, Optional

import click

from .config import MIN_TEXT_CHARS, PROJECT_NAME, configured_backends
from .errors import AdmissionDenied, TotalFailure
from .ledger.cli import credits
from .llm.models import ANALYSIS_KINDS, AnalysisInput
from .llm.policy import BACKEND_VENDORS, VENDOR_API_KEYS, alias_for, validate_backends
from .orchestration.service import AnalysisService, service_from_env

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@click.group()
@click.option(
    "--log-level",
    default="WARNING",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level for diagnostic output on stderr.",
)
def cli(log_level: str) -> None:
    """MINDSCAN command-line interface."""
    logging.basicConfig(level=getattr(logging, log_level.upper()), format=LOG_FORMAT)


def _parse_backends(raw: Optional[str]) -> Optional[List[str]]:
    if not raw:
        return None
    try:
        return validate_backends(b.strip().upper() for b in raw.split(",") if b.strip())
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--backends")


def _build_service(
    mode: Optional[str],
    backends: Optional[List[str]],
    max_attempts: Optional[int],
    with_ledger: bool,
) -> AnalysisService:
    """Construct the analysis service; factored out so tests can monkeypatch it."""
    return service_from_env(
        mode=mode,
        backends=backends,
        max_attempts=max_attempts,
        with_ledger=with_ledger,
    )


@cli.command()
@click.argument("source", type=click.File("r", encoding="utf-8"), default="-")
@click.option(
    "--kind",
    default="cognitive",
    show_default=True,
    type=click.Choice(ANALYSIS_KINDS),
    help="Analysis to run.",
)
@click.option("--stream", "stream_", is_flag=True, help="Print SSE frames as backends finish.")
@click.option("--account", default=None, help="Ledger account to charge (requires DATABASE_URL).")
@click.option(
    "--max-attempts",
    default=None,
    type=click.IntRange(min=1),
    help="Maximum calls per backend, first attempt included (defaults to MINDSCAN_MAX_ATTEMPTS or 3).",
)
@click.option("--backends", default=None, help="Comma-separated backend identifiers, e.g. A,C.")
@click.option("--provider", default=None, help="Run only the backend behind this provider alias, e.g. provider-2.")
@click.option(
    "--mode",
    default=None,
    type=click.Choice(["fake", "live"], case_sensitive=False),
    help="Backend mode (defaults to LLM_MODE or fake).",
)
def analyze(
    source,
    kind: str,
    stream_: bool,
    account: Optional[str],
    max_attempts: Optional[int],
    backends: Optional[str],
    provider: Optional[str],
    mode: Optional[str],
) -> None:
    """Analyze the text in SOURCE (a file, or stdin when omitted).

    Without ``--stream`` the combined result is printed as one JSON
    object keyed by provider alias.  ``--provider`` limits a blocking
    run to one backend.  The command exits with status 2 when every
    backend failed.
    """
    text = source.read()
    if len(text) < MIN_TEXT_CHARS:
        raise click.ClickException(
            f"Text is too short. Please provide at least {MIN_TEXT_CHARS} characters for analysis."
        )
    selected = _parse_backends(backends)
    try:
        service = _build_service(mode, selected, max_attempts, account is not None)
    except (ValueError, RuntimeError) as exc:
        raise click.ClickException(str(exc))
    if provider is not None:
        if stream_:
            raise click.UsageError("--provider cannot be combined with --stream")
        try:
            service.backend_for(provider)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="--provider")
    if account is not None and service.ledger is None:
        raise click.ClickException("--account requires a credit ledger; set DATABASE_URL")
    analysis_input = AnalysisInput(text=text, kind=kind)

    if stream_:
        async def _consume() -> None:
            async for event in service.stream(analysis_input, account_id=account):
                click.echo(event.to_frame(), nl=False)

        asyncio.run(_consume())
        return

    try:
        if provider is not None:
            report = asyncio.run(service.analyze_one(analysis_input, provider, account_id=account))
        else:
            report = asyncio.run(service.analyze(analysis_input, account_id=account))
    except AdmissionDenied as exc:
        raise click.ClickException(f"{exc.reason}: {exc.required} credits required")
    except TotalFailure as exc:
        click.echo(str(exc), err=True)
        for backend_id, failure in exc.outcome.failures().items():
            click.echo(f"  {alias_for(backend_id)}: {failure.reason}", err=True)
        click.get_current_context().exit(2)
    click.echo(json.dumps(report.to_body(), indent=2))


@cli.command()
@click.option("--host", default="127.0.0.1", show_default=True, help="Interface to bind.")
@click.option("--port", default=8000, show_default=True, type=int, help="Port to listen on.")
@click.option("--reload", is_flag=True, help="Reload on code changes (development only).")
def serve(host: str, port: int, reload: bool) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    click.echo(f"Starting {PROJECT_NAME} API on http://{host}:{port}")
    uvicorn.run("mindscan.api.server:app", host=host, port=port, reload=reload)


@cli.command(name="db-init")
def db_init() -> None:
    """Create or upgrade the credit ledger tables via Alembic.

    Reads the connection string from ``DATABASE_URL``.
    """
    from .db.migrations import upgrade_head  # alembic is only needed here

    try:
        upgrade_head()
    except Exception as exc:
        raise click.ClickException(f"Database initialization failed: {exc}")
    click.echo("Database initialization complete.")


@cli.command(name="config-check")
@click.option(
    "--mode",
    default="fake",
    type=click.Choice(["fake", "live"], case_sensitive=False),
    help="Configuration mode to validate: 'fake' or 'live'",
)
@click.option("--backends", default=None, help="Backends to check (defaults to MINDSCAN_BACKENDS).")
def config_check(mode: str, backends: Optional[str]) -> None:
    """Validate that required configuration variables are present.

    Fake mode needs no keys and always succeeds.  Live mode checks the
    API key of every selected backend's vendor; missing keys are listed
    in sorted order and the command exits with status 2.
    """
    if mode.lower() == "fake":
        click.echo("OK (fake); vendor keys not required")
        return
    selected = _parse_backends(backends) or validate_backends(configured_backends())
    missing = sorted(
        {
            VENDOR_API_KEYS[BACKEND_VENDORS[b]]
            for b in selected
            if not os.getenv(VENDOR_API_KEYS[BACKEND_VENDORS[b]])
        }
    )
    if missing:
        click.echo("Missing environment variables: " + ", ".join(missing), err=True)
        click.get_current_context().exit(2)
    else:
        click.echo("OK (live)")


cli.add_command(credits, name="credits")
