"""Command-line tools for the credit ledger.

The ``credits`` group reads and tops up account balances in the SQL
ledger configured through ``DATABASE_URL``.  Run ``mindscan db-init``
first to create the tables.
"""

from __future__ import annotations

from typing import Optional

import click

from ..db.session import get_engine
from .sql import SqlCreditLedger


def _build_ledger(database_url: Optional[str]) -> SqlCreditLedger:
    """Construct the ledger; factored out so tests can monkeypatch it."""
    try:
        return SqlCreditLedger(get_engine(database_url))
    except RuntimeError as exc:
        raise click.ClickException(str(exc))


@click.group()
def credits() -> None:
    """Inspect and grant analysis credits."""
    pass


@credits.command("balance")
@click.argument("account_id")
@click.option("--database-url", default=None, help="Database URL (defaults to DATABASE_URL).")
def balance_command(account_id: str, database_url: Optional[str]) -> None:
    """Print the credit balance of ACCOUNT_ID."""
    ledger = _build_ledger(database_url)
    current = ledger.balance(account_id)
    if current is None:
        raise click.ClickException(f"Unknown account: {account_id}")
    click.echo(f"{account_id}: {current} credits")


@credits.command("grant")
@click.argument("account_id")
@click.argument("amount", type=click.IntRange(min=1))
@click.option("--action", default="purchase", show_default=True, help="Label recorded in the usage log.")
@click.option("--database-url", default=None, help="Database URL (defaults to DATABASE_URL).")
def grant_command(account_id: str, amount: int, action: str, database_url: Optional[str]) -> None:
    """Add AMOUNT credits to ACCOUNT_ID, creating the account if needed."""
    ledger = _build_ledger(database_url)
    new_balance = ledger.grant(account_id, amount, action=action)
    click.echo(f"Granted {amount} credits to {account_id}; balance is now {new_balance}")
