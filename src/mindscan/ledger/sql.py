"""Database-backed credit ledger.

This module implements :class:`~mindscan.ledger.hook.LedgerHook` on a
relational database.  Balances live in the ``credit_account`` table
and every charge or grant appends a row to ``credit_usage`` (see
Alembic revision ``0001_create_credit_ledger``).  All statements are
plain SQL through a passed :class:`sqlalchemy.engine.Engine` and work
on both SQLite and PostgreSQL.

Debits are atomic: the balance is decremented with a guarded
``UPDATE`` so it can never go negative, even when unrelated requests
for the same account settle concurrently.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.engine import Engine

from ..db.session import get_session
from ..errors import LedgerError
from .hook import price_request
from .models import LedgerDelta, UsageReport


class SqlCreditLedger:
    """Credit ledger stored in ``credit_account`` / ``credit_usage``."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def balance(self, account_id: str) -> Optional[int]:
        """Return the balance of ``account_id`` or None if it does not exist."""
        with self.engine.connect() as conn:
            row = conn.execute(
                sa.text("SELECT balance FROM credit_account WHERE account_id = :a"),
                {"a": account_id},
            ).fetchone()
        return int(row[0]) if row is not None else None

    def reserve(self, account_id: str, usage: UsageReport) -> bool:
        """Return True if the account can pay for ``usage``.

        Nothing is held; the charge is made by :meth:`debit`.  Unknown
        accounts are refused.
        """
        current = self.balance(account_id)
        if current is None:
            return False
        return current >= price_request(usage)

    def debit(self, account_id: str, usage: UsageReport) -> LedgerDelta:
        """Charge the account for a completed request.

        Returns:
            LedgerDelta: Credits charged and the resulting balance.

        Raises:
            LedgerError: If the account does not exist or can no longer
                cover the charge.
        """
        cost = price_request(usage)
        now = datetime.now(timezone.utc)
        with get_session(self.engine) as conn:
            if cost > 0:
                updated = conn.execute(
                    sa.text(
                        "UPDATE credit_account SET balance = balance - :c, updated_at_utc = :ts "
                        "WHERE account_id = :a AND balance >= :c"
                    ),
                    {"c": cost, "ts": now, "a": account_id},
                )
                if updated.rowcount != 1:
                    raise LedgerError(f"Cannot debit {cost} credits from account {account_id}")
            row = conn.execute(
                sa.text("SELECT balance FROM credit_account WHERE account_id = :a"),
                {"a": account_id},
            ).fetchone()
            if row is None:
                raise LedgerError(f"Account not found: {account_id}")
            new_balance = int(row[0])
            if cost > 0:
                self._log_usage(conn, account_id, usage.request_id, cost, new_balance, "analysis", now)
        return LedgerDelta(charged=cost, balance=new_balance, settled=True)

    def grant(self, account_id: str, credits: int, action: str = "purchase") -> int:
        """Add credits to an account, creating it if needed, and return the new balance."""
        if credits <= 0:
            raise ValueError(f"credits must be positive, got {credits}")
        now = datetime.now(timezone.utc)
        with get_session(self.engine) as conn:
            updated = conn.execute(
                sa.text(
                    "UPDATE credit_account SET balance = balance + :c, updated_at_utc = :ts "
                    "WHERE account_id = :a"
                ),
                {"c": credits, "ts": now, "a": account_id},
            )
            if updated.rowcount == 0:
                conn.execute(
                    sa.text(
                        "INSERT INTO credit_account (account_id, balance, updated_at_utc) "
                        "VALUES (:a, :c, :ts)"
                    ),
                    {"a": account_id, "c": credits, "ts": now},
                )
            new_balance = int(
                conn.execute(
                    sa.text("SELECT balance FROM credit_account WHERE account_id = :a"),
                    {"a": account_id},
                ).scalar_one()
            )
            # Grants are logged as negative usage
            self._log_usage(conn, account_id, None, -credits, new_balance, action, now)
        return new_balance

    @staticmethod
    def _log_usage(
        conn: sa.engine.Connection,
        account_id: str,
        request_id: Optional[str],
        credits_used: int,
        remaining: int,
        action: str,
        ts: datetime,
    ) -> None:
        conn.execute(
            sa.text(
                "INSERT INTO credit_usage "
                "(account_id, request_id, credits_used, remaining_balance, action, created_at_utc) "
                "VALUES (:a, :rid, :used, :rem, :act, :ts)"
            ),
            {"a": account_id, "rid": request_id, "used": credits_used, "rem": remaining, "act": action, "ts": ts},
        )
