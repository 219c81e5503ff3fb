"""Tests for database initialization and the ``credits`` commands.

``mindscan db-init`` runs the real Alembic migrations against a
temporary SQLite database; the ``credits`` commands then operate on the
resulting tables.
"""

from __future__ import annotations

import pytest
import sqlalchemy as sa
from click.testing import CliRunner
from sqlalchemy import inspect

from mindscan.cli import cli


def test_db_init_then_credits(tmp_path, monkeypatch: pytest.MonkeyPatch) -> None:
    url = f"sqlite:///{tmp_path / 'mindscan.db'}"
    monkeypatch.setenv("DATABASE_URL", url)
    runner = CliRunner()

    result = runner.invoke(cli, ["db-init"])
    assert result.exit_code == 0, result.output
    tables = set(inspect(sa.create_engine(url)).get_table_names())
    assert {"credit_account", "credit_usage", "alembic_version"}.issubset(tables)

    result = runner.invoke(cli, ["credits", "grant", "alice", "300"])
    assert result.exit_code == 0, result.output
    assert "balance is now 300" in result.output

    result = runner.invoke(cli, ["credits", "balance", "alice"])
    assert result.exit_code == 0, result.output
    assert "alice: 300 credits" in result.output

    result = runner.invoke(cli, ["credits", "balance", "bob"])
    assert result.exit_code == 1
    assert "Unknown account: bob" in result.output


def test_db_init_without_database_url_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    result = CliRunner().invoke(cli, ["db-init"])
    assert result.exit_code == 1
    assert "DATABASE_URL" in result.output
