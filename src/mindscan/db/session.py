"""Database engine helpers.

The credit ledger talks to the database through a plain SQLAlchemy
:class:`~sqlalchemy.engine.Engine`.  This module builds that engine from
``DATABASE_URL`` so the API server, the CLI and the migration helper
share one way of connecting.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine


def database_url() -> Optional[str]:
    """Return ``DATABASE_URL`` or None when it is unset or blank."""
    url = os.getenv("DATABASE_URL", "").strip()
    return url or None


def get_engine(url: Optional[str] = None, **kwargs) -> Engine:
    """Create a new SQLAlchemy engine.

    Args:
        url: A database URL.  Defaults to ``DATABASE_URL``.
        **kwargs: Passed through to ``sqlalchemy.create_engine``.

    Raises:
        RuntimeError: If no URL is given and ``DATABASE_URL`` is unset.
    """
    url = url or database_url()
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    return create_engine(url, **kwargs)


@contextmanager
def get_session(engine: Engine) -> Iterator[Connection]:
    """Yield a connection inside a transaction.

    The transaction commits when the block exits normally and rolls
    back when it raises.
    """
    with engine.begin() as conn:
        yield conn
