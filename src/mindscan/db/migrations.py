"""Run Alembic migrations from Python.

``upgrade_head`` locates ``alembic.ini`` at the repository root and
applies every pending revision, independent of the current working
directory::

    from mindscan.db.migrations import upgrade_head
    upgrade_head()  # uses DATABASE_URL
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config

from .session import database_url


def _project_root() -> Path:
    # <repo>/src/mindscan/db/migrations.py
    return Path(__file__).resolve().parents[3]


def alembic_config(url: Optional[str] = None) -> Config:
    """Build an Alembic config with absolute script locations."""
    root = _project_root()
    ini_path = root / "alembic.ini"
    if not ini_path.exists():
        raise FileNotFoundError(f"alembic.ini not found at {ini_path}")
    cfg = Config(str(ini_path))
    cfg.attributes["configure_logger"] = False
    script_location = root / "alembic"
    cfg.set_main_option("script_location", str(script_location))
    cfg.set_main_option("version_locations", str(script_location / "versions"))
    url = url or database_url()
    if url:
        cfg.set_main_option("sqlalchemy.url", url)
    return cfg


def upgrade_head(url: Optional[str] = None) -> None:
    """Upgrade the database schema to the latest revision.

    Args:
        url: Database URL; defaults to ``DATABASE_URL``.

    Raises:
        RuntimeError: If no database URL is available.
        FileNotFoundError: If ``alembic.ini`` cannot be found.
    """
    url = url or database_url()
    if not url:
        raise RuntimeError("DATABASE_URL environment variable is not set")
    command.upgrade(alembic_config(url), "head")
