"""Database utilities for MINDSCAN: engine construction and migrations."""

from .session import get_engine, get_session

__all__ = ["get_engine", "get_session"]
