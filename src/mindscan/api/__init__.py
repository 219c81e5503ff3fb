"""FastAPI application for MINDSCAN."""

from .server import create_app

__all__ = ["create_app"]
