"""Entry point for running MINDSCAN as a module (``python -m mindscan``)."""

from .cli import cli

if __name__ == "__main__":  # pragma: no cover
    cli()
