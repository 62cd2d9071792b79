"""Device-side command line interface."""

from notico.cli.app import app

__all__ = ["app"]
