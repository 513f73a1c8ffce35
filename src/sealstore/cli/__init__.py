"""Command line interface."""

from sealstore.cli.app import app

__all__ = ["app"]
