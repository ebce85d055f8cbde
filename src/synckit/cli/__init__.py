"""Command-line interface for synckit."""

from synckit.cli.app import app, create_app, run

__all__ = ["app", "create_app", "run"]
