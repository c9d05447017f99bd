"""CLI module - command line entry point for csfmod."""

from csfmod.cli.main import app

__all__ = ["app"]
