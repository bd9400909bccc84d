"""Command-line interface for upsert-all."""

from .main import main

__all__ = ["main"]
