"""Command line interface for Rekon."""

from .main import main

__all__ = ["main"]
