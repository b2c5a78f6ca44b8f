"""REST API for Rekon."""

from .app import app

__all__ = ["app"]
