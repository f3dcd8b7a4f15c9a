"""HTTP surface for the dispatch engine."""

from .app import create_app

__all__ = ["create_app"]
