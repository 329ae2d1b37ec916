"""Development sink that accepts location reports."""

from .app import create_app

__all__ = ["create_app"]
