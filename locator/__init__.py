"""Locator: share the device location with a configured HTTP endpoint."""

__version__ = "0.1.0"
