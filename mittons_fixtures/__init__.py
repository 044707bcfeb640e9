"""Ephemeral container-based test environments."""

__version__ = "0.1.0"
