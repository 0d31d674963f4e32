"""Event sharing and visibility service."""

__version__ = "0.1.0"
