"""Throttled, queue-status driven client core for an AI Horde image gallery."""

__version__ = "0.1.0"
