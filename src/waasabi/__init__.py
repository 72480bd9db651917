"""Waasabi - Matrix bot keeping conference rooms in sync with the event backend."""

__version__ = "0.3.0"
