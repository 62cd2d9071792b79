"""Notico - offline-first notes, links and reminders with server sync."""

__version__ = "0.1.0"
