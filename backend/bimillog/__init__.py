"""Popularity ranking, hot-list caching and search for bimillog."""

__version__ = "0.1.0"
