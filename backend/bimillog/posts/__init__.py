"""Post popularity ranking, hot-list caching and search."""
