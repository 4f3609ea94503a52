"""Infrastructure adapters shared across bimillog domains."""
