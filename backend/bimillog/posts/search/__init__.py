"""Post search planning and execution."""
