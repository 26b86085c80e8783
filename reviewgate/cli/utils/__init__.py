"""Console and error-handling helpers for the CLI."""
