"""Command-line interface for streambot."""
