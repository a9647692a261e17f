"""Command-line interface for Flow Studio."""
