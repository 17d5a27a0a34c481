"""Command-line interface for matrixwatch."""
