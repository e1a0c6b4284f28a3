"""Command-line interface for Batch Pacer."""
