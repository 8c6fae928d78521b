"""Command-line interface for tgsync."""
