"""Command-line interface for netprobe."""
