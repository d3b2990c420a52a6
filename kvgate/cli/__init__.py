"""Command line interface for kvgate."""
