"""API models for kvgate."""
