"""Configuration module for kvgate."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
