"""Configuration module for mcclient."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
