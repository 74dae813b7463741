"""Configuration module for the Raito client."""

from .settings import Settings, settings

__all__ = ["Settings", "settings"]
