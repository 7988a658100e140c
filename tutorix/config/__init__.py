"""Configuration package for the Tutorix fee payments backend."""

from tutorix.config.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
