"""Configuration module: exports Settings and a module-level default instance."""

from ragloader.config.settings import Settings

settings = Settings()

__all__ = ["Settings", "settings"]
