"""Concrete adapters for the external services behind ``ragloader.interfaces``."""
