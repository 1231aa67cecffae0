"""Application settings loading."""

from .app import FetchcatSettings, get_settings


__all__ = ["FetchcatSettings", "get_settings"]
