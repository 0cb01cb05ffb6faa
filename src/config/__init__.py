"""
Gallery configuration.

Settings come from environment variables (or a .env file): bucket
credentials, the shared auth secret, cache and transcoding knobs.
"""

from .settings import Settings, get_settings

__all__ = ["Settings", "get_settings"]
