"""
Remote configuration sources for the Workflow Service.
"""

from .base import ConfigSource, ConfigSourceError, StaticConfigSource
from .gist import GistConfigSource

__all__ = ["ConfigSource", "ConfigSourceError", "StaticConfigSource", "GistConfigSource"]
