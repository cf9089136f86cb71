"""Configuration module -- exports Settings and load_config."""

from livekb.config.loader import load_config
from livekb.config.settings import Settings

__all__ = ["Settings", "load_config"]
