"""Configuration package exports."""

from .config_loader import ConfigLoader, load_config
from .model import SessionConfig

__all__ = ["ConfigLoader", "SessionConfig", "load_config"]
