"""
Configuration module.

Frozen dataclass defaults, a YAML-backed loader with defaults < symbol <
session precedence, and validation helpers.
"""
from .defaults import DefaultConfig, get_default_config
from .loader import ConfigLoader
from .validation import ConfigValidator, ValidationError

__all__ = [
    "ConfigLoader",
    "ConfigValidator",
    "DefaultConfig",
    "ValidationError",
    "get_default_config",
]
