"""Configuration module for MacroPolicy."""

from macropolicy.config.schema import Config
from macropolicy.config.validator import ConfigValidator

__all__ = ["Config", "ConfigValidator"]
