"""Config module - YAML configuration parsing."""

from .schema import (
    DEFAULT_CONFIG_FILE,
    FormatConfig,
    Options,
    RerunConfig,
    ValidationError,
    ValidationResult,
)
from .parser import find_config, parse_config, parse_config_data
from .validator import validate_options

__all__ = [
    "DEFAULT_CONFIG_FILE",
    "FormatConfig",
    "Options",
    "RerunConfig",
    "ValidationError",
    "ValidationResult",
    "find_config",
    "parse_config",
    "parse_config_data",
    "validate_options",
]
