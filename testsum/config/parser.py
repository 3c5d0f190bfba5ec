"""YAML configuration parser for testsum.

Parses a YAML configuration file into an Options dataclass object.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .schema import DEFAULT_CONFIG_FILE, FormatConfig, Options, RerunConfig

LOGGER = logging.getLogger(__name__)

# Expected types of the scalar and list fields, by dataclass.
_FIELD_TYPES: dict[type, dict[str, tuple[type, ...]]] = {
    Options: {
        "format": (str,),
        "jsonfile": (str,),
        "jsonfile_timing_events": (str,),
        "max_fails": (int,),
        "summary": (str,),
        "slow_threshold": (int, float),
        "go_test_args": (list,),
        "packages": (list,),
        "ignore_non_json_output_lines": (bool,),
        "debug": (bool,),
    },
    FormatConfig: {
        "hide_empty_packages": (bool,),
        "hivis": (bool,),
        "wall_time": (bool,),
        "output_test_failures": (bool,),
        "width": (int,),
        "compact_pkg_name_format": (str,),
    },
    RerunConfig: {
        "max_attempts": (int,),
        "max_initial_failures": (int,),
        "run_root_cases_only": (bool,),
        "report_file": (str,),
    },
}


def parse_config(file_path: Union[str, Path]) -> Options:
    """Parse a YAML configuration file into an Options object.

    Args:
        file_path: Path to the YAML configuration file.

    Returns:
        Parsed Options object.

    Raises:
        FileNotFoundError: If the configuration file doesn't exist.
        ValueError: If the YAML is malformed or a field has the wrong type.
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise FileNotFoundError(f"Config file not found: {file_path}")

    if file_path.suffix not in (".yaml", ".yml"):
        raise ValueError(f"Expected .yaml or .yml file, got: {file_path.suffix}")

    with open(file_path, "r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in {file_path}: {e}") from e

    if data is None:
        LOGGER.debug("empty config file %s", file_path)
        return Options()

    return parse_config_data(data, source=str(file_path))


def find_config(directory: Optional[Path] = None) -> Optional[Path]:
    """Return the default config file in directory if it exists."""
    path = (directory or Path.cwd()) / DEFAULT_CONFIG_FILE
    return path if path.is_file() else None


def parse_config_data(data: dict, source: str = "<inline>") -> Options:
    """Parse options from a dictionary (already loaded YAML).

    Unknown keys are ignored.

    Args:
        data: Dictionary with configuration data.
        source: Source identifier for error messages.

    Returns:
        Parsed Options object.

    Raises:
        ValueError: If a field has the wrong type.
    """
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a YAML mapping, got {type(data).__name__}")

    format_data = _section(data, "format_options", source)
    rerun_data = _section(data, "rerun_fails", source)

    options = Options(**_fields(Options, data, "", source))
    options.format_options = FormatConfig(**_fields(FormatConfig, format_data, "format_options.", source))
    options.rerun_fails = RerunConfig(**_fields(RerunConfig, rerun_data, "rerun_fails.", source))

    for name in ("go_test_args", "packages"):
        values = getattr(options, name)
        if not all(isinstance(v, str) for v in values):
            raise ValueError(f"'{name}' must be a list of strings in {source}")
    return options


def _fields(cls: type, data: dict, context: str, source: str) -> dict[str, Any]:
    """Select the known scalar fields of cls from data, and check their types."""
    types = _FIELD_TYPES[cls]
    result = {}
    for key, value in data.items():
        if key not in types:
            if key not in cls.__dataclass_fields__:
                LOGGER.debug("ignoring unknown config field %s%s", context, key)
            continue
        if value is None:
            continue
        expected = types[key]
        # bool is an int, but an int field should not accept true
        if not isinstance(value, expected) or (isinstance(value, bool) and bool not in expected):
            names = " or ".join(t.__name__ for t in expected)
            raise ValueError(f"'{context}{key}' must be {names} in {source}, got {type(value).__name__}")
        result[key] = value
    return result


def _section(data: dict, key: str, source: str) -> dict:
    """The nested mapping at key. A missing or null section is empty."""
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping in {source}")
    return value
