"""Shorten package import paths for display."""

import logging
import re
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger(__name__)

_MODULE_RE = re.compile(r"^module\s+(\S+)", re.MULTILINE)

_prefix: Optional[str] = None


def find_module_path(start: Optional[Path] = None) -> str:
    """Return the module path from the nearest go.mod, or an empty string.

    Args:
        start: Directory to start the search in. Default: the working directory.
    """
    directory = (start or Path.cwd()).resolve()
    for candidate in (directory, *directory.parents):
        go_mod = candidate / "go.mod"
        if not go_mod.is_file():
            continue
        try:
            match = _MODULE_RE.search(go_mod.read_text(encoding="utf-8"))
        except OSError as e:
            LOGGER.warning("failed to read %s: %s", go_mod, e)
            return ""
        if match:
            return match.group(1).strip('"')
        return ""
    return ""


def set_package_path_prefix(prefix: Optional[str]) -> None:
    """Override the prefix removed by relative_package_path.

    None restores discovery from go.mod.
    """
    global _prefix
    _prefix = prefix


def package_path_prefix() -> str:
    global _prefix
    if _prefix is None:
        _prefix = find_module_path()
    return _prefix


def relative_package_path(pkg: str) -> str:
    """Return pkg relative to the module path, ex: testjson, or . for the module root."""
    prefix = package_path_prefix()
    if not prefix:
        return pkg
    if pkg == prefix:
        return "."
    if pkg.startswith(prefix + "/"):
        return pkg[len(prefix) + 1:]
    return pkg
