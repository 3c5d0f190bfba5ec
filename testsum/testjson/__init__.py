"""testjson module - Reading, aggregating and formatting go test -json output."""

from .event import Action, BadEventError, TestEvent, parse_event
from .execution import (
    Execution,
    Package,
    TestCase,
    filter_failed_unique,
    split_test_name,
)
from .scanner import EventHandler, NoopHandler, ScanConfig, scan_test_output
from .format import (
    FORMAT_NAMES,
    EventFormatter,
    FormatOptions,
    new_event_formatter,
)
from .compact import CompactFormatter, parse_compact_name_format
from .pkgpath import relative_package_path, set_package_path_prefix
from .summary import Summary, parse_summary, print_summary

__all__ = [
    "Action",
    "BadEventError",
    "TestEvent",
    "parse_event",
    "Execution",
    "Package",
    "TestCase",
    "filter_failed_unique",
    "split_test_name",
    "EventHandler",
    "NoopHandler",
    "ScanConfig",
    "scan_test_output",
    "FORMAT_NAMES",
    "EventFormatter",
    "FormatOptions",
    "new_event_formatter",
    "CompactFormatter",
    "parse_compact_name_format",
    "relative_package_path",
    "set_package_path_prefix",
    "Summary",
    "parse_summary",
    "print_summary",
]
