"""Configuration data models for testsum.

Defines dataclasses for the YAML configuration file. Every field has a
default, so an empty file is a valid configuration.
"""

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Optional

from ..runner.policy import RerunPolicy
from ..testjson.format import FORMAT_NAMES, FormatOptions
from ..testjson.summary import Summary, parse_summary

VALID_FORMATS = set(FORMAT_NAMES)
DEFAULT_CONFIG_FILE = "testsum.yaml"


@dataclass
class FormatConfig:
    """Options for the formats which print package lines."""
    hide_empty_packages: bool = False
    hivis: bool = False
    wall_time: bool = False
    output_test_failures: bool = True
    width: Optional[int] = None
    compact_pkg_name_format: str = "partial-back"

    def to_format_options(self) -> FormatOptions:
        return FormatOptions(
            hide_empty_packages=self.hide_empty_packages,
            use_hi_visibility_icons=self.hivis,
            output_wall_time=self.wall_time,
            output_test_failures=self.output_test_failures,
            width=self.width,
            compact_pkg_name_format=self.compact_pkg_name_format,
        )


@dataclass
class RerunConfig:
    """Rerun failed tests."""
    max_attempts: int = 0
    max_initial_failures: int = 10
    run_root_cases_only: bool = False
    report_file: Optional[str] = None

    def to_policy(self) -> RerunPolicy:
        return RerunPolicy(
            max_attempts=self.max_attempts,
            max_initial_failures=self.max_initial_failures,
            run_root_cases_only=self.run_root_cases_only,
            report_file=self.report_file,
        )


@dataclass
class Options:
    """All the options of a testsum run."""
    format: str = "pkgname"
    format_options: FormatConfig = field(default_factory=FormatConfig)
    jsonfile: Optional[str] = None
    jsonfile_timing_events: Optional[str] = None
    max_fails: int = 0
    summary: str = "all"
    # seconds
    slow_threshold: Optional[float] = None
    rerun_fails: RerunConfig = field(default_factory=RerunConfig)
    go_test_args: list[str] = field(default_factory=list)
    packages: list[str] = field(default_factory=list)
    ignore_non_json_output_lines: bool = False
    debug: bool = False

    @property
    def summary_sections(self) -> Summary:
        return parse_summary(self.summary)

    @property
    def slow_threshold_duration(self) -> Optional[timedelta]:
        if not self.slow_threshold:
            return None
        return timedelta(seconds=self.slow_threshold)

    def to_dict(self) -> dict[str, Any]:
        """Convert options to a dictionary for serialization."""
        return {
            "format": self.format,
            "format_options": dict(self.format_options.__dict__),
            "jsonfile": self.jsonfile,
            "jsonfile_timing_events": self.jsonfile_timing_events,
            "max_fails": self.max_fails,
            "summary": self.summary,
            "slow_threshold": self.slow_threshold,
            "rerun_fails": dict(self.rerun_fails.__dict__),
            "go_test_args": list(self.go_test_args),
            "packages": list(self.packages),
            "ignore_non_json_output_lines": self.ignore_non_json_output_lines,
            "debug": self.debug,
        }


@dataclass
class ValidationError:
    """A single validation error."""
    path: str
    message: str
    severity: str = "error"  # "error" or "warning"


@dataclass
class ValidationResult:
    """Result of options validation."""
    valid: bool
    errors: list[ValidationError] = field(default_factory=list)
    warnings: list[ValidationError] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def __str__(self) -> str:
        if self.valid:
            msg = "Valid"
            if self.warnings:
                msg += f" ({self.warning_count} warnings)"
            return msg
        return f"Invalid: {self.error_count} errors, {self.warning_count} warnings"
