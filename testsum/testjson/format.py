"""Formatters which print test events as they are read.

A formatter is selected by name with new_event_formatter. Most formats map a
single event to a string; those are wrapped in a FuncFormatter which writes
the string to the output stream.
"""

import re
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Callable, Optional, TextIO

from .event import Action, TestEvent
from .execution import Execution, Package, is_coverage_output
from .pkgpath import relative_package_path

DEFAULT_WIDTH = 120

FORMAT_NAMES = (
    "none",
    "debug",
    "standard-json",
    "standard-verbose",
    "standard-quiet",
    "dots",
    "testname",
    "short-verbose",
    "pkgname",
    "short",
    "pkgname-and-test-fails",
    "short-with-failures",
    "pkgname-compact",
)

ICONS = {Action.SKIP: "∅", Action.PASS: "✓", Action.FAIL: "✖"}
HI_VISIBILITY_ICONS = {Action.SKIP: "➖", Action.PASS: "✅", Action.FAIL: "❌"}

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


@dataclass
class FormatOptions:
    """Options for the formats which print package lines."""
    hide_empty_packages: bool = False
    use_hi_visibility_icons: bool = False
    # Prefix each new line of the compact format with the elapsed time.
    output_wall_time: bool = False
    output_test_failures: bool = True
    # Terminal width. None: detect from the terminal.
    width: Optional[int] = None
    # How the compact format shortens joined package names, ex: partial-back-dots2.
    compact_pkg_name_format: str = "partial-back"

    def terminal_width(self) -> int:
        if self.width:
            return self.width
        return shutil.get_terminal_size((DEFAULT_WIDTH, 24)).columns or DEFAULT_WIDTH


class EventFormatter(ABC):
    """Writes a representation of each event to an output stream."""

    @abstractmethod
    def format(self, event: TestEvent, execution: Execution) -> None:
        """Format and write one event."""

    def close(self) -> None:
        """Finish any partially written output."""


class FuncFormatter(EventFormatter):
    """Adapts a function returning a string into an EventFormatter."""

    def __init__(self, out: TextIO, func: Callable[[TestEvent, Execution], str]):
        self.out = out
        self.func = func

    def format(self, event: TestEvent, execution: Execution) -> None:
        text = self.func(event, execution)
        if text:
            self.out.write(text)
            self.out.flush()


def format_duration(elapsed: timedelta) -> str:
    """Format a duration the way go prints it, ex: 450ms, 1.2s, 1m3.5s."""
    millis = round(elapsed.total_seconds() * 1000)
    if millis < 1000:
        return f"{millis}ms"
    minutes, millis = divmod(millis, 60_000)
    seconds = f"{millis / 1000:.3f}".rstrip("0").rstrip(".")
    if minutes:
        return f"{minutes}m{seconds}s"
    return f"{seconds}s"


def display_width(text: str) -> int:
    """Number of terminal columns used by text.

    ANSI color sequences use no columns, the hi-visibility icons use two.
    """
    text = _ANSI_RE.sub("", text)
    wide = sum(text.count(icon) for icon in HI_VISIBILITY_ICONS.values())
    return len(text) + wide


def package_line(event: TestEvent, pkg: Package) -> str:
    """The package path, cached or elapsed, and coverage, ex: foo (1.2s) (coverage: 80.0% of statements)."""
    line = relative_package_path(event.package)
    if pkg.cached:
        line += " (cached)"
    elif event.elapsed:
        line += f" ({format_duration(timedelta(seconds=event.elapsed))})"
    if pkg.coverage:
        line += f" ({pkg.coverage})"
    return line + "\n"


def short_format_package_event(opts: FormatOptions, event: TestEvent, execution: Execution) -> str:
    """An icon followed by the package line, or an empty string."""
    pkg = execution.package(event.package)
    if pkg is None or not event.action.is_terminal:
        return ""

    icons = HI_VISIBILITY_ICONS if opts.use_hi_visibility_icons else ICONS
    action = event.action
    if action == Action.PASS and pkg.total == 0:
        action = Action.SKIP
    if action == Action.SKIP and opts.hide_empty_packages:
        return ""
    return icons[action] + "  " + package_line(event, pkg)


def debug_format(event: TestEvent, execution: Execution) -> str:
    timestamp = int(event.time.timestamp()) if event.time else 0
    elapsed = event.elapsed if event.elapsed is not None else -1.0
    return (
        f"{event.package} {event.test} {event.action.value} "
        f"({elapsed:.3f}) [{timestamp}] {event.output}\n"
    )


def standard_verbose_format(event: TestEvent, execution: Execution) -> str:
    """go test -v"""
    if event.action == Action.OUTPUT:
        return event.output
    return ""


def is_warning_no_tests_to_run_output(output: str) -> bool:
    return output == "testing: warning: no tests to run\n"


def is_shuffle_seed_output(output: str) -> bool:
    return output.startswith("-test.shuffle ")


def standard_quiet_format(event: TestEvent, execution: Execution) -> str:
    """go test"""
    if not event.package_event:
        return ""
    if event.output == "PASS\n" or is_coverage_output(event.output):
        return ""
    if is_warning_no_tests_to_run_output(event.output):
        return ""
    return event.output


def is_pkg_failure_output(event: TestEvent) -> bool:
    """True for package output which is not one of the expected framing lines.

    This output comes from a failure in init() or TestMain, ex: exit(1) or a
    panic.
    """
    out = event.output
    return (
        event.package_event
        and event.action == Action.OUTPUT
        and out not in ("PASS\n", "FAIL\n")
        and not is_warning_no_tests_to_run_output(out)
        and not out.startswith("FAIL\t" + event.package)
        and not out.startswith("ok  \t" + event.package)
        and not out.startswith("?   \t" + event.package)
        and not is_shuffle_seed_output(out)
    )


def join_pkg_to_test_name(pkg: str, test: str) -> str:
    if pkg == ".":
        return test
    return f"{pkg}.{test}"


def format_run_id(run_id: int) -> str:
    if run_id <= 0:
        return ""
    return f" (re-run {run_id})"


def testname_format(event: TestEvent, execution: Execution) -> str:
    result = event.action.value.upper()

    if is_pkg_failure_output(event):
        return event.output

    if event.package_event:
        if not event.action.is_terminal:
            return ""
        pkg = execution.package(event.package)
        if event.action == Action.SKIP or (event.action == Action.PASS and pkg.total == 0):
            result = "EMPTY"
        # elapsed is not shown for packages
        return result + " " + package_line(replace(event, elapsed=0.0), pkg)

    name = join_pkg_to_test_name(relative_package_path(event.package), event.test)
    line = f"{result} {name}{format_run_id(event.run_id)} {event.elapsed_formatted()}\n"
    if event.action == Action.FAIL:
        pkg = execution.package(event.package)
        tc = pkg.last_failed_by_name(event.test)
        return "".join(pkg.output_lines(tc)) + line
    if event.action == Action.PASS:
        return line
    return ""


def pkg_name_format(opts: FormatOptions) -> Callable[[TestEvent, Execution], str]:
    def format_event(event: TestEvent, execution: Execution) -> str:
        if not event.package_event:
            return ""
        return short_format_package_event(opts, event, execution)
    return format_event


def pkg_name_with_failures_format(opts: FormatOptions) -> Callable[[TestEvent, Execution], str]:
    def format_event(event: TestEvent, execution: Execution) -> str:
        if not event.package_event:
            if event.action == Action.FAIL:
                pkg = execution.package(event.package)
                tc = pkg.last_failed_by_name(event.test)
                return "".join(pkg.output_lines(tc))
            return ""
        return short_format_package_event(opts, event, execution)
    return format_event


class StandardJSONFormatter(EventFormatter):
    """go test -json: every event is written as it was read."""

    def __init__(self, out: TextIO):
        self.out = out

    def format(self, event: TestEvent, execution: Execution) -> None:
        if not event.raw:
            return
        self.out.write(event.raw.decode("utf-8", errors="replace") + "\n")
        self.out.flush()


class DotsFormatter(EventFormatter):
    """One character per test, after the package name in brackets."""

    DOTS = {Action.PASS: "·", Action.FAIL: "✖", Action.SKIP: "↷"}

    def __init__(self, out: TextIO):
        self.out = out

    def format(self, event: TestEvent, execution: Execution) -> None:
        if event.package_event:
            return
        pkg = execution.package(event.package)
        if event.action == Action.RUN and pkg.total == 1:
            self.out.write(f"[{relative_package_path(event.package)}]")
        else:
            self.out.write(self.DOTS.get(event.action, ""))
        self.out.flush()


class NoneFormatter(EventFormatter):
    def format(self, event: TestEvent, execution: Execution) -> None:
        pass


def new_event_formatter(out: TextIO, name: str, options: Optional[FormatOptions] = None) -> EventFormatter:
    """Return the formatter with this name.

    Raises:
        ValueError: If there is no format with this name.
    """
    from .compact import CompactFormatter

    opts = options or FormatOptions()
    if name == "none":
        return NoneFormatter()
    if name == "debug":
        return FuncFormatter(out, debug_format)
    if name == "standard-json":
        return StandardJSONFormatter(out)
    if name == "standard-verbose":
        return FuncFormatter(out, standard_verbose_format)
    if name == "standard-quiet":
        return FuncFormatter(out, standard_quiet_format)
    if name == "dots":
        return DotsFormatter(out)
    if name in ("testname", "short-verbose"):
        return FuncFormatter(out, testname_format)
    if name in ("pkgname", "short"):
        return FuncFormatter(out, pkg_name_format(opts))
    if name in ("pkgname-and-test-fails", "short-with-failures"):
        return FuncFormatter(out, pkg_name_with_failures_format(opts))
    if name == "pkgname-compact":
        return CompactFormatter(out, opts)
    raise ValueError(f"unknown format {name}")
