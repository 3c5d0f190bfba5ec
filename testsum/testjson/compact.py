"""The pkgname-compact format.

Package results are packed onto as few lines as fit in the terminal. A
package which shares a path prefix with the package printed before it is
joined onto the same line with the prefix removed:

    ✓  testjson ✓ internal/log ✓ ↶cmd

Failed packages always start a new line, and the output of a failed test is
printed in full as soon as the test fails.

How a joined package name is shortened depends on the name format:

    relative        the full relative path of the package
    short           the last path segment of the package
    partial         the path segments which differ from the previous package
    partial-back    partial, with ↶ when the join backs out a directory

Any of them may end with -dots[N] to append a summary of the test results
of the package, ex: ✓  testjson··↷ ✓ internal/log·[12]
"""

import itertools
import logging
import re
from typing import Optional, TextIO

from .event import Action, TestEvent
from .execution import Execution
from .format import DotsFormatter, EventFormatter, FormatOptions, display_width, short_format_package_event
from .pkgpath import relative_package_path

LOGGER = logging.getLogger(__name__)

BACK_STEP_MARKER = "↶"
ELIDED_PREFIX = "…/"

COMPACT_NAME_FORMATS = ("relative", "short", "partial", "partial-back")
DEFAULT_COMPACT_NAME_FORMAT = "partial-back"

_DOTS_RE = re.compile(r"-?dots([0-9]+)?$")


def parse_compact_name_format(value: str) -> tuple[str, Optional[int]]:
    """Split a compact name format into the name and the dots limit.

    The dots limit is None when no dots summary was requested, ex:
    partial-back -> ("partial-back", None), short-dots3 -> ("short", 3).

    Raises:
        ValueError: If the name is not a known compact name format.
    """
    limit = None
    name = value
    match = _DOTS_RE.search(value)
    if match:
        limit = int(match.group(1)) if match.group(1) else 1
        name = value[:match.start()] or DEFAULT_COMPACT_NAME_FORMAT
    if name not in COMPACT_NAME_FORMATS:
        raise ValueError(
            f"unknown compact package name format {value}, "
            f"must be one of {', '.join(COMPACT_NAME_FORMATS)}, optionally followed by -dots[N]"
        )
    return name, limit


def dot_summary(dots: list[str], limit: int) -> str:
    """Summarize test result dots, ex: ···✖ or ·[25]✖.

    A run of the same dot longer than limit is written as a count.
    """
    if len(dots) > limit:
        dots = sorted(dots)
    summary = ""
    for dot, group in itertools.groupby(dots):
        count = len(list(group))
        if count <= limit or (not summary and count <= limit + 3):
            summary += dot * count
            continue
        if not summary:
            summary += dot * (limit - 1)
        summary += f"{dot}[{count}]"
    return summary


class CompactFormatter(EventFormatter):
    """Joins package lines which share a path prefix with the previous package."""

    def __init__(self, out: TextIO, opts: Optional[FormatOptions] = None):
        """Initialize a compact formatter.

        Raises:
            ValueError: If opts has an unknown compact package name format.
        """
        self.out = out
        self.opts = opts or FormatOptions()
        self.name_format, self.dots_limit = parse_compact_name_format(self.opts.compact_pkg_name_format)
        self.width = self.opts.terminal_width()
        self.last_pkg = ""
        self.col = 0
        # Depth of the last joined package, relative to the package which
        # opened the line. A back-step join is only allowed while it is > 0.
        self.level = 0
        self.line_open = False
        self._line_depth = 0
        self._dots: dict[str, list[str]] = {}

    def format(self, event: TestEvent, execution: Execution) -> None:
        if not event.package_event:
            if self.dots_limit is not None and event.action in DotsFormatter.DOTS:
                self._dots.setdefault(event.package, []).append(DotsFormatter.DOTS[event.action])
            if event.action == Action.FAIL and self.opts.output_test_failures:
                self._write_test_failure(event, execution)
            return

        path = relative_package_path(event.package)
        text = short_format_package_event(self.opts, event, execution).rstrip("\n")
        if self.dots_limit is not None and event.action.is_terminal:
            dots = dot_summary(self._dots.pop(event.package, []), self.dots_limit)
            if dots:
                text = (text or path) + dots
        if not text:
            return
        self._write_package(path, text, event, execution)
        self.out.flush()

    def close(self) -> None:
        if self.line_open:
            self.out.write("\n")
            self.out.flush()
        self.line_open = False
        self.col = 0

    def _write_test_failure(self, event: TestEvent, execution: Execution) -> None:
        if self.line_open:
            self.out.write("\n")
        self.line_open = False
        self.col = 0

        pkg = execution.package(event.package)
        tc = pkg.last_failed_by_name(event.test) if pkg else None
        if tc is None:
            LOGGER.debug("no failed test case for %s %s", event.package, event.test)
        else:
            self.out.write("".join(execution.output_lines(tc)))
        self.out.flush()

    def _write_package(self, path: str, text: str, event: TestEvent, execution: Execution) -> None:
        prefix, back_step = None, False
        if event.action != Action.FAIL and self.line_open and self.col > 0:
            prefix, back_step = self._join_prefix(path)

        if prefix is not None:
            short = path[len(prefix):]
            if back_step and self.name_format == "partial-back":
                short = BACK_STEP_MARKER + short
            joined = text.replace(path, short, 1).replace("  ", " ")
            if self.col + 1 + display_width(joined) < self.width:
                self.out.write(" " + joined)
                self.col += 1 + display_width(joined)
                self.level = path.count("/") - self._line_depth
                self.last_pkg = path
                return
            if prefix:
                text = text.replace(path, ELIDED_PREFIX + path[len(prefix):], 1)

        self._start_line(path, text, execution)

    def _join_prefix(self, path: str) -> tuple[Optional[str], bool]:
        """The prefix to remove from path when it is joined, and whether it is a back-step.

        The prefix includes the trailing separator. None means path can not
        be joined onto the open line.
        """
        if self.name_format == "relative":
            return "", False
        if self.name_format == "short":
            return path[:path.rfind("/") + 1], False

        last = self.last_pkg
        sep = last.rfind("/")
        if sep < 0:
            return None, False
        if path.startswith(last[:sep + 1]):
            return last[:sep + 1], False
        if self.level > 0:
            parent_sep = last.rfind("/", 0, sep)
            if parent_sep >= 0 and path.startswith(last[:parent_sep + 1]):
                return last[:parent_sep + 1], True
        return None, False

    def _start_line(self, path: str, text: str, execution: Execution) -> None:
        if self.line_open:
            self.out.write("\n")
        if self.opts.output_wall_time:
            text = f"{execution.elapsed().total_seconds():.3f}s " + text
        self.out.write(text)
        self.col = display_width(text)
        self.level = 0
        self._line_depth = path.count("/")
        self.last_pkg = path
        self.line_open = True
