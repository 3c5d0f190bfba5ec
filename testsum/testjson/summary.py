"""Summary printed after all tests have run."""

from datetime import timedelta
from enum import Flag
from typing import Optional, TextIO

from .execution import Execution, TestCase
from .pkgpath import relative_package_path

MAX_SLOW_TESTS = 5


class Summary(Flag):
    """Sections which can be printed by print_summary."""
    NONE = 0
    SKIPPED = 1
    FAILED = 2
    ERRORS = 4
    OUTPUT = 8
    SLOWEST = 16
    ALL = SKIPPED | FAILED | ERRORS | OUTPUT | SLOWEST

    def __str__(self) -> str:
        if self is Summary.NONE:
            return "none"
        return ",".join(
            member.name.lower()
            for member in (Summary.SKIPPED, Summary.FAILED, Summary.ERRORS, Summary.OUTPUT, Summary.SLOWEST)
            if member in self
        )


def parse_summary(value: str) -> Summary:
    """Parse a comma separated list of sections, ex: failed,errors.

    Raises:
        ValueError: If a section name is not known.
    """
    result = Summary.NONE
    for name in value.split(","):
        name = name.strip().lower()
        if not name:
            continue
        try:
            result |= Summary[name.upper()]
        except KeyError:
            raise ValueError(f"unknown summary section: {name}") from None
    return result


def format_seconds(elapsed: Optional[timedelta], precision: int) -> str:
    if elapsed is None:
        return "unknown"
    return f"{elapsed.total_seconds():.{precision}f}s"


def print_summary(
    out: TextIO,
    execution: Execution,
    summary: Summary = Summary.ALL,
    slow_threshold: Optional[timedelta] = None,
) -> None:
    """Print a section for each selected part of the summary, then a DONE line.

    Args:
        out: Destination stream.
        execution: The finished execution.
        summary: Sections to print.
        slow_threshold: Tests slower than this are listed as slow.
    """
    include_output = Summary.OUTPUT in summary
    slow_tests = slow_test_cases(execution, slow_threshold)

    if Summary.SKIPPED in summary:
        _write_test_cases(
            out, execution, execution.skipped(), "Skipped", "SKIP", "--- SKIP: Test", include_output
        )
    if Summary.SLOWEST in summary:
        _write_slowest_tests(out, slow_tests)
    if Summary.FAILED in summary:
        _write_test_cases(
            out, execution, execution.failed(), "Failed", "FAIL", "--- FAIL: Test", include_output
        )
    if Summary.ERRORS in summary:
        _write_errors(out, execution.errors)

    status = "DONE" if execution.done else ""
    out.write(
        f"\n{status} {execution.total()} tests"
        f"{_format_count(len(execution.skipped()), 'skipped', '')}"
        f"{_format_count(len(slow_tests), 'slow', '')}"
        f"{_format_count(len(execution.failed()), 'failure', 's')}"
        f"{_format_count(count_errors(execution.errors), 'error', 's')}"
        f" in {format_seconds(execution.elapsed(), 3)}\n"
    )


def _format_count(count: int, category: str, plural: str) -> str:
    if count == 0:
        return ""
    if count > 1:
        category += plural
    return f", {count} {category}"


def count_errors(errors: list[str]) -> int:
    """Count error lines. Indented lines continue the previous error."""
    return sum(1 for line in errors if line and not line[0].isspace())


def _write_errors(out: TextIO, errors: list[str]) -> None:
    if errors:
        out.write("\n=== Errors\n")
    for line in errors:
        out.write(line + "\n")


def _is_run_line(line: str) -> bool:
    return line.startswith("=== RUN   Test")


def _write_test_cases(
    out: TextIO,
    execution: Execution,
    test_cases: list[TestCase],
    header: str,
    prefix: str,
    result_line: str,
    include_output: bool,
) -> None:
    if not test_cases:
        return
    out.write(f"\n=== {header}\n")
    for tc in test_cases:
        out.write(
            f"=== {prefix}: {relative_package_path(tc.package)} {tc.test} "
            f"({format_seconds(tc.elapsed, 2)})\n"
        )
        if include_output:
            for line in execution.output_lines(tc):
                if _is_run_line(line) or line.startswith(result_line):
                    continue
                out.write(line)
        out.write("\n")


def slow_test_cases(execution: Execution, threshold: Optional[timedelta]) -> list[TestCase]:
    """Tests slower than threshold, slowest first."""
    if not threshold:
        return []
    tests = [
        tc for tc in execution.test_cases()
        if tc.elapsed is not None and tc.elapsed >= threshold
    ]
    tests.sort(key=lambda tc: tc.elapsed, reverse=True)
    return tests


def _write_slowest_tests(out: TextIO, tests: list[TestCase]) -> None:
    if not tests:
        return
    out.write("\n=== Slowest\n")
    for tc in tests[:MAX_SLOW_TESTS]:
        out.write(f"    {tc.package} {tc.test} ({format_seconds(tc.elapsed, 2)})\n")
    out.write("\n")
