"""In-memory model of a test run built from a stream of TestEvents.

An Execution owns one Package per package path. Packages collect the test
cases which passed, failed or were skipped, plus the output captured for each
test. The Execution is shared by the stdout and stderr readers of a scan, and
by every rerun round, so all mutation goes through ``Execution.add`` and
``Execution.add_error`` which hold a lock.
"""

import threading
import time
from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Callable, Optional

from .event import Action, TestEvent

# Prefixes of go command progress lines written to stderr. They are not errors.
GO_MODULE_OUTPUT_PREFIXES = ("go: downloading", "go: extracting", "go: finding")

PANIC_PREFIX = "panic: "


def split_test_name(name: str) -> tuple[str, str]:
    """Split a test name into the root test name and the subtest path.

    ``TestOne/sub/deeper`` becomes ``("TestOne", "sub/deeper")``.
    """
    root, _, sub = name.partition("/")
    return root, sub


def elapsed_duration(elapsed: float) -> timedelta:
    """Convert elapsed seconds to a timedelta, rounded to the millisecond."""
    return timedelta(milliseconds=round(elapsed * 1000))


def is_coverage_output(output: str) -> bool:
    return output.startswith("coverage:") and "% of statements" in output


def is_cached_output(output: str) -> bool:
    return "(cached)" in output


def is_panic_output(output: str) -> bool:
    return output.startswith(PANIC_PREFIX)


@dataclass
class TestCase:
    """A test which ran in a package.

    ``elapsed`` is None when the test never finished (the stream ended while
    the test was still running).
    """
    __test__ = False

    package: str
    test: str
    elapsed: Optional[timedelta] = timedelta(0)
    run_id: int = 0
    # Set on a root test when one of its subtests failed.
    sub_test_failed: bool = False

    @property
    def finished(self) -> bool:
        return self.elapsed is not None

    @property
    def is_sub_test(self) -> bool:
        return "/" in self.test

    @property
    def root_name(self) -> str:
        return split_test_name(self.test)[0]


@dataclass
class Package:
    """All the test cases and output of a single package."""
    name: str = ""
    total: int = 0
    running: dict[str, TestCase] = field(default_factory=dict)
    failed: list[TestCase] = field(default_factory=list)
    skipped: list[TestCase] = field(default_factory=list)
    passed: list[TestCase] = field(default_factory=list)
    # root test name -> subtest name -> lines. Package output is stored under
    # ("", ""), the output of a root test under (root, "").
    outputs: dict[str, dict[str, list[str]]] = field(default_factory=dict)
    # Coverage line without the trailing newline, ex: coverage: 91.1% of statements
    coverage: str = ""
    cached: bool = False
    panicked: bool = False
    # pass or fail from the package end event. A package may fail with no
    # failed tests when init() or TestMain exits non-zero.
    action: Optional[Action] = None
    elapsed: timedelta = timedelta(0)

    @property
    def result(self) -> Optional[Action]:
        """Pass, fail, or skip when the package had no test files."""
        return self.action

    def test_cases(self) -> list[TestCase]:
        return self.passed + self.failed + self.skipped

    def test_main_failed(self) -> bool:
        """True if the package failed, but no test failed.

        This happens when the package init() or TestMain exits non-zero, or
        the test binary failed to build.
        """
        return self.action == Action.FAIL and not self.failed

    def is_empty(self) -> bool:
        return self.total == 0

    def output(self, test: str) -> str:
        """The output captured for exactly one test, joined."""
        root, sub = split_test_name(test)
        return "".join(self.outputs.get(root, {}).get(sub, []))

    def output_lines(self, tc: TestCase) -> list[str]:
        """The output lines to show for a test case.

        go test -json does not always attribute output to the subtest which
        wrote it; the failure message of a subtest often appears under its
        root test, and output from parallel subtests can land on a sibling.
        To avoid hiding relevant lines:

        - a subtest returns only its own lines;
        - a root test with failed subtests returns only the lines of those
          failed subtests;
        - any other root test returns its own lines followed by the lines of
          every subtest, in subtest name order.
        """
        root, sub = split_test_name(tc.test)
        by_sub = self.outputs.get(root, {})
        lines = list(by_sub.get(sub, []))
        if sub or not tc.test:
            return lines

        names = sorted(name for name in by_sub if name)
        if tc.sub_test_failed:
            lines = []
            failed = {
                split_test_name(f.test)[1]
                for f in self.failed
                if f.run_id == tc.run_id and f.is_sub_test and f.root_name == root
            }
            names = [name for name in names if name in failed]
        for name in names:
            lines.extend(by_sub[name])
        return lines

    def last_failed_by_name(self, name: str) -> Optional[TestCase]:
        """The most recent failure of the test with this name."""
        for tc in reversed(self.failed):
            if tc.test == name:
                return tc
        return None

    def add_event(self, event: TestEvent) -> None:
        if event.package_event:
            self._add_package_event(event)
        else:
            self._add_test_event(event)

    def _add_package_event(self, event: TestEvent) -> None:
        if event.action.is_terminal:
            self.action = event.action
            self.elapsed = elapsed_duration(event.elapsed or 0.0)
        elif event.action == Action.OUTPUT:
            if is_coverage_output(event.output):
                self.coverage = event.output.rstrip("\n")
            if is_cached_output(event.output):
                self.cached = True
            if is_panic_output(event.output):
                self.panicked = True
            self._add_output("", event.output)

    def _add_test_event(self, event: TestEvent) -> None:
        root, sub = split_test_name(event.test)

        if event.action == Action.RUN:
            self.total += 1
            self.running[event.test] = TestCase(
                package=event.package, test=event.test, run_id=event.run_id
            )
            # A rerun of the test starts with empty output.
            if sub:
                self.outputs.get(root, {}).pop(sub, None)
            else:
                self.outputs.pop(root, None)
            return

        if event.action in (Action.OUTPUT, Action.BENCH):
            if is_panic_output(event.output):
                self.panicked = True
            self._add_output(event.test, event.output)
            return

        if not event.action.is_terminal:
            return

        tc = self.running.pop(event.test, None)
        if tc is None:
            # the run event was missing
            tc = TestCase(package=event.package, test=event.test, run_id=event.run_id)
        elapsed = None if event.elapsed is None else elapsed_duration(event.elapsed)
        tc = replace(tc, elapsed=elapsed)

        if event.action == Action.FAIL:
            self.failed.append(tc)
            if sub:
                parent = self.running.get(root)
                if parent is not None:
                    parent.sub_test_failed = True
        elif event.action == Action.SKIP:
            self.skipped.append(tc)
        else:
            self.passed.append(tc)

    def _add_output(self, test: str, output: str) -> None:
        root, sub = split_test_name(test)
        self.outputs.setdefault(root, {}).setdefault(sub, []).append(output)

    def end(self) -> list[TestEvent]:
        """Mark every test still running as failed.

        Returns:
            A synthesized fail event for each of those tests.
        """
        events = []
        # subtests first, so the flag reaches their root before it ends
        for name in sorted(self.running, reverse=True):
            tc = self.running.pop(name)
            self.failed.append(replace(tc, elapsed=None))
            if tc.is_sub_test and tc.root_name in self.running:
                self.running[tc.root_name].sub_test_failed = True
            events.append(TestEvent(
                action=Action.FAIL,
                package=tc.package,
                test=tc.test,
                elapsed=None,
                run_id=tc.run_id,
            ))
        events.sort(key=lambda e: e.test)
        return events


class Execution:
    """Results of one or more test packages, across every rerun round."""

    def __init__(self, clock: Callable[[], float] = time.time):
        """Initialize an execution and record its start time.

        Args:
            clock: Source of the current time in epoch seconds.
        """
        self._clock = clock
        self.started = clock()
        self.done = False
        self._packages: dict[str, Package] = {}
        self._errors: list[str] = []
        self._lock = threading.RLock()

    def add(self, event: TestEvent) -> None:
        """Record a test event."""
        with self._lock:
            pkg = self._packages.get(event.package)
            if pkg is None:
                pkg = self._packages[event.package] = Package(name=event.package)
            pkg.add_event(event)

    def add_error(self, line: str) -> None:
        """Record a line of stderr output as an error.

        Build error headers (``# pkg``) and go module download progress are
        ignored.
        """
        if line.startswith("# ") or line.startswith(GO_MODULE_OUTPUT_PREFIXES):
            return
        with self._lock:
            self._errors.append(line)

    def end(self) -> list[TestEvent]:
        """Finish the execution once all output has been read.

        Returns:
            Fail events synthesized for tests which never finished.
        """
        with self._lock:
            events = []
            for name in sorted(self._packages):
                events.extend(self._packages[name].end())
            self.done = True
            return events

    @property
    def errors(self) -> list[str]:
        with self._lock:
            return list(self._errors)

    def package(self, name: str) -> Optional[Package]:
        return self._packages.get(name)

    def packages(self) -> list[str]:
        """Sorted names of all packages."""
        with self._lock:
            return sorted(self._packages)

    def total(self) -> int:
        """Number of tests which started."""
        with self._lock:
            return sum(pkg.total for pkg in self._packages.values())

    def failed(self) -> list[TestCase]:
        """All failed test cases, in package name order.

        A package which failed without a failed test is included as a test
        case with an empty test name.
        """
        with self._lock:
            failed = []
            for name in sorted(self._packages):
                pkg = self._packages[name]
                if pkg.test_main_failed():
                    failed.append(TestCase(package=name, test=""))
                else:
                    failed.extend(pkg.failed)
            return failed

    def skipped(self) -> list[TestCase]:
        with self._lock:
            skipped = []
            for name in sorted(self._packages):
                skipped.extend(self._packages[name].skipped)
            return skipped

    def test_cases(self) -> list[TestCase]:
        with self._lock:
            result = []
            for name in sorted(self._packages):
                result.extend(self._packages[name].test_cases())
            return result

    def output(self, pkg: str, test: str) -> str:
        package = self._packages.get(pkg)
        return package.output(test) if package else ""

    def output_lines(self, tc: TestCase) -> list[str]:
        with self._lock:
            package = self._packages.get(tc.package)
            return package.output_lines(tc) if package else []

    def has_panic(self) -> bool:
        with self._lock:
            return any(pkg.panicked for pkg in self._packages.values())

    def elapsed(self) -> timedelta:
        """Time since the execution started."""
        return timedelta(seconds=self._clock() - self.started)


def filter_failed_unique(test_cases: list[TestCase]) -> list[TestCase]:
    """Remove duplicates, and root tests or parents of failed subtests.

    Rerunning ``TestOne/sub`` also runs ``TestOne``, so a parent which failed
    only because its subtest failed does not need its own rerun.
    """
    parents: set[tuple[str, str]] = set()
    for tc in test_cases:
        parts = tc.test.split("/")
        for i in range(1, len(parts)):
            parents.add((tc.package, "/".join(parts[:i])))

    result = []
    seen: set[tuple[str, str]] = set()
    for tc in test_cases:
        key = (tc.package, tc.test)
        if key in seen or key in parents:
            continue
        seen.add(key)
        result.append(tc)
    return result
