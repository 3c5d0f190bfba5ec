"""Rerun failed tests - runs each failed test again, in rounds.

Coordinates the rerun flow:
1. Select the failed tests worth rerunning
2. Start one go test process per failed test
3. Scan its output into the same Execution
4. Stop when a round had errors, a panic, or an unexpected exit code
5. Repeat with the failures of the round until none fail or attempts run out
"""

import logging
import subprocess
from typing import Callable, Optional, TextIO

from ..errors import (
    RerunBuildError,
    RerunCrashError,
    TooManyFailuresError,
    UnexpectedExitCodeError,
)
from ..testjson.event import Action, TestEvent
from ..testjson.execution import Execution, TestCase, filter_failed_unique, is_panic_output
from ..testjson.scanner import EventHandler, NoopHandler, ScanConfig, scan_test_output
from ..testjson.summary import Summary, print_summary
from .policy import RerunPolicy
from .proc import RerunOpts, TestProc

LOGGER = logging.getLogger(__name__)

# Exit codes of go test: 0 when all tests pass, 1 when a test failed.
EXPECTED_EXIT_CODES = (0, 1)

Launcher = Callable[[RerunOpts], TestProc]


class FailureRecorder(EventHandler):
    """Records the failed tests of a round, and forwards every event."""

    def __init__(self, handler: Optional[EventHandler] = None, failures: Optional[list[TestCase]] = None):
        """Initialize a failure recorder.

        Args:
            handler: Receives every event after it is recorded.
            failures: Failures already known, ex: from the initial run.
        """
        self.handler = handler or NoopHandler()
        self.failures: list[TestCase] = list(failures or [])
        # The last non-zero exit of a process in this round.
        self.last_error: Optional[subprocess.CalledProcessError] = None
        self.crashed = False

    @classmethod
    def from_execution(cls, execution: Execution) -> "FailureRecorder":
        return cls(failures=execution.failed())

    def event(self, event: TestEvent, execution: Execution) -> None:
        if event.action == Action.OUTPUT and is_panic_output(event.output):
            self.crashed = True
        if not event.package_event and event.action == Action.FAIL:
            pkg = execution.package(event.package)
            tc = pkg.last_failed_by_name(event.test) if pkg else None
            if tc is not None:
                self.failures.append(tc)
        self.handler.event(event, execution)

    def err(self, text: str) -> None:
        self.handler.err(text)

    def end_output(self) -> None:
        self.handler.end_output()

    def count(self) -> int:
        return len(self.failures)


def root_cases_only(test_cases: list[TestCase]) -> list[TestCase]:
    return [tc for tc in test_cases if not tc.is_sub_test]


def rerun_failed(
    execution: Execution,
    handler: EventHandler,
    launch: Launcher,
    policy: RerunPolicy,
    out: Optional[TextIO] = None,
) -> None:
    """Rerun the failed tests of an execution.

    Args:
        execution: Results of the initial run. Rerun results are added to it.
        handler: Receives every event of every rerun.
        launch: Starts a go test process for one failed test.
        policy: Number of rounds and the initial failure limit.
        out: Prints a summary line before each round when set.

    Raises:
        TooManyFailuresError: If the initial run had too many failures to rerun.
        RerunAbortedError: If a rerun had errors, a panic, or an unexpected exit code.
        subprocess.CalledProcessError: The last failed process of the final
            round, when tests still failed after every attempt.
    """
    test_filter = root_cases_only if policy.run_root_cases_only else filter_failed_unique

    recorder = FailureRecorder.from_execution(execution)
    initial = test_filter(recorder.failures)
    if policy.enabled and len(initial) > policy.max_initial_failures:
        raise TooManyFailuresError(len(initial), policy.max_initial_failures)

    attempts = 0
    while recorder.count() > 0 and attempts < policy.max_attempts:
        if out is not None:
            handler.end_output()
            print_summary(out, execution, Summary.NONE)
            out.write("\n")

        next_recorder = FailureRecorder(handler)
        for tc in test_filter(recorder.failures):
            _rerun_test_case(execution, next_recorder, launch, tc, attempts + 1)
        recorder = next_recorder
        attempts += 1

    LOGGER.debug("rerun finished after %d rounds, %d failures", attempts, recorder.count())
    if recorder.last_error is not None:
        raise recorder.last_error


def _rerun_test_case(
    execution: Execution,
    recorder: FailureRecorder,
    launch: Launcher,
    tc: TestCase,
    run_id: int,
) -> None:
    opts = RerunOpts.from_test_case(tc)
    errors_before = len(execution.errors)
    recorder.crashed = False

    proc = launch(opts)
    LOGGER.debug("rerun %d: %s", run_id, opts.args())
    try:
        scan_test_output(ScanConfig(
            stdout=proc.stdout,
            stderr=proc.stderr,
            handler=recorder,
            execution=execution,
            run_id=run_id,
            stop=proc.cancel,
        ))
    finally:
        returncode = _wait(proc, recorder)

    if len(execution.errors) > errors_before:
        raise RerunBuildError()
    if recorder.crashed:
        raise RerunCrashError()
    if returncode not in EXPECTED_EXIT_CODES:
        raise UnexpectedExitCodeError(returncode)


def _wait(proc: TestProc, recorder: FailureRecorder) -> int:
    """Wait for proc to exit and return its exit code."""
    try:
        proc.wait()
    except subprocess.CalledProcessError as e:
        recorder.last_error = e
        return e.returncode
    return 0


def check_initial_run(execution: Execution, returncode: int) -> None:
    """Raise if the initial run must not be followed by reruns.

    Raises:
        RerunAbortedError: If the run had errors, a panic, or an unexpected exit code.
    """
    if execution.errors:
        raise RerunBuildError()
    if execution.has_panic():
        raise RerunCrashError()
    if returncode not in EXPECTED_EXIT_CODES:
        raise UnexpectedExitCodeError(returncode)
