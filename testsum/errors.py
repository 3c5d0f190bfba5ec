"""Error types raised by testsum.

Recoverable conditions (malformed output lines, failed writes of diagnostic
text) are logged and never raised. Everything below aborts the operation
that raised it.
"""


class TestsumError(RuntimeError):
    """Base class for all testsum errors."""


class ScanError(TestsumError):
    """The test output could not be read or decoded."""


class MaxFailuresReached(TestsumError):
    """An event handler ended the run because too many tests failed."""


class ProcessLaunchError(TestsumError):
    """The test runner process could not be started."""

    def __init__(self, args: list[str]):
        self.command = list(args)
        super().__init__(f"failed to run {' '.join(self.command)}")


class RerunAbortedError(TestsumError):
    """Rerunning failed tests was stopped before all attempts were used."""


class RerunBuildError(RerunAbortedError):
    def __init__(self):
        super().__init__("rerun aborted because previous run had errors")


class RerunCrashError(RerunAbortedError):
    def __init__(self):
        super().__init__(
            "rerun aborted because previous run had a suspected panic "
            "and some test may not have run"
        )


class UnexpectedExitCodeError(RerunAbortedError):
    def __init__(self, returncode: int):
        self.returncode = returncode
        super().__init__(f"unexpected go test exit code: {returncode}")


class TooManyFailuresError(RerunAbortedError):
    def __init__(self, failed: int, maximum: int):
        self.failed = failed
        self.maximum = maximum
        super().__init__(
            f"number of test failures ({failed}) exceeds maximum ({maximum}) "
            "set by --rerun-fails-max-failures"
        )
