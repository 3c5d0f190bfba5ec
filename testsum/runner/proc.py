"""Start go test processes.

The scanner reads both output pipes until they are closed, so the process
output is never lost, even when the process exits abnormally.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence, Union

from ..errors import ProcessLaunchError
from ..testjson.execution import TestCase

LOGGER = logging.getLogger(__name__)

# Characters escaped by go's regexp.QuoteMeta.
_REGEXP_META = re.compile(r"([\\.+*?()|\[\]{}^$])")


class TestProc:
    """A running test process, with both output streams piped."""
    __test__ = False

    def __init__(self, popen: subprocess.Popen, args: Sequence[str]):
        self.args = list(args)
        self._popen = popen

    @property
    def stdout(self):
        return self._popen.stdout

    @property
    def stderr(self):
        return self._popen.stderr

    def wait(self) -> None:
        """Wait for the process to exit.

        Raises:
            subprocess.CalledProcessError: If the exit code is not 0.
        """
        returncode = self._popen.wait()
        for stream in (self._popen.stdout, self._popen.stderr):
            if stream is not None:
                stream.close()
        if returncode != 0:
            raise subprocess.CalledProcessError(returncode, self.args)

    def cancel(self) -> None:
        """Terminate the process if it is still running."""
        if self._popen.poll() is None:
            LOGGER.debug("terminating pid %d", self._popen.pid)
            self._popen.terminate()


def start_test_process(args: Sequence[str], cwd: Optional[Union[str, bytes]] = None) -> TestProc:
    """Start the test command with stdout and stderr piped.

    Args:
        args: The command and its arguments.
        cwd: Working directory of the process.

    Returns:
        The running process.

    Raises:
        ProcessLaunchError: If the process could not be started.
    """
    LOGGER.debug("exec: %s", list(args))
    try:
        popen = subprocess.Popen(
            list(args),
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            cwd=cwd,
        )
    except OSError as e:
        raise ProcessLaunchError(list(args)) from e
    LOGGER.debug("test process pid: %d", popen.pid)
    return TestProc(popen, args)


def quote_meta(text: str) -> str:
    """Escape the regular expression metacharacters in text."""
    return _REGEXP_META.sub(r"\\\1", text)


def go_test_run_flag(test: str) -> str:
    """The -test.run flag which selects exactly this test.

    Each part of a subtest name is anchored separately, ex:
    -test.run=^TestOne$/^sub$. An empty name selects every test.
    """
    if not test:
        return ""
    return "-test.run=" + "/".join(f"^{quote_meta(part)}$" for part in test.split("/"))


@dataclass(frozen=True)
class RerunOpts:
    """Arguments which restrict a go test run to one failed test."""
    run_flag: str = ""
    package: str = ""

    def args(self) -> list[str]:
        result = []
        if self.run_flag:
            result.append(self.run_flag)
        if self.package:
            result.append(self.package)
        return result

    @classmethod
    def from_test_case(cls, tc: TestCase) -> "RerunOpts":
        return cls(run_flag=go_test_run_flag(tc.test), package=tc.package)


def go_test_cmd_args(
    base_args: Sequence[str],
    rerun_opts: Optional[RerunOpts] = None,
    packages: Sequence[str] = (),
) -> list[str]:
    """The go test command line.

    Args:
        base_args: Flags passed to go test.
        rerun_opts: Restrict the run to one test. Replaces packages.
        packages: Packages to test when rerun_opts is None.
    """
    args = ["go", "test", "-json", *base_args]
    if rerun_opts is not None:
        return args + rerun_opts.args()
    return args + list(packages)
