"""Shared fixtures for testsum tests."""

import io
import json
import subprocess
from typing import Callable, Optional

import pytest

from testsum.testjson import set_package_path_prefix
from testsum.testjson.scanner import EventHandler


def _event_line(
    action: str,
    package: str = "pkg",
    test: str = "",
    output: str = "",
    elapsed: Optional[float] = None,
) -> bytes:
    data = {"Time": "2024-01-02T03:04:05.123456789Z", "Action": action, "Package": package}
    if test:
        data["Test"] = test
    if output:
        data["Output"] = output
    if elapsed is not None:
        data["Elapsed"] = elapsed
    return json.dumps(data).encode()


def _stream(*lines: bytes) -> io.BytesIO:
    return io.BytesIO(b"".join(line + b"\n" for line in lines))


class CapturingHandler(EventHandler):
    """Records every event and stderr line."""

    def __init__(self):
        self.events = []
        self.errors = []

    def event(self, event, execution):
        self.events.append(event)

    def err(self, text):
        self.errors.append(text)


class FakeProc:
    """A finished test process with canned output."""

    def __init__(self, stdout: bytes = b"", stderr: bytes = b"", returncode: int = 0, args=()):
        self.stdout = io.BytesIO(stdout)
        self.stderr = io.BytesIO(stderr)
        self.returncode = returncode
        self.args = list(args)
        self.cancelled = False
        self.error = None
        self.waited = False

    def wait(self):
        self.waited = True
        if self.returncode != 0:
            self.error = subprocess.CalledProcessError(self.returncode, self.args)
            raise self.error

    def cancel(self):
        self.cancelled = True


class FakeLauncher:
    """Starts a FakeProc built by script(rerun_opts, call_number) for each launch."""

    def __init__(self, script: Callable):
        self.script = script
        self.calls = []

    def __call__(self, rerun_opts):
        self.calls.append(rerun_opts)
        return self.script(rerun_opts, len(self.calls))


@pytest.fixture(autouse=True)
def no_module_prefix():
    """Show package paths unchanged, regardless of any go.mod in the working directory."""
    set_package_path_prefix("")
    yield
    set_package_path_prefix(None)


@pytest.fixture
def event_line():
    return _event_line


@pytest.fixture
def make_stream():
    return _stream


@pytest.fixture
def capturing_handler():
    return CapturingHandler()


@pytest.fixture
def fake_proc():
    return FakeProc


@pytest.fixture
def fake_launcher():
    return FakeLauncher
