"""Test events decoded from ``go test -json`` output.

Each stdout line of ``go test -json`` (or ``go tool test2json``) is a JSON
object:

    {"Time": "2018-03-22T22:33:35.168308334Z", "Action": "output",
     "Package": "example.com/good", "Test": "TestOk", "Output": "PASS\\n"}
"""

import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


class Action(str, Enum):
    """Action of a TestEvent."""
    START = "start"
    RUN = "run"
    PAUSE = "pause"
    CONT = "cont"
    PASS = "pass"
    BENCH = "bench"
    FAIL = "fail"
    OUTPUT = "output"
    SKIP = "skip"

    @property
    def is_terminal(self) -> bool:
        """True for the actions which end a test or package."""
        return self in (Action.PASS, Action.FAIL, Action.SKIP)


class BadEventError(ValueError):
    """A line of test output is not a valid test event."""


@dataclass(frozen=True)
class TestEvent:
    """One event from the test output stream."""
    __test__ = False

    action: Action
    package: str = ""
    test: str = ""
    time: Optional[datetime] = None
    # Elapsed time in seconds. None only for events synthesized for tests
    # which never finished.
    elapsed: Optional[float] = 0.0
    output: str = ""
    # Rerun round that produced the event, 0 for the initial run.
    run_id: int = 0
    raw: bytes = field(default=b"", repr=False, compare=False)

    @property
    def package_event(self) -> bool:
        """True if the event is a package start, output or end event."""
        return self.test == ""

    def elapsed_formatted(self) -> str:
        """Elapsed in the go test format, ex: (0.00s)."""
        if self.elapsed is None:
            return "(unknown)"
        return f"({self.elapsed:.2f}s)"

    def bytes(self) -> bytes:
        """The serialized JSON bytes that were parsed to create the event."""
        return self.raw


def parse_event(raw: bytes) -> TestEvent:
    """Decode one line of test output.

    Args:
        raw: The line, without the line terminator.

    Returns:
        The decoded TestEvent, holding a reference to ``raw``.

    Raises:
        BadEventError: If the line is not a JSON object with a known action.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise BadEventError(str(e)) from e

    if not isinstance(data, dict):
        raise BadEventError(f"expected a JSON object, got {type(data).__name__}")

    try:
        action = Action(data.get("Action", ""))
    except ValueError as e:
        raise BadEventError(f"unknown action {data.get('Action')!r}") from e

    elapsed = data.get("Elapsed") or 0.0
    if not isinstance(elapsed, (int, float)):
        raise BadEventError(f"invalid Elapsed {elapsed!r}")

    return TestEvent(
        action=action,
        package=str(data.get("Package") or ""),
        test=str(data.get("Test") or ""),
        time=_parse_time(data.get("Time")),
        elapsed=float(elapsed),
        output=str(data.get("Output") or ""),
        raw=bytes(raw),
    )


# RFC3339 allows nanosecond precision, datetime stops at microseconds.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _parse_time(value) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(_FRACTION_RE.sub(r"\1", value))
    except (TypeError, ValueError) as e:
        raise BadEventError(f"invalid Time {value!r}") from e
