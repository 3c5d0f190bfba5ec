"""Read the output of a go test -json process into an Execution.

stdout and stderr are read concurrently. Every decoded event is added to the
Execution before it is passed to the EventHandler, so handlers always see the
state which includes the event.
"""

import logging
from abc import ABC, abstractmethod
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field, replace
from typing import BinaryIO, Callable, Optional

from ..errors import ScanError
from .event import BadEventError, TestEvent, parse_event
from .execution import Execution

LOGGER = logging.getLogger(__name__)

# Prefix of a line written by test2json when the test binary output could not
# be converted, ex: "FAIL\tgotest.tools/gotestsum/foo 0.001s".
BAD_OUTPUT_PREFIX = b"FAIL"


class EventHandler(ABC):
    """Receives every event and every stderr line of a scan."""

    @abstractmethod
    def event(self, event: TestEvent, execution: Execution) -> None:
        """Handle an event. Raising aborts the scan."""

    @abstractmethod
    def err(self, text: str) -> None:
        """Handle a line of stderr, or a line of stdout which was not an event."""

    def end_output(self) -> None:
        """Finish a partially written line before other text is written to the same stream."""


class NoopHandler(EventHandler):
    def event(self, event: TestEvent, execution: Execution) -> None:
        pass

    def err(self, text: str) -> None:
        pass


@dataclass
class ScanConfig:
    """Configuration for scan_test_output."""
    stdout: BinaryIO
    stderr: Optional[BinaryIO] = None
    handler: EventHandler = field(default_factory=NoopHandler)
    # Accumulate into this execution instead of a new one.
    execution: Optional[Execution] = None
    # Stamped on every event, 0 for the initial run.
    run_id: int = 0
    # Called once when reading either stream fails.
    stop: Optional[Callable[[], None]] = None
    ignore_non_json_output_lines: bool = False


def scan_test_output(config: ScanConfig) -> Execution:
    """Read go test -json output from stdout and stderr.

    Every event is added to the execution and passed to ``config.handler``.
    When both streams are closed the execution is ended, and a fail event for
    each test which never finished is passed to the handler.

    Args:
        config: The streams, handler and execution to use.

    Returns:
        The execution, which has every event of the scan.

    Raises:
        ScanError: If a stream could not be read or a line could not be decoded.
        Exception: Any exception raised by ``config.handler.event``.
    """
    if config.stdout is None:
        raise ValueError("stdout reader must not be None")

    execution = config.execution if config.execution is not None else Execution()

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="testsum-scan") as pool:
        futures = [pool.submit(_read_stdout, config, execution)]
        if config.stderr is not None:
            futures.append(pool.submit(_read_stderr, config, execution))

        done, _ = wait(futures, return_when=FIRST_EXCEPTION)
        error = next((f.exception() for f in done if f.exception() is not None), None)
        if error is not None and config.stop is not None:
            LOGGER.debug("stopping test process after scan error: %s", error)
            config.stop()
        wait(futures)

    if error is None:
        error = next((f.exception() for f in futures if f.exception() is not None), None)

    for event in execution.end():
        try:
            config.handler.event(event, execution)
        except Exception as e:
            if error is not None:
                LOGGER.debug("handler failed on end event after scan error: %s", e)
                continue
            error = e

    if error is not None:
        raise error
    return execution


def _read_stdout(config: ScanConfig, execution: Execution) -> None:
    try:
        for raw in config.stdout:
            raw = raw.rstrip(b"\r\n")
            try:
                event = parse_event(raw)
            except BadEventError as e:
                line = raw.decode("utf-8", errors="replace")
                if config.ignore_non_json_output_lines:
                    _handle_err(config.handler, line)
                    continue
                if raw.startswith(BAD_OUTPUT_PREFIX):
                    _handle_err(config.handler, f"bad output from test2json: {line}")
                    continue
                raise ScanError(f"failed to parse test output: {line}: {e}") from e

            if config.run_id:
                event = replace(event, run_id=config.run_id)
            execution.add(event)
            config.handler.event(event, execution)
    except OSError as e:
        raise ScanError(f"failed to read test output: {e}") from e


def _read_stderr(config: ScanConfig, execution: Execution) -> None:
    try:
        for raw in config.stderr:
            line = raw.rstrip(b"\r\n").decode("utf-8", errors="replace")
            _handle_err(config.handler, line)
            execution.add_error(line)
    except OSError as e:
        raise ScanError(f"failed to read stderr: {e}") from e


def _handle_err(handler: EventHandler, text: str) -> None:
    try:
        handler.err(text)
    except Exception as e:
        LOGGER.warning("failed to handle stderr line %r: %s", text, e)
