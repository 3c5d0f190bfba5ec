"""The event handler used by the testsum command.

Writes events to the JSON files, formats them to the output stream, and ends
the run when too many tests have failed.
"""

import logging
from pathlib import Path
from typing import BinaryIO, Optional, TextIO

from ..config.schema import Options
from ..errors import MaxFailuresReached, TestsumError
from ..testjson.event import TestEvent
from ..testjson.execution import Execution
from ..testjson.format import EventFormatter, new_event_formatter
from ..testjson.scanner import EventHandler as BaseEventHandler

LOGGER = logging.getLogger(__name__)


class EventHandler(BaseEventHandler):
    """Handles the events of a go test run for the command line."""

    def __init__(
        self,
        formatter: EventFormatter,
        err: TextIO,
        json_file: Optional[BinaryIO] = None,
        json_file_timing_events: Optional[BinaryIO] = None,
        max_fails: int = 0,
    ):
        """Initialize the event handler.

        Args:
            formatter: Prints each event.
            err: Receives stderr lines of the test process.
            json_file: Receives every event as it was read.
            json_file_timing_events: Receives only pass, fail and skip events.
            max_fails: End the run after this many failures. 0 = never.
        """
        self.formatter = formatter
        self.err_stream = err
        self.json_file = json_file
        self.json_file_timing_events = json_file_timing_events
        self.max_fails = max_fails

    def event(self, event: TestEvent, execution: Execution) -> None:
        # events created when the stream ended have no raw bytes
        raw = event.bytes()
        if raw:
            try:
                if self.json_file is not None:
                    self.json_file.write(raw + b"\n")
                if self.json_file_timing_events is not None and event.action.is_terminal:
                    self.json_file_timing_events.write(raw + b"\n")
            except OSError as e:
                raise TestsumError(f"failed to write JSON file: {e}") from e

        self.formatter.format(event, execution)

        if self.max_fails > 0 and len(execution.failed()) >= self.max_fails:
            raise MaxFailuresReached("ending test run because max failures was reached")

    def err(self, text: str) -> None:
        try:
            self.err_stream.write(text + "\n")
            self.err_stream.flush()
        except (OSError, ValueError) as e:
            LOGGER.warning("failed to write stderr line: %s", e)

    def end_output(self) -> None:
        self.formatter.close()

    def flush(self) -> None:
        for f in (self.json_file, self.json_file_timing_events):
            if f is None:
                continue
            try:
                f.flush()
            except OSError as e:
                LOGGER.error("Failed to sync JSON file: %s", e)

    def close(self) -> None:
        self.formatter.close()
        for f in (self.json_file, self.json_file_timing_events):
            if f is None:
                continue
            try:
                f.close()
            except OSError as e:
                LOGGER.error("Failed to close JSON file: %s", e)

    def __enter__(self) -> "EventHandler":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.flush()
        self.close()


def _create_file(path: str) -> BinaryIO:
    file_path = Path(path)
    try:
        file_path.parent.mkdir(parents=True, exist_ok=True)
        return open(file_path, "wb")
    except OSError as e:
        raise TestsumError(f"failed to create file: {e}") from e


def new_event_handler(options: Options, out: TextIO, err: TextIO) -> EventHandler:
    """Create the event handler for a run from its options.

    Raises:
        ValueError: If the format is not known.
        TestsumError: If a JSON file could not be created.
    """
    formatter = new_event_formatter(out, options.format, options.format_options.to_format_options())
    handler = EventHandler(formatter=formatter, err=err, max_fails=options.max_fails)
    try:
        if options.jsonfile:
            handler.json_file = _create_file(options.jsonfile)
        if options.jsonfile_timing_events:
            handler.json_file_timing_events = _create_file(options.jsonfile_timing_events)
    except TestsumError:
        handler.close()
        raise
    return handler
