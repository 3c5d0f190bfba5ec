"""Tests for the command line event handler."""

import io

import pytest

from testsum.config import Options
from testsum.errors import MaxFailuresReached, TestsumError
from testsum.handler import EventHandler, new_event_handler
from testsum.testjson import Execution, ScanConfig, new_event_formatter, scan_test_output


def test_json_files_receive_raw_events(tmp_path, event_line, make_stream):
    lines = [
        event_line("run", test="TestA"),
        event_line("output", test="TestA", output="=== RUN   TestA\n"),
        event_line("pass", test="TestA", elapsed=0.1),
        event_line("pass", elapsed=0.2),
    ]
    options = Options(
        format="none",
        jsonfile=str(tmp_path / "out" / "all.json"),
        jsonfile_timing_events=str(tmp_path / "timing.json"),
    )

    with new_event_handler(options, io.StringIO(), io.StringIO()) as handler:
        scan_test_output(ScanConfig(stdout=make_stream(*lines), handler=handler))

    assert (tmp_path / "out" / "all.json").read_bytes() == b"".join(line + b"\n" for line in lines)
    assert (tmp_path / "timing.json").read_bytes() == lines[2] + b"\n" + lines[3] + b"\n"


def test_events_from_the_end_of_the_stream_are_not_written(tmp_path, event_line, make_stream):
    options = Options(format="none", jsonfile=str(tmp_path / "all.json"))
    with new_event_handler(options, io.StringIO(), io.StringIO()) as handler:
        execution = scan_test_output(ScanConfig(stdout=make_stream(event_line("run", test="TestHang")), handler=handler))

    assert [tc.test for tc in execution.failed()] == ["TestHang"]
    assert (tmp_path / "all.json").read_bytes() == event_line("run", test="TestHang") + b"\n"


def test_max_fails_ends_the_run(event_line, make_stream):
    out = io.StringIO()
    handler = EventHandler(new_event_formatter(out, "testname"), io.StringIO(), max_fails=1)
    stopped = []
    stdout = make_stream(
        event_line("run", test="TestA"),
        event_line("fail", test="TestA", elapsed=0.1),
        event_line("run", test="TestB"),
    )

    with pytest.raises(MaxFailuresReached, match="max failures"):
        scan_test_output(ScanConfig(stdout=stdout, handler=handler, stop=lambda: stopped.append(True)))

    assert stopped == [True]
    assert out.getvalue() == "FAIL pkg.TestA (0.10s)\n"


def test_stderr_lines_are_written(event_line, make_stream):
    err = io.StringIO()
    handler = EventHandler(new_event_formatter(io.StringIO(), "none"), err)
    scan_test_output(ScanConfig(
        stdout=make_stream(event_line("pass", elapsed=0.1)),
        stderr=make_stream(b"# pkg", b"a.go:1: undefined: x"),
        handler=handler,
        execution=Execution(),
    ))
    assert err.getvalue() == "# pkg\na.go:1: undefined: x\n"


def test_closed_stderr_is_not_fatal():
    err = io.StringIO()
    err.close()
    handler = EventHandler(new_event_formatter(io.StringIO(), "none"), err)
    handler.err("lost line")


def test_unknown_format():
    with pytest.raises(ValueError, match="unknown format"):
        new_event_handler(Options(format="fancy"), io.StringIO(), io.StringIO())


def test_json_file_directory_cannot_be_created(tmp_path):
    (tmp_path / "taken").write_text("")
    options = Options(format="none", jsonfile=str(tmp_path / "taken" / "all.json"))
    with pytest.raises(TestsumError, match="failed to create file"):
        new_event_handler(options, io.StringIO(), io.StringIO())
