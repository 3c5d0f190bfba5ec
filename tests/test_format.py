"""Tests for event formatters."""

import io
from datetime import timedelta

import pytest

from testsum.testjson import (
    Action,
    CompactFormatter,
    Execution,
    FormatOptions,
    TestEvent,
    new_event_formatter,
)
from testsum.testjson.compact import dot_summary, parse_compact_name_format
from testsum.testjson.format import display_width, format_duration


def feed(formatter, execution, events):
    for event in events:
        execution.add(event)
        formatter.format(event, execution)


def passing_package(path, elapsed=0.0):
    """Events of a package with one passing test."""
    return [
        TestEvent(action=Action.RUN, package=path, test="TestOk"),
        TestEvent(action=Action.PASS, package=path, test="TestOk"),
        TestEvent(action=Action.PASS, package=path, elapsed=elapsed),
    ]


class TestNewEventFormatter:
    def test_unknown_format(self):
        with pytest.raises(ValueError, match="unknown format"):
            new_event_formatter(io.StringIO(), "fancy")

    def test_pkgname(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "pkgname")
        execution = Execution()
        feed(formatter, execution, passing_package("example.com/a", elapsed=1.5))
        feed(formatter, execution, [
            TestEvent(action=Action.OUTPUT, package="example.com/b", output="coverage: 50.0% of statements\n"),
            TestEvent(action=Action.SKIP, package="example.com/b"),
        ])
        assert out.getvalue() == (
            "✓  example.com/a (1.5s)\n"
            "∅  example.com/b (coverage: 50.0% of statements)\n"
        )

    def test_pkgname_hide_empty_packages(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "short", FormatOptions(hide_empty_packages=True))
        feed(formatter, Execution(), [TestEvent(action=Action.PASS, package="empty")])
        assert out.getvalue() == ""

    def test_testname_includes_failed_test_output(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "testname")
        feed(formatter, Execution(), [
            TestEvent(action=Action.RUN, package="pkg", test="TestA"),
            TestEvent(action=Action.OUTPUT, package="pkg", test="TestA", output="bad value\n"),
            TestEvent(action=Action.FAIL, package="pkg", test="TestA", elapsed=0.12, run_id=1),
        ])
        assert out.getvalue() == "bad value\nFAIL pkg.TestA (re-run 1) (0.12s)\n"

    def test_standard_quiet_hides_pass_and_coverage(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "standard-quiet")
        feed(formatter, Execution(), [
            TestEvent(action=Action.OUTPUT, package="pkg", output="PASS\n"),
            TestEvent(action=Action.OUTPUT, package="pkg", output="coverage: 1.0% of statements\n"),
            TestEvent(action=Action.OUTPUT, package="pkg", output="ok  \tpkg\t0.1s\n"),
        ])
        assert out.getvalue() == "ok  \tpkg\t0.1s\n"

    def test_standard_json_writes_raw_lines(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "standard-json")
        raw = b'{"Action":"pass","Package":"pkg"}'
        feed(formatter, Execution(), [
            TestEvent(action=Action.PASS, package="pkg", raw=raw),
            TestEvent(action=Action.FAIL, package="pkg", test="TestHang", elapsed=None),
        ])
        assert out.getvalue() == raw.decode() + "\n"

    def test_dots(self):
        out = io.StringIO()
        formatter = new_event_formatter(out, "dots")
        feed(formatter, Execution(), [
            TestEvent(action=Action.RUN, package="pkg", test="TestA"),
            TestEvent(action=Action.PASS, package="pkg", test="TestA"),
            TestEvent(action=Action.RUN, package="pkg", test="TestB"),
            TestEvent(action=Action.FAIL, package="pkg", test="TestB"),
        ])
        assert out.getvalue() == "[pkg]·✖"


class TestCompactFormatter:
    def test_joins_siblings_and_breaks_on_unrelated_path(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=40))
        execution = Execution()
        for path in ("a/b/c", "a/b/d", "a/x/y"):
            feed(formatter, execution, passing_package(path))
        formatter.close()

        assert out.getvalue() == "✓  a/b/c ✓ d\n✓  a/x/y\n"

    def test_back_step_after_nested_join(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80))
        execution = Execution()
        for path in ("a/b/c", "a/b/c/e", "a/b/f"):
            feed(formatter, execution, passing_package(path))
        formatter.close()

        assert out.getvalue() == "✓  a/b/c ✓ c/e ✓ ↶f\n"

    def test_failed_package_starts_a_new_line(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80))
        execution = Execution()
        feed(formatter, execution, passing_package("a/b/c"))
        feed(formatter, execution, [TestEvent(action=Action.FAIL, package="a/b/d")])
        formatter.close()

        assert out.getvalue() == "✓  a/b/c\n✖  a/b/d\n"

    def test_elides_prefix_when_line_is_full(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=12))
        execution = Execution()
        feed(formatter, execution, passing_package("a/b/c"))
        feed(formatter, execution, passing_package("a/b/d"))
        formatter.close()

        assert out.getvalue() == "✓  a/b/c\n✓  …/d\n"

    def test_test_failure_output_on_its_own_lines(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80))
        execution = Execution()
        feed(formatter, execution, passing_package("a/b/c"))
        feed(formatter, execution, [
            TestEvent(action=Action.RUN, package="a/b/d", test="TestBad"),
            TestEvent(action=Action.OUTPUT, package="a/b/d", test="TestBad", output="--- FAIL: TestBad\n"),
            TestEvent(action=Action.FAIL, package="a/b/d", test="TestBad"),
            TestEvent(action=Action.FAIL, package="a/b/d"),
        ])
        formatter.close()

        assert out.getvalue() == "✓  a/b/c\n--- FAIL: TestBad\n✖  a/b/d\n"

    def test_wall_time_prefix(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80, output_wall_time=True))
        now = [10.0]
        execution = Execution(clock=lambda: now[0])
        now[0] = 11.25
        feed(formatter, execution, passing_package("a/b/c"))
        formatter.close()

        assert out.getvalue() == "1.250s ✓  a/b/c\n"

    @pytest.mark.parametrize("name_format,expected", [
        ("relative", "✓  a/b/c ✓ a/b/d ✓ a/x/y\n"),
        ("short", "✓  a/b/c ✓ d ✓ y\n"),
        ("partial", "✓  a/b/c ✓ d\n✓  a/x/y\n"),
    ])
    def test_name_formats(self, name_format, expected):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80, compact_pkg_name_format=name_format))
        execution = Execution()
        for path in ("a/b/c", "a/b/d", "a/x/y"):
            feed(formatter, execution, passing_package(path))
        formatter.close()

        assert out.getvalue() == expected

    def test_partial_back_step_has_no_marker(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80, compact_pkg_name_format="partial"))
        execution = Execution()
        for path in ("a/b/c", "a/b/c/e", "a/b/f"):
            feed(formatter, execution, passing_package(path))
        formatter.close()

        assert out.getvalue() == "✓  a/b/c ✓ c/e ✓ f\n"

    def test_dots_summary_after_each_package(self):
        out = io.StringIO()
        formatter = CompactFormatter(out, FormatOptions(width=80, compact_pkg_name_format="partial-back-dots"))
        execution = Execution()
        events = []
        for name, action in (("TestA", Action.PASS), ("TestB", Action.SKIP), ("TestC", Action.PASS)):
            events.append(TestEvent(action=Action.RUN, package="a/b/c", test=name))
            events.append(TestEvent(action=action, package="a/b/c", test=name))
        events.append(TestEvent(action=Action.PASS, package="a/b/c"))
        for i in range(10):
            events.append(TestEvent(action=Action.RUN, package="a/b/d", test=f"Test{i}"))
            events.append(TestEvent(action=Action.PASS, package="a/b/d", test=f"Test{i}"))
        events.append(TestEvent(action=Action.PASS, package="a/b/d"))
        feed(formatter, execution, events)
        formatter.close()

        assert out.getvalue() == "✓  a/b/c··↷ ✓ d·[10]\n"

    def test_unknown_name_format(self):
        with pytest.raises(ValueError, match="unknown compact package name format long"):
            new_event_formatter(io.StringIO(), "pkgname-compact", FormatOptions(compact_pkg_name_format="long"))


@pytest.mark.parametrize("value,expected", [
    ("partial-back", ("partial-back", None)),
    ("short-dots3", ("short", 3)),
    ("relative-dots", ("relative", 1)),
    ("dots2", ("partial-back", 2)),
])
def test_parse_compact_name_format(value, expected):
    assert parse_compact_name_format(value) == expected


@pytest.mark.parametrize("value", ["long", "short-dotsx", "partial-"])
def test_parse_compact_name_format_rejects_unknown_names(value):
    with pytest.raises(ValueError, match="unknown compact package name format"):
        parse_compact_name_format(value)


@pytest.mark.parametrize("dots,limit,expected", [
    (["·", "✖", "·", "·"], 1, "···✖"),
    (["·"] * 10, 1, "·[10]"),
    (["✖", "·", "·"], 2, "··✖"),
    (["·"] * 5 + ["↷"] * 3, 2, "·····↷[3]"),
    ([], 1, ""),
])
def test_dot_summary(dots, limit, expected):
    assert dot_summary(dots, limit) == expected


def test_display_width_counts_wide_icons_and_ignores_color():
    assert display_width("✅ a") == 4
    assert display_width("\x1b[32m✓\x1b[0m a") == 3


@pytest.mark.parametrize("seconds,expected", [
    (0.45, "450ms"),
    (1.2, "1.2s"),
    (2.0, "2s"),
    (63.5, "1m3.5s"),
])
def test_format_duration(seconds, expected):
    assert format_duration(timedelta(seconds=seconds)) == expected
