"""Tests for YAML configuration parsing and validation."""

from datetime import timedelta

import pytest

from testsum.config import (
    Options,
    find_config,
    parse_config,
    parse_config_data,
    validate_options,
)
from testsum.testjson import Summary


FULL_CONFIG = """\
format: pkgname-compact
format_options:
  hide_empty_packages: true
  wall_time: true
  width: 100
jsonfile: out/test.json
max_fails: 3
summary: failed,errors
slow_threshold: 0.5
rerun_fails:
  max_attempts: 2
  report_file: rerun.txt
go_test_args: ["-race"]
packages: ["./..."]
"""


class TestParseConfig:
    def test_full_config(self, tmp_path):
        path = tmp_path / "testsum.yaml"
        path.write_text(FULL_CONFIG)

        options = parse_config(path)

        assert options.format == "pkgname-compact"
        assert options.format_options.hide_empty_packages
        assert options.format_options.width == 100
        assert options.max_fails == 3
        assert options.summary_sections == Summary.FAILED | Summary.ERRORS
        assert options.slow_threshold_duration == timedelta(milliseconds=500)
        assert options.rerun_fails.to_policy().max_attempts == 2
        assert options.rerun_fails.to_policy().should_write_report()
        assert options.go_test_args == ["-race"]
        assert options.packages == ["./..."]

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "testsum.yml"
        path.write_text("")
        assert parse_config(path) == Options()

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            parse_config(tmp_path / "missing.yaml")

    def test_wrong_suffix(self, tmp_path):
        path = tmp_path / "testsum.json"
        path.write_text("{}")
        with pytest.raises(ValueError, match="Expected .yaml or .yml"):
            parse_config(path)

    def test_malformed_yaml(self, tmp_path):
        path = tmp_path / "testsum.yaml"
        path.write_text("format: [unclosed\n")
        with pytest.raises(ValueError, match="Invalid YAML"):
            parse_config(path)


class TestParseConfigData:
    def test_unknown_keys_are_ignored(self):
        options = parse_config_data({"format": "dots", "colour": True, "rerun_fails": {"later": 1}})
        assert options.format == "dots"
        assert options.rerun_fails.max_attempts == 0

    def test_null_values_keep_defaults(self):
        assert parse_config_data({"summary": None}).summary == "all"

    def test_null_sections_keep_defaults(self):
        options = parse_config_data({"format_options": None, "rerun_fails": None})
        assert options.rerun_fails.max_initial_failures == 10
        assert options.format_options.output_test_failures

    @pytest.mark.parametrize("data,message", [
        ({"max_fails": "3"}, "'max_fails' must be int"),
        ({"max_fails": True}, "'max_fails' must be int"),
        ({"format_options": {"width": 1.5}}, "'format_options.width' must be int"),
        ({"rerun_fails": []}, "'rerun_fails' must be a mapping"),
        ({"format_options": ""}, "'format_options' must be a mapping"),
        ({"rerun_fails": 0}, "'rerun_fails' must be a mapping"),
        ({"packages": ["./...", 3]}, "'packages' must be a list of strings"),
    ])
    def test_wrong_types(self, data, message):
        with pytest.raises(ValueError, match=message):
            parse_config_data(data)

    def test_not_a_mapping(self):
        with pytest.raises(ValueError, match="must be a YAML mapping"):
            parse_config_data(["format"])

    def test_to_dict(self):
        data = parse_config_data({"format": "dots", "packages": ["./..."]}).to_dict()
        assert data["format"] == "dots"
        assert data["packages"] == ["./..."]
        assert data["rerun_fails"]["max_initial_failures"] == 10


def test_find_config(tmp_path):
    assert find_config(tmp_path) is None
    (tmp_path / "testsum.yaml").write_text("")
    assert find_config(tmp_path) == tmp_path / "testsum.yaml"


class TestValidateOptions:
    def test_defaults_are_valid(self):
        result = validate_options(Options())
        assert result.valid
        assert str(result) == "Valid"

    def test_invalid_values(self):
        options = parse_config_data({
            "format": "fancy",
            "summary": "failed,nothing",
            "max_fails": -1,
            "format_options": {"width": 0},
        })
        result = validate_options(options)

        assert not result.valid
        assert [e.path for e in result.errors] == ["format", "format_options.width", "summary", "max_fails"]

    def test_rerun_needs_packages_and_no_run_flag(self):
        options = parse_config_data({
            "rerun_fails": {"max_attempts": 2},
            "go_test_args": ["-run=TestA"],
        })
        result = validate_options(options)
        assert [e.path for e in result.errors] == ["packages", "go_test_args"]

    def test_warnings(self):
        options = parse_config_data({
            "format_options": {"wall_time": True},
            "rerun_fails": {"report_file": "rerun.txt"},
        })
        result = validate_options(options)

        assert result.valid
        assert [w.path for w in result.warnings] == ["format_options.wall_time", "rerun_fails.report_file"]
        assert str(result) == "Valid (2 warnings)"

    def test_compact_pkg_name_format(self):
        options = parse_config_data({
            "format": "pkgname-compact",
            "format_options": {"compact_pkg_name_format": "short-dots2"},
        })
        assert validate_options(options).valid
        assert options.format_options.to_format_options().compact_pkg_name_format == "short-dots2"

    def test_unknown_compact_pkg_name_format(self):
        result = validate_options(parse_config_data({
            "format": "pkgname-compact",
            "format_options": {"compact_pkg_name_format": "long"},
        }))
        assert [e.path for e in result.errors] == ["format_options.compact_pkg_name_format"]

    def test_compact_pkg_name_format_needs_compact_format(self):
        result = validate_options(parse_config_data({"format_options": {"compact_pkg_name_format": "relative"}}))
        assert result.valid
        assert [w.path for w in result.warnings] == ["format_options.compact_pkg_name_format"]

    def test_same_json_files(self):
        result = validate_options(parse_config_data({"jsonfile": "a.json", "jsonfile_timing_events": "a.json"}))
        assert [e.path for e in result.errors] == ["jsonfile_timing_events"]
