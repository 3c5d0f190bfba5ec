"""Runner module - Test process launching and reruns of failed tests."""

from .policy import RerunPolicy
from .proc import (
    RerunOpts,
    TestProc,
    go_test_cmd_args,
    go_test_run_flag,
    start_test_process,
)
from .rerun import FailureRecorder, check_initial_run, rerun_failed
from .report import RerunResult, rerun_results, write_rerun_fails_report

__all__ = [
    "RerunPolicy",
    "RerunOpts",
    "TestProc",
    "go_test_cmd_args",
    "go_test_run_flag",
    "start_test_process",
    "FailureRecorder",
    "check_initial_run",
    "rerun_failed",
    "RerunResult",
    "rerun_results",
    "write_rerun_fails_report",
]
