"""Rerun policy for failed tests.

Decides how many times failed tests are run again, and when rerunning is
not worth starting at all.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class RerunPolicy:
    """Configurable policy for rerunning failed tests."""
    # Number of rerun rounds. 0 disables rerunning.
    max_attempts: int = 0
    # Do not rerun when the initial run had more failures than this.
    max_initial_failures: int = 10
    # Rerun the root test of a failed subtest instead of only the subtest.
    run_root_cases_only: bool = False
    # Write the flaky and failed test report to this file.
    report_file: Optional[str] = None

    @property
    def enabled(self) -> bool:
        return self.max_attempts > 0

    def should_write_report(self) -> bool:
        return self.enabled and bool(self.report_file)

