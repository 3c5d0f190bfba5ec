"""Report of the tests which were rerun.

Lists each test which failed at least once, as flaky when it also passed in
another run, or as failed when it failed in every run. A path ending in
.json gets a structured JSON report instead of text lines.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Union

from ..testjson.execution import Execution

LOGGER = logging.getLogger(__name__)


@dataclass
class RerunResult:
    """Outcome of all the runs of one test."""
    name: str
    runs: int = 0
    failures: int = 0

    @property
    def flaky(self) -> bool:
        """Failed in some, but not all, of its runs."""
        return 0 < self.failures < self.runs

    @property
    def status(self) -> str:
        if self.flaky:
            return "flaky"
        if self.failures:
            return "failed"
        return "passed"

    def line(self) -> str:
        if self.flaky:
            return f"{self.name}: FLAKY, failed in {self.failures} out of {self.runs} runs"
        return f"{self.name}: FAILED in all {self.runs} runs"


def rerun_results(execution: Execution) -> dict[str, RerunResult]:
    """Runs and failures of every test, by package.Test name, sorted by name.

    A package which failed without a failed test is listed by its package
    name, as one failed run.
    """
    results: dict[str, RerunResult] = {}
    for pkg_name in execution.packages():
        pkg = execution.package(pkg_name)
        if pkg.test_main_failed():
            results[pkg_name] = RerunResult(name=pkg_name, runs=1, failures=1)
        for tc in pkg.test_cases():
            name = f"{pkg_name}.{tc.test}"
            result = results.setdefault(name, RerunResult(name=name))
            result.runs += 1
        for tc in pkg.failed:
            results[f"{pkg_name}.{tc.test}"].failures += 1
    return dict(sorted(results.items()))


def write_rerun_fails_report(path: Union[str, Path], execution: Execution) -> Path:
    """Write the report of flaky and failed tests.

    Args:
        path: Output file path. A .json suffix writes a JSON report.
        execution: The execution which includes every rerun.

    Returns:
        Path to the saved file.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    failed = [r for r in rerun_results(execution).values() if r.failures]

    with open(path, "w", encoding="utf-8") as f:
        if path.suffix == ".json":
            json.dump(generate_report(failed), f, indent=2, ensure_ascii=False)
        else:
            for result in failed:
                f.write(result.line() + "\n")

    LOGGER.debug("wrote rerun report with %d tests to %s", len(failed), path)
    return path


def generate_report(results: list[RerunResult]) -> dict[str, Any]:
    """Generate a JSON report from the results of failed tests.

    Returns:
        Report dictionary ready for JSON serialization.
    """
    flaky = sum(1 for r in results if r.flaky)
    failed = len(results) - flaky
    if failed:
        status = "failed"
    elif flaky:
        status = "flaky"
    else:
        status = "passed"

    return {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "status": status,
        "summary": {
            "total": len(results),
            "flaky": flaky,
            "failed": failed,
        },
        "tests": [
            {
                "name": r.name,
                "status": r.status,
                "runs": r.runs,
                "failures": r.failures,
            }
            for r in results
        ],
    }
