"""CLI entry point for testsum.

Runs go test -json, prints the events in the selected format, reruns the
failed tests when requested, and prints a summary:

    testsum --format pkgname-compact --rerun-fails 2 --packages ./... -- -race
"""

import logging
import subprocess
import sys
from typing import Callable, Optional, Sequence, TextIO

import click

from .config import Options, find_config, parse_config, validate_options
from .errors import TestsumError
from .handler import new_event_handler
from .log import configure_logging
from .runner import (
    TestProc,
    check_initial_run,
    go_test_cmd_args,
    rerun_failed,
    start_test_process,
    write_rerun_fails_report,
)
from .testjson import Execution, ScanConfig, print_summary, scan_test_output

LOGGER = logging.getLogger(__name__)

Starter = Callable[[Sequence[str]], TestProc]


@click.command(context_settings={"ignore_unknown_options": True})
@click.option("--config", "config_path", type=click.Path(dir_okay=False), default=None,
              help="YAML configuration file. Default: testsum.yaml if it exists.")
@click.option("-f", "--format", "format_name", default=None, help="Print test events in this format.")
@click.option("--jsonfile", default=None, help="Write all test events to this file.")
@click.option("--max-fails", type=int, default=None, help="End the run after this number of failures.")
@click.option("--rerun-fails", type=int, default=None,
              help="Rerun failed tests until they pass, at most this many times.")
@click.option("--packages", default=None, help="Space separated list of packages to test.")
@click.option("--debug", is_flag=True, default=False, help="Enable debug logging.")
@click.argument("go_test_args", nargs=-1, type=click.UNPROCESSED)
def main(
    config_path: Optional[str],
    format_name: Optional[str],
    jsonfile: Optional[str],
    max_fails: Optional[int],
    rerun_fails: Optional[int],
    packages: Optional[str],
    debug: bool,
    go_test_args: tuple[str, ...],
):
    """Run go test and summarize the results."""
    configure_logging(debug)

    try:
        options = load_options(config_path)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if format_name is not None:
        options.format = format_name
    if jsonfile is not None:
        options.jsonfile = jsonfile
    if max_fails is not None:
        options.max_fails = max_fails
    if rerun_fails is not None:
        options.rerun_fails.max_attempts = rerun_fails
    if packages is not None:
        options.packages = packages.split()
    if go_test_args:
        options.go_test_args = list(go_test_args)
    if options.debug and not debug:
        configure_logging(True)

    LOGGER.debug("options: %s", options.to_dict())
    validation = validate_options(options)
    LOGGER.debug("validation: %s", validation)
    for warning in validation.warnings:
        LOGGER.warning("%s: %s", warning.path, warning.message)
    if not validation.valid:
        errors_str = "; ".join(f"{e.path}: {e.message}" for e in validation.errors)
        raise click.UsageError(f"{validation} in options: {errors_str}")

    try:
        code = run(options)
    except TestsumError as e:
        LOGGER.error("%s", e)
        code = 1
    except KeyboardInterrupt:
        code = 130
    sys.exit(code)


def load_options(config_path: Optional[str]) -> Options:
    """Load options from config_path, or from the default config file."""
    if config_path:
        return parse_config(config_path)
    default = find_config()
    if default is not None:
        LOGGER.debug("using config file %s", default)
        return parse_config(default)
    return Options()


def run(
    options: Options,
    out: Optional[TextIO] = None,
    err: Optional[TextIO] = None,
    start: Starter = start_test_process,
) -> int:
    """Run go test with options.

    Args:
        options: Validated options.
        out: Destination of formatted events and the summary. Default: stdout.
        err: Destination of the go test stderr. Default: stderr.
        start: Starts the test process.

    Returns:
        The exit code for the command.
    """
    out = out or sys.stdout
    err = err or sys.stderr
    policy = options.rerun_fails.to_policy()
    execution = Execution()
    error: Optional[BaseException] = None

    with new_event_handler(options, out, err) as handler:
        proc = start(go_test_cmd_args(options.go_test_args, packages=options.packages))
        try:
            scan_test_output(ScanConfig(
                stdout=proc.stdout,
                stderr=proc.stderr,
                handler=handler,
                execution=execution,
                stop=proc.cancel,
                ignore_non_json_output_lines=options.ignore_non_json_output_lines,
            ))
        except TestsumError as e:
            error = e
        handler.flush()

        returncode = 0
        try:
            proc.wait()
        except subprocess.CalledProcessError as e:
            returncode = e.returncode
            if error is None:
                error = e

        if isinstance(error, subprocess.CalledProcessError) and policy.enabled:
            error = _rerun(options, execution, handler, start, returncode, out)

    print_summary(out, execution, options.summary_sections, options.slow_threshold_duration)
    return _exit_code(error)


def _rerun(options, execution, handler, start: Starter, returncode: int, out: TextIO) -> Optional[BaseException]:
    policy = options.rerun_fails.to_policy()
    try:
        check_initial_run(execution, returncode)
    except TestsumError as e:
        return e

    def launch(rerun_opts):
        return start(go_test_cmd_args(options.go_test_args, rerun_opts))

    try:
        rerun_failed(execution, handler, launch, policy, out)
    except subprocess.CalledProcessError as e:
        error = e
    except TestsumError as e:
        return e
    else:
        error = None

    if policy.should_write_report():
        write_rerun_fails_report(policy.report_file, execution)
    return error


def _exit_code(error: Optional[BaseException]) -> int:
    if error is None:
        return 0
    if isinstance(error, subprocess.CalledProcessError):
        return error.returncode
    LOGGER.error("%s", error)
    return 1


if __name__ == "__main__":
    main()
