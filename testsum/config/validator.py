"""Options validator for testsum.

Validates parsed Options objects against the rules the command depends on.
"""

from .schema import Options, ValidationError, ValidationResult, VALID_FORMATS
from ..testjson.compact import DEFAULT_COMPACT_NAME_FORMAT, parse_compact_name_format
from ..testjson.summary import parse_summary


def validate_options(options: Options) -> ValidationResult:
    """Validate a parsed Options object.

    Checks:
    - The format name and width
    - Summary sections and slow test threshold
    - Counts which must not be negative
    - Rerun settings which need packages to rerun

    Args:
        options: Parsed Options to validate.

    Returns:
        ValidationResult with errors and warnings.
    """
    errors: list[ValidationError] = []
    warnings: list[ValidationError] = []

    _validate_format(options, errors, warnings)
    _validate_summary(options, errors, warnings)
    _validate_rerun(options, errors, warnings)

    if options.max_fails < 0:
        errors.append(ValidationError(
            path="max_fails",
            message=f"max_fails must not be negative, got {options.max_fails}.",
        ))

    if options.jsonfile and options.jsonfile == options.jsonfile_timing_events:
        errors.append(ValidationError(
            path="jsonfile_timing_events",
            message="jsonfile and jsonfile_timing_events must be different files.",
        ))

    return ValidationResult(
        valid=len(errors) == 0,
        errors=errors,
        warnings=warnings,
    )


def _validate_format(
    options: Options,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    if options.format not in VALID_FORMATS:
        errors.append(ValidationError(
            path="format",
            message=f"Invalid format '{options.format}'. Must be one of: {', '.join(sorted(VALID_FORMATS))}",
        ))

    width = options.format_options.width
    if width is not None and width <= 0:
        errors.append(ValidationError(
            path="format_options.width",
            message=f"width must be positive, got {width}.",
        ))

    if options.format_options.wall_time and options.format != "pkgname-compact":
        warnings.append(ValidationError(
            path="format_options.wall_time",
            message="wall_time is only used by the pkgname-compact format.",
            severity="warning",
        ))

    name_format = options.format_options.compact_pkg_name_format
    try:
        parse_compact_name_format(name_format)
    except ValueError as e:
        errors.append(ValidationError(path="format_options.compact_pkg_name_format", message=f"{e}."))
    else:
        if name_format != DEFAULT_COMPACT_NAME_FORMAT and options.format != "pkgname-compact":
            warnings.append(ValidationError(
                path="format_options.compact_pkg_name_format",
                message="compact_pkg_name_format is only used by the pkgname-compact format.",
                severity="warning",
            ))


def _validate_summary(
    options: Options,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    try:
        parse_summary(options.summary)
    except ValueError as e:
        errors.append(ValidationError(path="summary", message=f"{e}."))

    if options.slow_threshold is not None and options.slow_threshold < 0:
        errors.append(ValidationError(
            path="slow_threshold",
            message=f"slow_threshold must not be negative, got {options.slow_threshold}.",
        ))


def _validate_rerun(
    options: Options,
    errors: list[ValidationError],
    warnings: list[ValidationError],
) -> None:
    rerun = options.rerun_fails

    if rerun.max_attempts < 0:
        errors.append(ValidationError(
            path="rerun_fails.max_attempts",
            message=f"max_attempts must not be negative, got {rerun.max_attempts}.",
        ))
    if rerun.max_initial_failures < 0:
        errors.append(ValidationError(
            path="rerun_fails.max_initial_failures",
            message=f"max_initial_failures must not be negative, got {rerun.max_initial_failures}.",
        ))

    if rerun.max_attempts > 0:
        if not options.packages:
            errors.append(ValidationError(
                path="packages",
                message="packages must be set when rerun_fails is enabled.",
            ))
        for arg in options.go_test_args:
            if arg.startswith(("-run", "-test.run")):
                errors.append(ValidationError(
                    path="go_test_args",
                    message=f"'{arg}' can not be used when rerun_fails is enabled.",
                ))
    elif rerun.report_file:
        warnings.append(ValidationError(
            path="rerun_fails.report_file",
            message="report_file is ignored when rerun_fails is not enabled.",
            severity="warning",
        ))
