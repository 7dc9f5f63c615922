"""Exit code constants for CLI commands.

Exit codes follow Unix conventions where 0 indicates success and non-zero
values indicate different types of failures.

Exit codes:
    0: SUCCESS - Run completed and no result has failure severity
    1: UNEXPECTED_ERROR - Unexpected/unhandled exception
    2: VALIDATION_FAILED - Run completed with at least one failure result
    3: DATASET_ERROR - Dataset file missing or unreadable
    6: CONFIG_ERROR - Rule, list or configuration file error
"""


class ExitCode:
    """Standard exit codes for CLI commands.

    Example:
        >>> from dqrules.cli.exit_codes import ExitCode
        >>> import sys
        >>>
        >>> try:
        ...     # ... operation ...
        ...     sys.exit(ExitCode.SUCCESS)
        ... except DatasetError:
        ...     sys.exit(ExitCode.DATASET_ERROR)
    """

    SUCCESS = 0
    """Operation completed successfully."""

    UNEXPECTED_ERROR = 1
    """Unexpected or unhandled exception occurred."""

    VALIDATION_FAILED = 2
    """Validation ran and reported failures."""

    DATASET_ERROR = 3
    """Dataset file could not be located or parsed."""

    CONFIG_ERROR = 6
    """Rule, value-list or configuration file error."""
