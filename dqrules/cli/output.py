"""Output formatting, logging setup and progress indicators for CLI commands.

This module provides:
- ProgressIndicator: TTY-aware progress messages on stderr
- handle_error: Error messages with context and optional stack traces
- configure_logging: Root logger setup from ``--log-level``/``--log-file``
"""

import logging
import sys
import traceback
from pathlib import Path
from typing import TextIO

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class ProgressIndicator:
    """Simple progress indicator for CLI operations.

    Disabled automatically when stderr is not a TTY, so redirected output
    stays clean.

    Example:
        progress = ProgressIndicator(enabled=not quiet)
        progress.start("Validating 3 table(s)")
        # ... do work ...
        progress.success("Validation Summary: 10/10 passed, 0 failed, 0 warnings")
    """

    def __init__(self, enabled: bool = True, stream: TextIO | None = None):
        self.stream = stream if stream is not None else sys.stderr
        self.enabled = enabled and self.stream.isatty()

    def start(self, message: str) -> None:
        if self.enabled:
            self.stream.write(f"{message}... ")
            self.stream.flush()

    def success(self, message: str) -> None:
        """Finish the progress line with a check mark and print ``message`` to stdout."""
        if self.enabled:
            self.stream.write("✓\n")
        print(message)

    def failure(self, message: str) -> None:
        """Finish the progress line with a cross and print ``message`` to stdout."""
        if self.enabled:
            self.stream.write("✗\n")
        print(message)

    def error(self, message: str) -> None:
        if self.enabled:
            self.stream.write("✗\n")
        print(f"Error: {message}", file=sys.stderr)


def handle_error(error: Exception, verbose: bool = False) -> None:
    """Format and display error message with context.

    Errors derived from DQRulesError carry a ``context`` dict, which is
    printed below the message. With ``verbose`` the stack trace follows.

    Example:
        try:
            datasets = load_datasets(specs)
        except DatasetError as e:
            handle_error(e, verbose=True)
    """
    print(f"Error: {error}", file=sys.stderr)

    context = getattr(error, "context", None)
    if context:
        print("Context:", file=sys.stderr)
        for key, value in context.items():
            print(f"  {key}: {value}", file=sys.stderr)

    if verbose:
        print("\nStack trace:", file=sys.stderr)
        traceback.print_exc(file=sys.stderr)


def configure_logging(log_level: str = "warning", log_file: Path | None = None) -> None:
    """Configure the root logger for a CLI run.

    Args:
        log_level: debug, info, warning or error
        log_file: Write log records to this file instead of stderr

    Raises:
        ValueError: If ``log_level`` is unknown
    """
    level = LOG_LEVELS.get(log_level.lower())
    if level is None:
        raise ValueError(f"Unknown log level '{log_level}'. Available: {', '.join(LOG_LEVELS)}")

    handler: logging.Handler
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stderr)
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=[handler], force=True)
