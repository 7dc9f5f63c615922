"""Custom exception classes for dqrules error handling.

This module defines the base of the dqrules exception hierarchy:
- DQRulesError: Common base carrying a message and a context dictionary
- DatasetError: Dataset files that cannot be located or parsed

Rule configuration and expression errors live next to the code that raises
them (``dqrules.validation.exceptions`` and ``dqrules.expression.errors``) but
all inherit from DQRulesError for consistent error handling.
"""

from typing import Any


class DQRulesError(Exception):
    """Base exception for all dqrules errors.

    Provides a common base class for all custom exceptions in the engine,
    enabling catch-all error handling when needed.
    """

    def __init__(self, message: str, context: dict[str, Any] | None = None) -> None:
        """Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error description
            context: Optional dictionary of contextual information (rule ids,
                    table names, file paths, values, etc.)
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return a formatted error message with context."""
        if not self.context:
            return self.message

        context_str = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
        return f"{self.message} [{context_str}]"


class DatasetError(DQRulesError):
    """Exception raised when a dataset cannot be loaded.

    Raised by the dataset loaders when an input file is missing, has an
    unsupported extension, or does not contain tabular rows.

    Context typically includes:
        - file_path: Path to the dataset file
        - table: Table name the file was loaded as
        - reason: Specific reason for the failure
    """

    def __init__(
        self,
        message: str,
        file_path: str | None = None,
        table: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        """Initialize dataset error with file details.

        Args:
            message: Human-readable error description
            file_path: Path to the dataset file that failed
            table: Table name the file was being loaded as
            reason: Specific reason for the failure
            **extra_context: Additional context information
        """
        context: dict[str, Any] = {}
        if file_path is not None:
            context["file_path"] = file_path
        if table is not None:
            context["table"] = table
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)
