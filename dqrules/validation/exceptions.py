"""Validation-specific exceptions.

This module defines the exception hierarchy for rule handling.
All exceptions extend from DQRulesError for consistent error handling.
"""

from typing import Any

from dqrules.core.exceptions import DQRulesError


class RuleConfigurationError(DQRulesError):
    """Exception raised when a rule is configured with invalid parameters.

    This exception is raised while parsing a rule's kind-specific parameters
    (e.g., a list rule without ``listId``, a composite reference with source
    and reference column lists of different lengths). The orchestrator turns
    it into a ``failure`` result for every row of the rule's table, whatever
    severity the rule itself declares.

    Context typically includes:
        - rule_id: Id of the broken rule
        - rule_type: Kind of the rule
        - parameter: Name of the invalid parameter
        - reason: Why the value is invalid

    Example:
        >>> raise RuleConfigurationError(
        ...     "Missing required parameter 'listId'",
        ...     rule_type="list",
        ...     parameter="listId",
        ...     reason="Required parameter missing"
        ... )
    """

    def __init__(
        self,
        message: str,
        rule_id: str | None = None,
        rule_type: str | None = None,
        parameter: str | None = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        """Initialize rule configuration error.

        Args:
            message: Human-readable error description
            rule_id: Id of the rule
            rule_type: Kind of the rule
            parameter: Name of the invalid parameter
            reason: Why the value is invalid
            **extra_context: Additional context information
        """
        context: dict[str, Any] = {}
        if rule_id is not None:
            context["rule_id"] = rule_id
        if rule_type is not None:
            context["rule_type"] = rule_type
        if parameter is not None:
            context["parameter"] = parameter
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class ConfigurationSchemaError(DQRulesError):
    """Exception raised when declarative rule configuration is invalid.

    This exception is raised when loading rules or value lists (from Python
    data, JSON or YAML) that violate the configuration schema (e.g., missing
    required fields, unknown rule types, invalid severities).

    Context typically includes:
        - rule_index: Index of the rule in the configuration
        - rule_type: Type of rule specified
        - field: Configuration field that is invalid
        - value: Invalid value provided
        - reason: Why the configuration is invalid

    Example:
        >>> raise ConfigurationSchemaError(
        ...     "Unknown rule type: 'invalid'",
        ...     rule_index=0,
        ...     rule_type="invalid",
        ...     field="ruleType",
        ...     reason="Rule type not found in catalog"
        ... )
    """

    def __init__(
        self,
        message: str,
        rule_index: int | None = None,
        rule_type: str | None = None,
        field: str | None = None,
        value: Any = None,
        reason: str | None = None,
        **extra_context: Any,
    ) -> None:
        """Initialize configuration schema error.

        Args:
            message: Human-readable error description
            rule_index: Index of the rule in the configuration
            rule_type: Type of rule specified
            field: Configuration field that is invalid
            value: Invalid value provided
            reason: Why the configuration is invalid
            **extra_context: Additional context information
        """
        context: dict[str, Any] = {}
        if rule_index is not None:
            context["rule_index"] = rule_index
        if rule_type is not None:
            context["rule_type"] = rule_type
        if field is not None:
            context["field"] = field
        if value is not None:
            context["value"] = value
        if reason is not None:
            context["reason"] = reason
        context.update(extra_context)

        super().__init__(message, context)


class ValidationCancelledError(DQRulesError):
    """Exception raised when a validation run is cancelled cooperatively.

    Context typically includes:
        - completed_rules: Number of rules fully processed before cancellation
    """

    def __init__(self, message: str, completed_rules: int | None = None) -> None:
        context: dict[str, Any] = {}
        if completed_rules is not None:
            context["completed_rules"] = completed_rules
        super().__init__(message, context)
