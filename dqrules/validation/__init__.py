"""Rule-based data quality validation.

This package turns a rule collection and a set of datasets into a flat list
of per-row validation results (``success``, ``warning`` or ``failure``). It
holds the rule catalog, the condition combinator, the cross-table checks,
the orchestrator and the reporting and configuration helpers around them.
"""

# Rule catalog
from dqrules.validation.catalog import CHECKS, describe_rule_types, run_check

# Condition combinator
from dqrules.validation.combinator import ChainLink, evaluate_chain, prepare_chain
from dqrules.validation.context import ValidationContext

# Declarative configuration
from dqrules.validation.declarative import (
    find_rule_problems,
    get_rules_schema,
    load_rules,
    load_value_lists,
    read_document,
)

# Exceptions
from dqrules.validation.exceptions import (
    ConfigurationSchemaError,
    RuleConfigurationError,
    ValidationCancelledError,
)

# Orchestration
from dqrules.validation.orchestrator import (
    ResultBuffer,
    ValidationEngine,
    ValidationMode,
    validate_dataset,
)

# Core protocols and data structures
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import PARAMETER_TYPES, parse_parameters
from dqrules.validation.protocols import RuleCheck

# Reporting
from dqrules.validation.report import ValidationReport, create_report
from dqrules.validation.result import ValidationResult

__all__ = [
    # Core protocols and data structures
    "RuleCheck",
    "CheckOutcome",
    "ValidationContext",
    "ValidationResult",
    "ValidationReport",
    "create_report",
    # Orchestration
    "ValidationEngine",
    "ValidationMode",
    "ResultBuffer",
    "validate_dataset",
    # Rule catalog
    "CHECKS",
    "PARAMETER_TYPES",
    "describe_rule_types",
    "parse_parameters",
    "run_check",
    # Condition combinator
    "ChainLink",
    "evaluate_chain",
    "prepare_chain",
    # Declarative configuration
    "find_rule_problems",
    "get_rules_schema",
    "load_rules",
    "load_value_lists",
    "read_document",
    # Exceptions
    "ConfigurationSchemaError",
    "RuleConfigurationError",
    "ValidationCancelledError",
]
