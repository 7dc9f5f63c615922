"""Declarative rule and value-list configuration.

This module loads rule collections and value lists from Python data, JSON
files or YAML files, checks them against the configuration schema and
builds :class:`~dqrules.core.models.Rule` and
:class:`~dqrules.core.models.ValueList` records.

Both sources may be either a bare list or a mapping holding the list under
``rules`` (or ``lists``).

Example configuration (YAML):
    rules:
      - id: amount-positive
        name: Amount must be positive
        table: transactions
        column: amount
        ruleType: greater-than
        parameters:
          compareValue: 0
        severity: failure
      - id: user-exists
        name: User exists
        table: transactions
        column: userId
        ruleType: reference-integrity
        parameters:
          referenceTable: users
          referenceColumn: id
"""

import json
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import yaml

from dqrules.core.models import CONDITION_OPERATORS, Rule, RuleType, Severity, ValueList
from dqrules.validation.combinator import prepare_chain
from dqrules.validation.exceptions import ConfigurationSchemaError, RuleConfigurationError
from dqrules.validation.orchestrator import uses_primary_parameters
from dqrules.validation.parameters import parse_parameters

RULE_TYPES = tuple(rule_type.value for rule_type in RuleType)
RULE_SEVERITIES = (Severity.WARNING.value, Severity.FAILURE.value)


def read_document(path: str | Path) -> Any:
    """Read a JSON or YAML document from disk.

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationSchemaError: If the extension is unsupported or the
            content cannot be parsed
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    suffix = config_path.suffix.lower()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            if suffix == ".json":
                return json.load(f)
            if suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationSchemaError(
            f"Cannot parse configuration file {config_path}: {e}",
            reason="Invalid JSON or YAML syntax",
            file_path=str(config_path),
        ) from e

    raise ConfigurationSchemaError(
        f"Unsupported configuration file type: {suffix or '(none)'}",
        reason="Expected .json, .yaml or .yml",
        file_path=str(config_path),
    )


def _entries(source: Any, key: str) -> list[Any]:
    if isinstance(source, (str, Path)):
        source = read_document(source)
    if isinstance(source, Mapping):
        if key not in source:
            raise ConfigurationSchemaError(
                f"Configuration must contain '{key}' key",
                field=key,
                reason="Required field missing",
            )
        source = source[key]
    if not isinstance(source, list):
        raise ConfigurationSchemaError(
            f"'{key}' must be a list, got: {type(source).__name__}",
            field=key,
            reason="Invalid field type",
        )
    return source


def _require_list_of_dicts(spec: Mapping[str, Any], field: str, index: int, rule_type: str) -> list:
    items = spec.get(field)
    if items is None:
        return []
    if not isinstance(items, list) or not all(isinstance(item, dict) for item in items):
        raise ConfigurationSchemaError(
            f"Rule '{field}' at index {index} must be a list of objects",
            rule_index=index,
            rule_type=rule_type,
            field=field,
            reason="Invalid field type",
        )
    return items


def _validate_rule_spec(spec: Any, index: int) -> None:
    """Validate a single rule specification.

    Raises:
        ConfigurationSchemaError: If the specification is invalid
    """
    if not isinstance(spec, dict):
        raise ConfigurationSchemaError(
            f"Rule at index {index} must be a dictionary, got: {type(spec).__name__}",
            rule_index=index,
            reason="Invalid rule specification type",
        )

    for field in ("id", "ruleType"):
        if field not in spec or spec[field] in (None, ""):
            raise ConfigurationSchemaError(
                f"Rule at index {index} missing required '{field}' field",
                rule_index=index,
                field=field,
                reason="Required field missing",
            )

    rule_type = spec["ruleType"]
    if rule_type not in RULE_TYPES:
        raise ConfigurationSchemaError(
            f"Unknown rule type at index {index}: '{rule_type}'. Available types: {', '.join(RULE_TYPES)}",
            rule_index=index,
            rule_type=str(rule_type),
            field="ruleType",
            reason="Rule type not found in catalog",
        )

    if not (spec.get("table") or spec.get("tableName")):
        raise ConfigurationSchemaError(
            f"Rule at index {index} missing required 'table' field",
            rule_index=index,
            rule_type=rule_type,
            field="table",
            reason="Required field missing",
        )

    if "parameters" in spec and spec["parameters"] is not None and not isinstance(spec["parameters"], dict):
        raise ConfigurationSchemaError(
            f"Rule parameters at index {index} must be a dictionary, got: {type(spec['parameters']).__name__}",
            rule_index=index,
            rule_type=rule_type,
            field="parameters",
            value=spec["parameters"],
            reason="Invalid field type",
        )

    severity = spec.get("severity", Severity.FAILURE.value)
    if severity not in RULE_SEVERITIES:
        raise ConfigurationSchemaError(
            f"Rule severity at index {index} must be 'warning' or 'failure', got: {severity}",
            rule_index=index,
            rule_type=rule_type,
            field="severity",
            value=severity,
            reason="Invalid severity value",
        )

    for condition in _require_list_of_dicts(spec, "columnConditions", index, rule_type):
        if condition.get("ruleType") not in RULE_TYPES:
            raise ConfigurationSchemaError(
                f"Unknown rule type in columnConditions at index {index}: '{condition.get('ruleType')}'",
                rule_index=index,
                rule_type=rule_type,
                field="columnConditions",
                value=condition.get("ruleType"),
                reason="Rule type not found in catalog",
            )
        if condition.get("logicalOperator", "AND") not in (None, "", "AND", "OR", "and", "or"):
            raise ConfigurationSchemaError(
                f"Invalid logicalOperator in columnConditions at index {index}: "
                f"'{condition.get('logicalOperator')}'",
                rule_index=index,
                rule_type=rule_type,
                field="logicalOperator",
                value=condition.get("logicalOperator"),
                reason="Expected AND or OR",
            )

    for field in ("conditions", "additionalConditions", "crossTableConditions"):
        for condition in _require_list_of_dicts(spec, field, index, rule_type):
            operator = condition.get("operator", "==")
            if operator not in CONDITION_OPERATORS:
                raise ConfigurationSchemaError(
                    f"Unknown operator in {field} at index {index}: '{operator}'",
                    rule_index=index,
                    rule_type=rule_type,
                    field=field,
                    value=operator,
                    reason="Operator not supported",
                )


def load_rules(source: Sequence[Mapping[str, Any]] | Mapping[str, Any] | str | Path) -> list[Rule]:
    """Load a rule collection.

    Args:
        source: A list of rule dicts, a mapping with a ``rules`` list, or a
            path to a JSON or YAML file holding either

    Returns:
        Rules in configuration order

    Raises:
        ConfigurationSchemaError: If the configuration violates the schema or
            two rules share an id
        FileNotFoundError: If a file path does not exist

    Example:
        >>> rules = load_rules([{"id": "r1", "name": "Amount required", "table": "transactions",
        ...                      "column": "amount", "ruleType": "required"}])
        >>> rules[0].rule_type
        <RuleType.REQUIRED: 'required'>
    """
    specs = _entries(source, "rules")
    seen: dict[str, int] = {}
    for index, spec in enumerate(specs):
        _validate_rule_spec(spec, index)
        rule_id = str(spec["id"])
        if rule_id in seen:
            raise ConfigurationSchemaError(
                f"Rule at index {index} reuses id '{rule_id}' of the rule at index {seen[rule_id]}",
                rule_index=index,
                field="id",
                value=rule_id,
                reason="Duplicate rule id",
            )
        seen[rule_id] = index

    rules = []
    for index, spec in enumerate(specs):
        try:
            rules.append(Rule.from_dict(spec))
        except (KeyError, ValueError, TypeError) as e:
            raise ConfigurationSchemaError(
                f"Rule at index {index} could not be built: {e}",
                rule_index=index,
                rule_type=spec.get("ruleType"),
                reason=str(e),
            ) from e
    return rules


def load_value_lists(source: Sequence[Mapping[str, Any]] | Mapping[str, Any] | str | Path) -> list[ValueList]:
    """Load value lists from a list, a mapping with a ``lists`` key, or a file.

    Raises:
        ConfigurationSchemaError: If an entry lacks an id or its values are
            not a list
    """
    specs = _entries(source, "lists")
    value_lists = []
    for index, spec in enumerate(specs):
        if not isinstance(spec, dict) or not spec.get("id"):
            raise ConfigurationSchemaError(
                f"Value list at index {index} missing required 'id' field",
                field="id",
                reason="Required field missing",
                list_index=index,
            )
        if not isinstance(spec.get("values", []), list):
            raise ConfigurationSchemaError(
                f"Values of list '{spec['id']}' must be a list",
                field="values",
                value=spec.get("values"),
                reason="Invalid field type",
                list_index=index,
            )
        value_lists.append(ValueList.from_dict(spec))
    return value_lists


def _list_ids(rule: Rule) -> list[str]:
    ids = []
    if rule.rule_type is RuleType.LIST and uses_primary_parameters(rule):
        ids.append(rule.parameters.get("listId"))
    ids.extend(
        condition.parameters.get("listId")
        for condition in rule.column_conditions
        if condition.rule_type is RuleType.LIST
    )
    return [str(list_id) for list_id in ids if list_id]


def find_rule_problems(
    rules: Sequence[Rule],
    datasets: Mapping[str, Sequence[Mapping[str, Any]]] | None = None,
    value_lists: Sequence[ValueList] | None = None,
) -> list[tuple[str, str]]:
    """Report configuration problems the engine would turn into failures.

    Flags duplicate rule ids and parses the parameters the engine will use:
    the rule's own (unless column or cross-table conditions replace them)
    and those of every column condition. When datasets are given, referenced
    tables must exist; when value lists are given, every ``listId`` of a
    list rule or list condition must name one of them.

    Returns:
        List of (rule id, problem description), empty when all rules are usable
    """
    problems: list[tuple[str, str]] = []
    seen: set[str] = set()
    known_lists = None
    if value_lists is not None:
        known_lists = {value_list.id for value_list in value_lists} | {value_list.name for value_list in value_lists}

    for rule in rules:
        if rule.id in seen:
            problems.append((rule.id, "Duplicate rule id"))
        seen.add(rule.id)

        if uses_primary_parameters(rule):
            try:
                parse_parameters(rule.rule_type, rule.parameters, rule_id=rule.id)
            except RuleConfigurationError as e:
                problems.append((rule.id, e.message))
        for link in prepare_chain(rule.column_conditions, rule_id=rule.id):
            if link.error:
                problems.append((rule.id, f"Column condition on {link.condition.column}: {link.error}"))

        if known_lists is not None:
            for list_id in _list_ids(rule):
                if list_id not in known_lists:
                    problems.append((rule.id, f"Value list {list_id} not found"))

        if datasets is None:
            continue
        if rule.table not in datasets:
            problems.append((rule.id, f"Table {rule.table} not found"))
        for condition in rule.cross_table_conditions:
            if condition.table not in datasets:
                problems.append((rule.id, f"Referenced table {condition.table} not found"))
        reference = rule.parameters.get("referenceTable")
        if reference and reference not in datasets:
            problems.append((rule.id, f"Reference table {reference} not found"))
    return problems


def get_rules_schema() -> dict[str, Any]:
    """Export the rule configuration schema for documentation.

    Example:
        >>> schema = get_rules_schema()
        >>> "formula" in schema["properties"]["rules"]["items"]["properties"]["ruleType"]["enum"]
        True
    """
    condition = {
        "type": "object",
        "required": ["column", "operator"],
        "properties": {
            "column": {"type": "string"},
            "operator": {"type": "string", "enum": list(CONDITION_OPERATORS)},
            "value": {"description": "Right-hand side of the condition"},
            "logicalOperator": {"type": "string", "enum": ["AND", "OR"], "default": "AND"},
        },
    }
    cross_table_condition = {
        **condition,
        "required": ["table", "column", "operator"],
        "properties": {**condition["properties"], "table": {"type": "string"}},
    }
    return {
        "type": "object",
        "required": ["rules"],
        "properties": {
            "rules": {
                "type": "array",
                "description": "List of rule specifications",
                "items": {
                    "type": "object",
                    "required": ["id", "table", "ruleType"],
                    "properties": {
                        "id": {"type": "string", "description": "Stable rule identifier"},
                        "name": {"type": "string", "description": "Display name copied into results"},
                        "table": {"type": "string", "description": "Table the rule iterates over"},
                        "column": {"type": "string", "description": "Primary column"},
                        "ruleType": {"type": "string", "enum": list(RULE_TYPES)},
                        "parameters": {"type": "object", "description": "Rule-kind-specific parameters"},
                        "severity": {
                            "type": "string",
                            "enum": list(RULE_SEVERITIES),
                            "default": Severity.FAILURE.value,
                        },
                        "enabled": {"type": "boolean", "default": True},
                        "description": {"type": "string"},
                        "columnConditions": {
                            "type": "array",
                            "items": {
                                "type": "object",
                                "required": ["column", "ruleType"],
                                "properties": {
                                    "column": {"type": "string"},
                                    "ruleType": {"type": "string", "enum": list(RULE_TYPES)},
                                    "parameters": {"type": "object"},
                                    "logicalOperator": {"type": "string", "enum": ["AND", "OR"]},
                                },
                            },
                        },
                        "conditions": {"type": "array", "items": condition},
                        "additionalConditions": {"type": "array", "items": condition},
                        "crossTableConditions": {"type": "array", "items": cross_table_condition},
                    },
                },
            },
        },
    }
