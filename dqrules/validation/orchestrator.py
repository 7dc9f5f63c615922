"""Validation orchestration.

This module runs a rule collection over a set of datasets and produces one
ValidationResult per (enabled rule, row of the rule's table).

Dispatch order for a rule, first match wins:
    1. date kinds, with the missing-column safeguards
    2. column-comparison
    3. math-operation
    4. composite-reference
    5. reference-integrity
    6. ``columnConditions`` through the condition combinator
    7. ``crossTableConditions`` through the generic cross-table check
    8. the rule kind's check, followed by ``additionalConditions``

Results go through a :class:`ResultBuffer` keyed by (rule id, table, row
index) so that the same key is never reported twice, whatever order rules
run in.
"""

import logging
import threading
from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from dqrules.core.conditions import evaluate_conditions
from dqrules.core.models import Rule, RuleType, Severity, ValueList
from dqrules.validation.catalog import CHECKS, run_check
from dqrules.validation.combinator import ChainLink, evaluate_chain, prepare_chain
from dqrules.validation.context import ValidationContext
from dqrules.validation.cross_table import check_cross_table_conditions
from dqrules.validation.dates import check_date_rule
from dqrules.validation.exceptions import RuleConfigurationError, ValidationCancelledError
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import parse_parameters
from dqrules.validation.report import ValidationReport, create_report
from dqrules.validation.result import ValidationResult

logger = logging.getLogger(__name__)

DEDICATED_KINDS = (
    RuleType.COLUMN_COMPARISON,
    RuleType.MATH_OPERATION,
    RuleType.COMPOSITE_REFERENCE,
    RuleType.REFERENCE_INTEGRITY,
)

# Kinds whose later result for a key replaces an earlier one
REPLACING_KINDS = frozenset({RuleType.LIST, RuleType.JAVASCRIPT_FORMULA})

PASSED = "Passed validation"
PASSED_CROSS_TABLE = "Passed cross-table validation"
PASSED_DATE = "Passed date validation"


class ValidationMode(Enum):
    """Engine execution mode.

    Attributes:
        FAIL_FAST: Stop after the first rule that reports a failure
        CONTINUE: Run every enabled rule
    """

    FAIL_FAST = "fail_fast"
    CONTINUE = "continue"


class ResultBuffer:
    """Ordered collection of results with at most one entry per key.

    ``add(result, replace=True)`` overwrites an existing entry for the same
    key; otherwise the first entry for a key is kept.

    Example:
        >>> buffer = ResultBuffer()
        >>> buffer.add(first)
        >>> buffer.add(second_with_same_key)
        >>> buffer.results() == [first]
        True
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str, int], tuple[ValidationResult, bool]] = {}

    def add(self, result: ValidationResult, replace: bool = False) -> None:
        if replace or result.key not in self._entries:
            self._entries[result.key] = (result, replace)

    def merge(self, other: "ResultBuffer") -> None:
        """Fold another buffer in as if its results had been added here."""
        for result, replace in other._entries.values():
            self.add(result, replace)

    def results(self) -> list[ValidationResult]:
        return [result for result, _ in self._entries.values()]

    def has_failures(self) -> bool:
        return any(result.is_failure() for result, _ in self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class _PreparedRule:
    """A rule with its parameters parsed once for all rows."""

    rule: Rule
    params: Any = None
    error: str = ""
    chain: tuple[ChainLink, ...] = ()


def uses_primary_parameters(rule: Rule) -> bool:
    """Whether the rule's own kind and parameters take part in its evaluation."""
    if rule.rule_type.is_date_kind or rule.rule_type in DEDICATED_KINDS:
        return True
    return not rule.column_conditions and not rule.cross_table_conditions


def prepare_rule(rule: Rule) -> _PreparedRule:
    """Parse a rule's parameters, keeping configuration errors as data."""
    chain = ()
    if rule.column_conditions:
        chain = prepare_chain(rule.column_conditions, rule_id=rule.id)
    if not uses_primary_parameters(rule):
        return _PreparedRule(rule, chain=chain)
    try:
        params = parse_parameters(rule.rule_type, rule.parameters, rule_id=rule.id)
    except RuleConfigurationError as e:
        logger.warning("Rule %s is misconfigured: %s", rule.id, e)
        return _PreparedRule(rule, error=e.message, chain=chain)
    return _PreparedRule(rule, params=params, chain=chain)


def evaluate_rule_row(
    prepared: _PreparedRule, row: Mapping[str, Any], context: ValidationContext
) -> tuple[CheckOutcome, str]:
    """Evaluate one prepared rule on one row.

    Returns:
        Tuple of (outcome, message to report when the outcome is valid)
    """
    rule = prepared.rule
    rule_type = rule.rule_type

    if prepared.error:
        return CheckOutcome.misconfigured(prepared.error), PASSED

    if rule_type.is_date_kind:
        return check_date_rule(rule, row, CHECKS[rule_type], prepared.params, context), PASSED_DATE

    if rule_type in DEDICATED_KINDS:
        return run_check(rule_type, row.get(rule.column), row, prepared.params, context), PASSED

    if prepared.chain:
        chain = evaluate_chain(prepared.chain, row, context)
        if chain.is_valid:
            return CheckOutcome.ok(), PASSED
        failed = CheckOutcome.misconfigured if chain.configuration_error else CheckOutcome.fail
        return failed(chain.message or "Failed validation", column=chain.failing_column or None), PASSED

    if rule.cross_table_conditions:
        return check_cross_table_conditions(rule.cross_table_conditions, context), PASSED_CROSS_TABLE

    outcome = run_check(rule_type, row.get(rule.column), row, prepared.params, context)
    if outcome.is_valid and rule.additional_conditions:
        additional = evaluate_conditions(row, rule.additional_conditions)
        if not additional.is_valid:
            failed = CheckOutcome.misconfigured if additional.configuration_error else CheckOutcome.fail
            outcome = failed(additional.message or "Failed validation")
    return outcome, PASSED


def _to_result(
    rule: Rule, row_index: int, outcome: CheckOutcome, passed_message: str
) -> ValidationResult:
    if outcome.is_valid:
        severity, message, column = Severity.SUCCESS, passed_message, rule.column
    else:
        severity = Severity.FAILURE if outcome.configuration_error else rule.severity
        message = outcome.message or "Failed validation"
        column = rule.column if outcome.column is None else outcome.column
    return ValidationResult(
        row_index=row_index,
        table=rule.table,
        column=column,
        rule_name=rule.name,
        message=message,
        severity=severity,
        rule_id=rule.id,
    )


def _internal_error(rule: Rule, row_index: int, error: Exception) -> ValidationResult:
    return ValidationResult(
        row_index=row_index,
        table=rule.table,
        column=rule.column,
        rule_name=rule.name,
        message=f"Internal error: {error}",
        severity=Severity.FAILURE,
        rule_id=rule.id,
    )


def validate_rule(
    rule: Rule,
    context: ValidationContext,
    cancel_event: threading.Event | None = None,
) -> ResultBuffer:
    """Run one rule over every row of its table.

    Args:
        rule: Enabled rule to run
        context: Run-level validation context
        cancel_event: Checked before every row

    Returns:
        ResultBuffer holding one result per row (empty if the rule's table
        is missing)

    Raises:
        ValidationCancelledError: If ``cancel_event`` is set mid-rule
    """
    buffer = ResultBuffer()
    rows = context.rows(rule.table)
    if rows is None:
        logger.warning("Rule %s skipped: table %r not found", rule.id, rule.table)
        return buffer

    prepared = prepare_rule(rule)
    rule_context = context.for_rule(rule)
    replace = rule.rule_type in REPLACING_KINDS

    for row_index, row in enumerate(rows):
        if cancel_event is not None and cancel_event.is_set():
            raise ValidationCancelledError("Validation cancelled")
        try:
            outcome, passed_message = evaluate_rule_row(prepared, row, rule_context)
            result = _to_result(rule, row_index, outcome, passed_message)
        except Exception as e:
            logger.exception("Rule %s failed on %s[%d]", rule.id, rule.table, row_index)
            result = _internal_error(rule, row_index, e)
        buffer.add(result, replace=replace)
    return buffer


class ValidationEngine:
    """Runs a rule collection over datasets.

    Attributes:
        rules: Rules in evaluation order (disabled rules are skipped)
        value_lists: Value lists available to ``list`` rules
        workers: Number of threads; 1 runs rules sequentially
        mode: FAIL_FAST or CONTINUE

    Example:
        >>> engine = ValidationEngine(rules, value_lists, workers=4)
        >>> report = engine.run({"transactions": rows, "users": users})
        >>> if not report.is_valid():
        ...     print(report.format(severity_filter="failures"))
    """

    def __init__(
        self,
        rules: Sequence[Rule],
        value_lists: Sequence[ValueList] | Mapping[str, ValueList] = (),
        workers: int = 1,
        mode: ValidationMode = ValidationMode.CONTINUE,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.rules = list(rules)
        self.value_lists = value_lists
        self.workers = workers
        self.mode = mode

    def _enabled_rules(self) -> list[Rule]:
        enabled = []
        seen: set[str] = set()
        for rule in self.rules:
            if not rule.enabled:
                logger.debug("Rule %s is disabled, skipping", rule.id)
                continue
            if rule.id in seen:
                logger.warning("Rule id %s is used more than once; results of later rules may be dropped", rule.id)
            seen.add(rule.id)
            enabled.append(rule)
        return enabled

    def _run_sequential(
        self, rules: Iterable[Rule], context: ValidationContext, cancel_event: threading.Event | None
    ) -> ResultBuffer:
        merged = ResultBuffer()
        completed = 0
        for rule in rules:
            if cancel_event is not None and cancel_event.is_set():
                raise ValidationCancelledError("Validation cancelled", completed_rules=completed)
            try:
                buffer = validate_rule(rule, context, cancel_event)
            except ValidationCancelledError:
                raise ValidationCancelledError("Validation cancelled", completed_rules=completed) from None
            merged.merge(buffer)
            completed += 1
            if self.mode is ValidationMode.FAIL_FAST and buffer.has_failures():
                logger.info("Stopping after rule %s (fail-fast)", rule.id)
                break
        return merged

    def _run_parallel(
        self, rules: Sequence[Rule], context: ValidationContext, cancel_event: threading.Event | None
    ) -> ResultBuffer:
        merged = ResultBuffer()
        completed = 0
        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="dqrules") as executor:
            futures = [executor.submit(validate_rule, rule, context, cancel_event) for rule in rules]
            try:
                # Merge in rule order so the outcome matches a sequential run
                for rule, future in zip(rules, futures, strict=True):
                    buffer = future.result()
                    merged.merge(buffer)
                    completed += 1
                    if self.mode is ValidationMode.FAIL_FAST and buffer.has_failures():
                        logger.info("Stopping after rule %s (fail-fast)", rule.id)
                        break
            except ValidationCancelledError:
                raise ValidationCancelledError("Validation cancelled", completed_rules=completed) from None
            finally:
                for future in futures:
                    future.cancel()
        return merged

    def validate(
        self,
        datasets: Mapping[str, Sequence[Mapping[str, Any]]],
        cancel_event: threading.Event | None = None,
    ) -> list[ValidationResult]:
        """Run all enabled rules and return the flat result list.

        Raises:
            ValidationCancelledError: If ``cancel_event`` gets set
        """
        context = ValidationContext.create(datasets, self.value_lists)
        rules = self._enabled_rules()
        logger.debug("Validating %d rule(s) over %d table(s)", len(rules), len(datasets))

        if self.workers > 1 and len(rules) > 1:
            merged = self._run_parallel(rules, context, cancel_event)
        else:
            merged = self._run_sequential(rules, context, cancel_event)

        results = merged.results()
        failures = sum(1 for r in results if r.is_failure())
        warnings = sum(1 for r in results if r.is_warning())
        logger.info(
            "Validation finished: %d rule(s), %d result(s), %d failure(s), %d warning(s)",
            len(rules),
            len(results),
            failures,
            warnings,
        )
        return results

    def run(
        self,
        datasets: Mapping[str, Sequence[Mapping[str, Any]]],
        cancel_event: threading.Event | None = None,
    ) -> ValidationReport:
        """Run all enabled rules and aggregate the results into a report."""
        started = datetime.now()
        return create_report(self.validate(datasets, cancel_event), timestamp=started)


def validate_dataset(
    datasets: Mapping[str, Sequence[Mapping[str, Any]]],
    rules: Sequence[Rule],
    value_lists: Sequence[ValueList] | Mapping[str, ValueList] = (),
    *,
    workers: int = 1,
    cancel_event: threading.Event | None = None,
) -> list[ValidationResult]:
    """Validate datasets against rules.

    Args:
        datasets: Table name to rows
        rules: Rules to run; disabled rules produce no results
        value_lists: Value lists referenced by ``list`` rules
        workers: Number of worker threads
        cancel_event: Set it from another thread to abort the run

    Returns:
        One ValidationResult per (enabled rule, row of its table)

    Raises:
        ValidationCancelledError: If ``cancel_event`` gets set

    Example:
        >>> rules = [Rule.from_dict({"id": "r1", "name": "Amount required", "table": "t",
        ...                          "column": "amount", "ruleType": "required"})]
        >>> [r.severity.value for r in validate_dataset({"t": [{"amount": 1}, {"amount": None}]}, rules)]
        ['success', 'failure']
    """
    return ValidationEngine(rules, value_lists, workers=workers).validate(datasets, cancel_event)
