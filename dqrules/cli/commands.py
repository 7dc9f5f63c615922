"""CLI command implementations.

This module implements the commands of the dqrules tool:
- validate: Run a rule collection over dataset files
- check_rules: Check rule and value-list files without running them
- evaluate: Evaluate a formula against a sample row
- list_rule_types: List the rule catalog
- list_formats: List dataset formats and report formats

Each command is a function returning an exit code, so commands can be
called directly in tests as well as through the Cyclopts app.
"""

import json
import sys
from pathlib import Path
from typing import Annotated, Any

from cyclopts import Parameter

from dqrules.cli.config import ConfigError, load_config, merge_config, validate_config
from dqrules.cli.exit_codes import ExitCode
from dqrules.cli.output import ProgressIndicator, configure_logging, handle_error
from dqrules.cli.registry import get_writer
from dqrules.cli.registry import list_writers as registry_list_writers
from dqrules.core.datasets import list_loaders, load_datasets
from dqrules.core.exceptions import DatasetError
from dqrules.expression import Dialect, EvalError, evaluate_formula
from dqrules.validation import (
    ConfigurationSchemaError,
    ValidationEngine,
    ValidationMode,
    describe_rule_types,
    find_rule_problems,
    load_rules,
    load_value_lists,
)


def _first_line(description: str) -> str:
    return description.strip().split("\n")[0].strip()


def validate(
    data: Annotated[list[str] | None, Parameter(help="Dataset file, optionally table=path (repeatable)")] = None,
    rules: Annotated[Path | None, Parameter(help="Rules file (JSON or YAML)")] = None,
    lists: Annotated[Path | None, Parameter(help="Value lists file (JSON or YAML)")] = None,
    config: Annotated[Path | None, Parameter(help="Configuration file path")] = None,
    output: Annotated[Path | None, Parameter(help="Write the report to this file instead of stdout")] = None,
    format: Annotated[str | None, Parameter(help="Report format (json, text, csv)")] = None,
    severity: Annotated[str | None, Parameter(help="Only report failures, warnings or issues")] = None,
    workers: Annotated[int | None, Parameter(help="Number of worker threads")] = None,
    fail_fast: Annotated[bool, Parameter(help="Stop after the first rule that reports a failure")] = False,
    quiet: Annotated[bool, Parameter(help="Suppress progress output")] = False,
    verbose: Annotated[bool, Parameter(help="Show detailed error information")] = False,
    log_level: Annotated[str, Parameter(help="Log level (debug, info, warning, error)")] = "warning",
    log_file: Annotated[Path | None, Parameter(help="Log file path")] = None,
) -> int:
    """Validate datasets against a rule collection.

    Loads the datasets, rules and value lists, runs the engine and writes the
    report. Settings from ``--config`` are overridden by explicit options.

    Returns:
        0 when no result has failure severity, 2 when some do, 3 for dataset
        errors, 6 for rule or configuration errors

    Example:
        >>> exit_code = validate(
        ...     data=["transactions=data/transactions.csv", "users=data/users.csv"],
        ...     rules=Path("rules.yaml"),
        ...     format="text",
        ... )
    """
    try:
        configure_logging(log_level, log_file)

        cfg: dict[str, Any] = {}
        if config:
            cfg = load_config(config)
        cfg = merge_config(
            cfg,
            data=data or [],
            rules=str(rules) if rules else None,
            lists=str(lists) if lists else None,
            format=format,
            severity=severity,
            workers=workers,
            mode="fail_fast" if fail_fast else None,
        )

        errors = validate_config(cfg)
        if errors:
            print("✗ Configuration validation failed:", file=sys.stderr)
            for error in errors:
                print(f"  {error}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR
        if not cfg.get("rules"):
            print("Error: No rules file given (use --rules or a config file)", file=sys.stderr)
            return ExitCode.CONFIG_ERROR
        if not cfg.get("data"):
            print("Error: No dataset files given (use --data or a config file)", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

        writer = get_writer(cfg.get("format", "text"))
        rule_list = load_rules(Path(cfg["rules"]))
        value_lists = load_value_lists(Path(cfg["lists"])) if cfg.get("lists") else []
        datasets = load_datasets(cfg["data"])

        engine = ValidationEngine(
            rule_list,
            value_lists,
            workers=cfg.get("workers", 1),
            mode=ValidationMode(cfg.get("mode", "continue")),
        )

        progress = ProgressIndicator(enabled=not quiet)
        progress.start(f"Validating {len(datasets)} table(s) with {len(rule_list)} rule(s)")
        report = engine.run(datasets)

        rendered = writer.render(report, cfg.get("severity"))
        if output:
            output.parent.mkdir(parents=True, exist_ok=True)
            output.write_text(rendered, encoding="utf-8")
        else:
            print(rendered)

        if report.is_valid():
            progress.success(f"✓ {report.summary()}")
            return ExitCode.SUCCESS
        progress.failure(f"✗ {report.summary()}")
        return ExitCode.VALIDATION_FAILED

    except DatasetError as e:
        handle_error(e, verbose=verbose)
        return ExitCode.DATASET_ERROR
    except (ConfigError, ConfigurationSchemaError, FileNotFoundError, KeyError, ValueError) as e:
        handle_error(e, verbose=verbose)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=verbose)
        return ExitCode.UNEXPECTED_ERROR


def check_rules(
    rules: Annotated[Path, Parameter(help="Rules file (JSON or YAML)")],
    lists: Annotated[Path | None, Parameter(help="Value lists file (JSON or YAML)")] = None,
    data: Annotated[list[str] | None, Parameter(help="Dataset files to check table references against")] = None,
) -> int:
    """Check a rules file without running it.

    Verifies the file against the configuration schema, parses every rule's
    parameters and, when datasets are given, checks that referenced tables
    exist. With a lists file, every list rule and list condition must name
    one of its value lists.

    Returns:
        0 when every rule is usable, 6 otherwise (3 for unreadable datasets)

    Example:
        >>> exit_code = check_rules(rules=Path("rules.yaml"))
    """
    try:
        rule_list = load_rules(rules)
        value_lists = load_value_lists(lists) if lists else []
        datasets = load_datasets(data) if data else None

        problems = find_rule_problems(rule_list, datasets, value_lists if lists else None)

        if problems:
            print(f"✗ {len(problems)} problem(s) found:", file=sys.stderr)
            for rule_id, message in problems:
                print(f"  {rule_id}: {message}", file=sys.stderr)
            return ExitCode.CONFIG_ERROR

        enabled = sum(1 for rule in rule_list if rule.enabled)
        print("✓ Rules are valid")
        print(f"  Rules: {len(rule_list)} ({enabled} enabled)")
        if value_lists:
            print(f"  Value lists: {len(value_lists)}")
        return ExitCode.SUCCESS

    except DatasetError as e:
        handle_error(e, verbose=False)
        return ExitCode.DATASET_ERROR
    except (ConfigurationSchemaError, FileNotFoundError) as e:
        print("✗ Configuration error:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except Exception as e:
        handle_error(e, verbose=False)
        return ExitCode.UNEXPECTED_ERROR


def evaluate(
    formula: Annotated[str, Parameter(help="Formula to evaluate")],
    row: Annotated[str, Parameter(help="Row as a JSON object")] = "{}",
    dialect: Annotated[str, Parameter(help="Formula dialect (formula, script)")] = "formula",
    operator: Annotated[str | None, Parameter(help="Compare the result with --value using this operator")] = None,
    value: Annotated[str | None, Parameter(help="Comparison value (JSON)")] = None,
) -> int:
    """Evaluate a formula against one row and print the verdict.

    Returns:
        0 when the formula passes, 2 when it fails, 6 for bad input or
        formula errors

    Example:
        >>> evaluate("amount - refundAmount > 0", row='{"amount": 100, "refundAmount": 20}')
        Result: True
        Verdict: pass
        0
    """
    try:
        parsed_row = json.loads(row)
        if not isinstance(parsed_row, dict):
            print("Error: --row must be a JSON object", file=sys.stderr)
            return ExitCode.CONFIG_ERROR
        comparison = json.loads(value) if value is not None else None
        outcome = evaluate_formula(
            formula,
            parsed_row,
            operator=operator,
            comparison_value=comparison,
            dialect=Dialect(dialect.lower()),
        )
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR
    except EvalError as e:
        print(f"✗ Error evaluating formula: {e.message}", file=sys.stderr)
        return ExitCode.CONFIG_ERROR

    print(f"Result: {outcome.result!r}")
    print(f"Verdict: {'pass' if outcome.is_valid else 'fail'}")
    return ExitCode.SUCCESS if outcome.is_valid else ExitCode.VALIDATION_FAILED


def list_rule_types() -> int:
    """List the rule catalog with descriptions."""
    print("Available rule types:")
    for name, description in describe_rule_types().items():
        print(f"  {name:24} {description}")
    return ExitCode.SUCCESS


def list_formats() -> int:
    """List dataset formats and report formats with descriptions."""
    print("Dataset formats:")
    for name, description in list_loaders().items():
        print(f"  {name:10} {_first_line(description)}")
    print("\nReport formats:")
    for name, description in registry_list_writers().items():
        print(f"  {name:10} {_first_line(description)}")
    return ExitCode.SUCCESS
