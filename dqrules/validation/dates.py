"""Date rule kinds: date-before, date-after, date-between, date-format.

Dates compare at calendar-day granularity: time-of-day is dropped from both
the cell value and the boundary before comparing. Cell values may be
``date``/``datetime`` objects, ISO-8601 strings or ``MM/DD/YYYY`` strings.
"""

import re
from collections.abc import Mapping
from datetime import date, datetime
from typing import Any

from dqrules.core.models import Rule
from dqrules.core.values import is_absent, stringify, to_date, type_name
from dqrules.validation.context import ValidationContext
from dqrules.validation.outcome import CheckOutcome
from dqrules.validation.parameters import (
    DateBetweenParameters,
    DateCompareParameters,
    DateFormatParameters,
)
from dqrules.validation.protocols import RuleCheck

REQUIRED_MESSAGE = "Date is required and must be valid"

_FORMATS = {
    "iso": (re.compile(r"^\d{4}-\d{2}-\d{2}$"), "YYYY-MM-DD"),
    "us": (re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "MM/DD/YYYY"),
    "eu": (re.compile(r"^\d{1,2}/\d{1,2}/\d{4}$"), "DD/MM/YYYY"),
}

_CUSTOM_TOKENS = (
    ("YYYY", r"\d{4}"),
    ("MM", r"\d{2}"),
    ("DD", r"\d{2}"),
    ("HH", r"\d{2}"),
    ("mm", r"\d{2}"),
    ("ss", r"\d{2}"),
)


def custom_format_regex(custom_format: str) -> re.Pattern:
    """Translate a ``YYYY-MM-DD``-style pattern into an anchored regex.

    Example:
        >>> bool(custom_format_regex("DD.MM.YYYY").match("31.12.2024"))
        True
    """
    pieces: list[str] = []
    i = 0
    while i < len(custom_format):
        for token, replacement in _CUSTOM_TOKENS:
            if custom_format.startswith(token, i):
                pieces.append(replacement)
                i += len(token)
                break
        else:
            pieces.append(re.escape(custom_format[i]))
            i += 1
    return re.compile("^" + "".join(pieces) + "$")


def _cell_date(value: Any, required: bool) -> tuple[date | None, CheckOutcome | None]:
    """Parse a cell into a date, or return the outcome that ends the check.

    Absent and unparseable cells are treated alike: they fail only when the
    rule is ``required``.
    """
    parsed = None if is_absent(value) else to_date(value, allow_us_format=True)
    if parsed is None:
        if required:
            return None, CheckOutcome.fail(REQUIRED_MESSAGE)
        return None, CheckOutcome.ok()
    return parsed, None


def _boundary(raw: Any, label: str) -> tuple[date | None, CheckOutcome | None]:
    if is_absent(raw):
        return None, CheckOutcome.ok()
    parsed = to_date(raw, allow_us_format=True)
    if parsed is None:
        return None, CheckOutcome.misconfigured(f"{label} is invalid: {stringify(raw)}")
    return parsed, None


def check_date_before(
    value: Any, row: Mapping[str, Any], params: DateCompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Date must fall before compareDate (on or before when inclusive)."""
    cell, done = _cell_date(value, params.required)
    if done is not None:
        return done
    limit, done = _boundary(params.compare_date, "Compare date")
    if done is not None:
        return done
    if (cell <= limit) if params.inclusive else (cell < limit):
        return CheckOutcome.ok()
    on_or = "on or " if params.inclusive else ""
    return CheckOutcome.fail(f"Date {cell.isoformat()} must be {on_or}before {stringify(params.compare_date)}")


def check_date_after(
    value: Any, row: Mapping[str, Any], params: DateCompareParameters, context: ValidationContext
) -> CheckOutcome:
    """Date must fall after compareDate (on or after when inclusive)."""
    cell, done = _cell_date(value, params.required)
    if done is not None:
        return done
    limit, done = _boundary(params.compare_date, "Compare date")
    if done is not None:
        return done
    if (cell >= limit) if params.inclusive else (cell > limit):
        return CheckOutcome.ok()
    on_or = "on or " if params.inclusive else ""
    return CheckOutcome.fail(f"Date {cell.isoformat()} must be {on_or}after {stringify(params.compare_date)}")


def check_date_between(
    value: Any, row: Mapping[str, Any], params: DateBetweenParameters, context: ValidationContext
) -> CheckOutcome:
    """Date must fall between startDate and endDate."""
    cell, done = _cell_date(value, params.required)
    if done is not None:
        return done
    if is_absent(params.start_date) or is_absent(params.end_date):
        return CheckOutcome.ok()
    start, done = _boundary(params.start_date, "Start date")
    if done is not None:
        return done
    end, done = _boundary(params.end_date, "End date")
    if done is not None:
        return done

    if params.inclusive:
        inside = start <= cell <= end
    else:
        inside = start < cell < end
    if inside:
        return CheckOutcome.ok()
    on_or = "on or " if params.inclusive else ""
    return CheckOutcome.fail(
        f"Date {cell.isoformat()} must be {on_or}between "
        f"{stringify(params.start_date)} and {stringify(params.end_date)}"
    )


def check_date_format(
    value: Any, row: Mapping[str, Any], params: DateFormatParameters, context: ValidationContext
) -> CheckOutcome:
    """Date string must follow format (iso, us, eu, custom or any)."""
    if is_absent(value):
        return CheckOutcome.fail(REQUIRED_MESSAGE) if params.required else CheckOutcome.ok()
    if isinstance(value, (date, datetime)):
        return CheckOutcome.ok()
    if not isinstance(value, str):
        return CheckOutcome.fail(
            f"Value must be a string for format validation, got {type_name(value)}: {stringify(value)}"
        )

    if params.format == "any":
        if to_date(value, allow_us_format=True) is not None:
            return CheckOutcome.ok()
        return CheckOutcome.fail("Date must be a valid date")

    if params.format == "custom":
        pattern, description = custom_format_regex(params.custom_format), params.custom_format
    else:
        pattern, description = _FORMATS[params.format]

    if pattern.match(value.strip()):
        return CheckOutcome.ok()
    return CheckOutcome.fail(f"Date must be in {description} format")


def check_date_rule(
    rule: Rule, row: Mapping[str, Any], check: RuleCheck, params: Any, context: ValidationContext
) -> CheckOutcome:
    """Run a date kind with the rule-level safeguards.

    Before the check itself runs, the rule must name a column (otherwise it
    is a configuration error) and the row must carry that column.
    """
    if not rule.column:
        return CheckOutcome.misconfigured("Configuration error: Missing column name for date rule", column="")
    if rule.column not in row:
        return CheckOutcome.fail(f'Column "{rule.column}" not found in data')
    return check(row[rule.column], row, params, context)
