"""Scalar value model shared by every rule kind.

Rows are free-form mappings, so a cell can hold a string, a number, a boolean,
a date/datetime, ``None``, or (rarely) a nested object or array. This module
holds the coercion rules every validator uses so that a numeric-looking string
compares equal to a number, ISO date strings compare as calendar days, and
absent values never silently turn into ``0`` or ``False``.

Coercion order used by :func:`coerce_for_compare`:
    1. Both operands numeric (natively or numeric-looking strings) → NUMERIC
    2. Both operands dates or ISO-8601-shaped date strings → DATE
       (calendar day unless ``time_aware=True``)
    3. Both operands booleans → BOOLEAN
    4. Anything else → STRING (case-sensitive)
"""

import math
import re
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

COMPARISON_OPERATORS = ("==", "!=", ">", ">=", "<", "<=")

_ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?)?$")
_US_DATE_RE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")


class CompareKind(Enum):
    """How two operands were coerced before comparison."""

    NUMERIC = "numeric"
    DATE = "date"
    BOOLEAN = "boolean"
    STRING = "string"


def is_absent(value: Any) -> bool:
    """Return True for ``None``, empty strings and NaN floats."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, float):
        return math.isnan(value)
    return False


def to_number(value: Any) -> float | None:
    """Coerce a value to a finite float, or return None.

    Booleans are never treated as numbers, and absent values never become 0.

    Example:
        >>> to_number("10")
        10.0
        >>> to_number(" 2.5 ")
        2.5
        >>> to_number(True) is None
        True
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def is_iso_date_string(value: Any) -> bool:
    """Check whether a value is an ISO-8601-shaped date or datetime string."""
    return isinstance(value, str) and bool(_ISO_DATE_RE.match(value.strip()))


def _parse_iso(text: str) -> datetime | None:
    normalized = text.strip().replace(" ", "T", 1)
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _naive(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def to_datetime(value: Any, *, allow_us_format: bool = False) -> datetime | None:
    """Coerce a value to a naive datetime, or return None.

    Accepts ``date``/``datetime`` objects and ISO-8601-shaped strings. With
    ``allow_us_format`` the ``MM/DD/YYYY`` shape is accepted as well, which is
    what the date rule kinds use for cell values. Timezone-aware values are
    normalised to naive UTC.
    """
    if isinstance(value, datetime):
        return _naive(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if _ISO_DATE_RE.match(text):
        parsed = _parse_iso(text)
        return _naive(parsed) if parsed is not None else None

    if allow_us_format:
        match = _US_DATE_RE.match(text)
        if match:
            month, day, year = (int(part) for part in match.groups())
            try:
                return datetime(year, month, day)
            except ValueError:
                return None
    return None


def to_date(value: Any, *, allow_us_format: bool = False) -> date | None:
    """Coerce a value to a calendar date (time-of-day stripped), or None.

    Example:
        >>> to_date("2024-03-15T23:59:00")
        datetime.date(2024, 3, 15)
        >>> to_date("not a date") is None
        True
    """
    moment = to_datetime(value, allow_us_format=allow_us_format)
    return moment.date() if moment is not None else None


def _is_date_like(value: Any) -> bool:
    return isinstance(value, (date, datetime)) or is_iso_date_string(value)


def coerce_for_compare(
    a: Any, b: Any, *, time_aware: bool = False
) -> tuple[CompareKind, Any, Any]:
    """Coerce two operands to a common comparable representation.

    Args:
        a: Left operand
        b: Right operand
        time_aware: Compare full datetimes instead of calendar days

    Returns:
        Tuple of (CompareKind, coerced a, coerced b)

    Example:
        >>> coerce_for_compare("10", 10)
        (<CompareKind.NUMERIC: 'numeric'>, 10.0, 10.0)
        >>> coerce_for_compare("2024-01-01T08:00:00", "2024-01-01")[0]
        <CompareKind.DATE: 'date'>
    """
    num_a, num_b = to_number(a), to_number(b)
    if num_a is not None and num_b is not None:
        return CompareKind.NUMERIC, num_a, num_b

    if _is_date_like(a) and _is_date_like(b):
        if time_aware:
            moment_a, moment_b = to_datetime(a), to_datetime(b)
        else:
            moment_a, moment_b = to_date(a), to_date(b)
        if moment_a is not None and moment_b is not None:
            return CompareKind.DATE, moment_a, moment_b

    if isinstance(a, bool) and isinstance(b, bool):
        return CompareKind.BOOLEAN, a, b

    return CompareKind.STRING, stringify(a), stringify(b)


def compare(a: Any, operator: str, b: Any, *, time_aware: bool = False) -> bool:
    """Compare two values with one of ``==, !=, >, >=, <, <=``.

    Absent operands fail closed: ordering comparisons return False, ``==``
    holds only when both sides are absent and ``!=`` is its negation.

    Raises:
        ValueError: If the operator is not a comparison operator
    """
    if operator not in COMPARISON_OPERATORS:
        raise ValueError(f"Unknown comparison operator: {operator}")

    absent_a, absent_b = is_absent(a), is_absent(b)
    if absent_a or absent_b:
        if operator == "==":
            return absent_a and absent_b
        if operator == "!=":
            return not (absent_a and absent_b)
        return False

    kind, left, right = coerce_for_compare(a, b, time_aware=time_aware)
    if kind is CompareKind.NUMERIC and operator in ("==", "!="):
        equal = math.isclose(left, right, rel_tol=1e-9, abs_tol=1e-12)
        return equal if operator == "==" else not equal

    if operator == "==":
        return left == right
    if operator == "!=":
        return left != right
    if operator == ">":
        return left > right
    if operator == ">=":
        return left >= right
    if operator == "<":
        return left < right
    return left <= right


def stringify(value: Any) -> str:
    """Render a value the way membership and string comparisons see it.

    Integral floats drop their fractional part so ``10.0`` and ``"10"`` match,
    booleans render lowercase and dates use ISO format.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def type_name(value: Any) -> str:
    """Return the rule-facing type name of a value.

    One of ``string``, ``number``, ``boolean``, ``date``, ``object``,
    ``array`` or ``null``.
    """
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (date, datetime)):
        return "date"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def index_key(value: Any) -> tuple[str, Any]:
    """Hashable equality key for reference lookups.

    Integers and floats share a key (``1 == 1.0``); strings, booleans and
    dates keep their own type so ``"1"`` does not match ``1``.
    """
    if isinstance(value, bool):
        return ("boolean", value)
    if isinstance(value, (int, float)):
        return ("number", float(value))
    if isinstance(value, datetime):
        return ("datetime", value)
    if isinstance(value, date):
        return ("date", value)
    if isinstance(value, str):
        return ("string", value)
    return ("object", repr(value))


def is_truthy(value: Any) -> bool:
    """Truthiness used by the permissive formula fallback."""
    if is_absent(value):
        return False
    return bool(value)
