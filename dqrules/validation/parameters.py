"""Typed parameter records for every rule kind.

Rules arrive with a free-form ``parameters`` mapping in camelCase. Each rule
kind owns one frozen dataclass here; :func:`parse_parameters` converts the raw
mapping into the record registered for the kind in :data:`PARAMETER_TYPES`.

Field metadata drives the conversion:
    - ``key``: wire name of the parameter
    - ``aliases``: older wire names accepted as fallbacks
    - ``required``: raise RuleConfigurationError when missing
    - ``convert``: callable applied to the raw value
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields
from typing import Any

from dqrules.aggregation.config import ResultHandling
from dqrules.core.models import RuleType
from dqrules.validation.exceptions import RuleConfigurationError

CONTAINS_MATCH_TYPES = ("contains", "not-contains", "starts-with", "ends-with", "exact")
DATE_FORMATS = ("iso", "us", "eu", "custom", "any")
CHECK_TYPES = ("exists", "not-exists")
MATH_OPERATIONS = ("add", "subtract", "multiply", "divide")


def _as_bool(raw: Any) -> bool:
    if isinstance(raw, str):
        return raw.strip().lower() == "true"
    return raw is True


def _as_tuple(raw: Any) -> tuple:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple)):
        return tuple(raw)
    return (raw,)


def _as_str(raw: Any) -> str:
    return "" if raw is None else str(raw)


def _as_result_handling(raw: Any) -> ResultHandling:
    try:
        return ResultHandling(str(raw).upper())
    except ValueError:
        raise RuleConfigurationError(
            f"Unknown result handling: {raw}",
            parameter="resultHandling",
            reason="Expected ALL, ANY or MAJORITY",
        ) from None


def param(
    key: str,
    *,
    default: Any = None,
    required: bool = False,
    aliases: tuple[str, ...] = (),
    convert: Callable[[Any], Any] | None = None,
) -> Any:
    """Declare a parameter field bound to its wire key."""
    return field(
        default=default,
        metadata={"key": key, "required": required, "aliases": aliases, "convert": convert},
    )


def _is_missing(raw: Any) -> bool:
    if raw is None:
        return True
    if isinstance(raw, str):
        return raw.strip() == ""
    if isinstance(raw, (list, tuple)):
        return len(raw) == 0
    return False


def parameters_from_mapping(
    cls: type,
    raw: Mapping[str, Any] | None,
    *,
    rule_id: str | None = None,
    rule_type: str | None = None,
) -> Any:
    """Build a parameter record from a raw camelCase mapping.

    Args:
        cls: Parameter dataclass to instantiate
        raw: Raw ``parameters`` mapping from the rule
        rule_id: Id of the owning rule (error context only)
        rule_type: Wire tag of the rule kind (error context only)

    Returns:
        Instance of ``cls``

    Raises:
        RuleConfigurationError: If a required parameter is missing

    Example:
        >>> from dqrules.validation.parameters import ListParameters
        >>> parameters_from_mapping(ListParameters, {"listId": "countries"})
        ListParameters(list_id='countries')
    """
    raw = raw or {}
    values: dict[str, Any] = {}
    try:
        for spec in fields(cls):
            meta = spec.metadata
            if "key" not in meta:
                continue
            value = None
            for key in (meta["key"], *meta["aliases"]):
                if not _is_missing(raw.get(key)):
                    value = raw[key]
                    break
            if value is None:
                if meta["required"]:
                    raise RuleConfigurationError(
                        f"Missing required parameter '{meta['key']}'",
                        parameter=meta["key"],
                        reason="Required parameter missing",
                    )
                continue
            convert = meta["convert"]
            values[spec.name] = convert(value) if convert is not None else value

        return cls(**values)
    except RuleConfigurationError as exc:
        if rule_id is not None:
            exc.context.setdefault("rule_id", rule_id)
        if rule_type is not None:
            exc.context.setdefault("rule_type", rule_type)
        raise


@dataclass(frozen=True)
class NoParameters:
    """Kinds whose behaviour is fully described by the rule itself."""


@dataclass(frozen=True)
class CompareParameters:
    compare_value: Any = param("compareValue", aliases=("value",))


@dataclass(frozen=True)
class RangeParameters:
    min: Any = param("min")
    max: Any = param("max")


@dataclass(frozen=True)
class RegexParameters:
    pattern: str = param("pattern", default="", convert=_as_str)


@dataclass(frozen=True)
class TypeParameters:
    data_type: str = param("dataType", default="", aliases=("type",), convert=_as_str)


@dataclass(frozen=True)
class EnumParameters:
    allowed_values: tuple = param("allowedValues", default=(), convert=_as_tuple)
    case_insensitive: bool = param("caseInsensitive", default=False, convert=_as_bool)


@dataclass(frozen=True)
class ListParameters:
    list_id: str = param("listId", required=True, convert=_as_str)


@dataclass(frozen=True)
class ContainsParameters:
    search_string: str = param("searchString", default="", aliases=("containsValue",), convert=_as_str)
    match_type: str = param("matchType", default="contains", convert=_as_str)
    case_sensitive: bool = param("caseSensitive", default=False, convert=_as_bool)

    def __post_init__(self) -> None:
        if self.match_type not in CONTAINS_MATCH_TYPES:
            raise RuleConfigurationError(
                f"Unknown match type: {self.match_type}",
                parameter="matchType",
                reason=f"Expected one of {', '.join(CONTAINS_MATCH_TYPES)}",
            )


@dataclass(frozen=True)
class CustomParameters:
    function_body: str = param("functionBody", default="", convert=_as_str)


@dataclass(frozen=True)
class DependencyParameters:
    depends_on: str = param("dependsOn", default="", aliases=("dependsOnColumn",), convert=_as_str)
    condition: str = param("condition", default="", convert=_as_str)


@dataclass(frozen=True)
class LookupParameters:
    lookup_table: str = param("lookupTable", default="", convert=_as_str)
    lookup_column: str = param("lookupColumn", default="", convert=_as_str)
    validation: str = param("validation", default="", convert=_as_str)


@dataclass(frozen=True)
class FormulaParameters:
    """Parameters of ``formula`` rules.

    ``aggregations`` stays in its raw wire form here; the formula validator
    turns it into :class:`dqrules.aggregation.AggregationConfig` records.
    """

    formula: str = param("formula", default="", convert=_as_str)
    use_comparison: bool = param("useComparison", default=False, convert=_as_bool)
    operator: str = param("operator", default="", convert=_as_str)
    value: Any = param("value")
    aggregations: tuple = param("aggregations", default=(), convert=_as_tuple)
    result_handling: ResultHandling | None = param("resultHandling", convert=_as_result_handling)


@dataclass(frozen=True)
class ScriptParameters:
    formula: str = param("formula", default="", convert=_as_str)


@dataclass(frozen=True)
class DateCompareParameters:
    compare_date: Any = param("compareDate")
    inclusive: bool = param("inclusive", default=False, convert=_as_bool)
    required: bool = param("required", default=False, convert=_as_bool)


@dataclass(frozen=True)
class DateBetweenParameters:
    start_date: Any = param("startDate")
    end_date: Any = param("endDate")
    inclusive: bool = param("inclusive", default=False, convert=_as_bool)
    required: bool = param("required", default=False, convert=_as_bool)


@dataclass(frozen=True)
class DateFormatParameters:
    format: str = param("format", default="iso", convert=_as_str)
    custom_format: str = param("customFormat", default="", convert=_as_str)
    required: bool = param("required", default=False, convert=_as_bool)

    def __post_init__(self) -> None:
        if self.format not in DATE_FORMATS:
            raise RuleConfigurationError(
                f"Unknown format: {self.format}",
                parameter="format",
                reason=f"Expected one of {', '.join(DATE_FORMATS)}",
            )
        if self.format == "custom" and not self.custom_format:
            raise RuleConfigurationError(
                "Custom format not specified",
                parameter="customFormat",
                reason="Required when format is 'custom'",
            )


@dataclass(frozen=True)
class ReferenceParameters:
    reference_table: str = param("referenceTable", required=True, convert=_as_str)
    reference_column: str = param("referenceColumn", required=True, convert=_as_str)
    check_type: str = param("checkType", default="exists", convert=_as_str)

    def __post_init__(self) -> None:
        if self.check_type not in CHECK_TYPES:
            raise RuleConfigurationError(
                f"Unknown check type: {self.check_type}",
                parameter="checkType",
                reason="Expected 'exists' or 'not-exists'",
            )


@dataclass(frozen=True)
class CompositeReferenceParameters:
    reference_table: str = param("referenceTable", required=True, convert=_as_str)
    source_columns: tuple[str, ...] = param("sourceColumns", default=(), convert=_as_tuple)
    reference_columns: tuple[str, ...] = param("referenceColumns", default=(), convert=_as_tuple)
    check_type: str = param("checkType", default="exists", convert=_as_str)

    def __post_init__(self) -> None:
        if (
            not self.source_columns
            or not self.reference_columns
            or len(self.source_columns) != len(self.reference_columns)
        ):
            raise RuleConfigurationError(
                "Invalid composite reference configuration: source and reference "
                "columns must be defined and have the same length",
                parameter="sourceColumns",
                reason="Column lists empty or of different lengths",
            )
        if self.check_type not in CHECK_TYPES:
            raise RuleConfigurationError(
                f"Unknown check type: {self.check_type}",
                parameter="checkType",
                reason="Expected 'exists' or 'not-exists'",
            )


@dataclass(frozen=True)
class ColumnComparisonParameters:
    left_column: str = param("leftColumn", default="", convert=_as_str)
    right_column: str = param(
        "rightColumn", required=True, aliases=("secondaryColumn",), convert=_as_str
    )
    comparison_operator: str = param(
        "comparisonOperator", required=True, aliases=("operator",), convert=_as_str
    )
    allow_null: bool = param("allowNull", default=False, convert=_as_bool)
    time_aware: bool = param("timeAware", default=False, convert=_as_bool)


@dataclass(frozen=True)
class Operand:
    """One operand of a math operation: a column reference or a constant."""

    kind: str
    value: Any

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Operand":
        kind = str(data.get("type", "constant"))
        if kind not in ("column", "constant"):
            raise RuleConfigurationError(
                f"Unknown operand type: {kind}",
                parameter="operands",
                reason="Expected 'column' or 'constant'",
            )
        return cls(kind=kind, value=data.get("value"))


def _as_operands(raw: Any) -> tuple[Operand, ...]:
    operands = []
    for item in _as_tuple(raw):
        if not isinstance(item, Mapping):
            raise RuleConfigurationError(
                f"Operand must be an object, got {item!r}",
                parameter="operands",
                reason="Expected {type, value}",
            )
        operands.append(Operand.from_dict(item))
    return tuple(operands)


@dataclass(frozen=True)
class MathOperationParameters:
    operation: str = param("operation", required=True, convert=_as_str)
    operands: tuple[Operand, ...] = param("operands", required=True, convert=_as_operands)
    comparison_operator: str = param("comparisonOperator", required=True, convert=_as_str)
    comparison_value: Any = param("comparisonValue", required=True)

    def __post_init__(self) -> None:
        if self.operation not in MATH_OPERATIONS:
            raise RuleConfigurationError(
                f"Unknown operation: {self.operation}",
                parameter="operation",
                reason=f"Expected one of {', '.join(MATH_OPERATIONS)}",
            )


PARAMETER_TYPES: dict[RuleType, type] = {
    RuleType.REQUIRED: NoParameters,
    RuleType.EQUALS: CompareParameters,
    RuleType.NOT_EQUALS: CompareParameters,
    RuleType.GREATER_THAN: CompareParameters,
    RuleType.GREATER_THAN_EQUALS: CompareParameters,
    RuleType.LESS_THAN: CompareParameters,
    RuleType.LESS_THAN_EQUALS: CompareParameters,
    RuleType.RANGE: RangeParameters,
    RuleType.REGEX: RegexParameters,
    RuleType.UNIQUE: NoParameters,
    RuleType.TYPE: TypeParameters,
    RuleType.ENUM: EnumParameters,
    RuleType.LIST: ListParameters,
    RuleType.CONTAINS: ContainsParameters,
    RuleType.DEPENDENCY: DependencyParameters,
    RuleType.MULTI_COLUMN: NoParameters,
    RuleType.LOOKUP: LookupParameters,
    RuleType.CUSTOM: CustomParameters,
    RuleType.FORMULA: FormulaParameters,
    RuleType.JAVASCRIPT_FORMULA: ScriptParameters,
    RuleType.DATE_BEFORE: DateCompareParameters,
    RuleType.DATE_AFTER: DateCompareParameters,
    RuleType.DATE_BETWEEN: DateBetweenParameters,
    RuleType.DATE_FORMAT: DateFormatParameters,
    RuleType.REFERENCE_INTEGRITY: ReferenceParameters,
    RuleType.COMPOSITE_REFERENCE: CompositeReferenceParameters,
    RuleType.COLUMN_COMPARISON: ColumnComparisonParameters,
    RuleType.MATH_OPERATION: MathOperationParameters,
}

assert set(PARAMETER_TYPES) == set(RuleType), "every rule kind needs a parameter record"


def parse_parameters(
    rule_type: RuleType, raw: Mapping[str, Any] | None, *, rule_id: str | None = None
) -> Any:
    """Parse raw parameters into the record registered for ``rule_type``."""
    return parameters_from_mapping(
        PARAMETER_TYPES[rule_type], raw, rule_id=rule_id, rule_type=rule_type.value
    )
