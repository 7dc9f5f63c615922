"""Rule check protocol.

Every rule kind is implemented as a plain function matching :class:`RuleCheck`
and registered in :data:`dqrules.validation.catalog.CHECKS`.

All implementations must:
    - Treat ``row`` as read-only
    - Return a CheckOutcome instead of raising for bad or missing data
    - Be deterministic for a given row, parameters and datasets
"""

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from dqrules.validation.context import ValidationContext
    from dqrules.validation.outcome import CheckOutcome


class RuleCheck(Protocol):
    """Callable checking one cell value in the context of its row.

    Example:
        >>> def check_positive(value, row, params, context):
        ...     if value > 0:
        ...         return CheckOutcome.ok()
        ...     return CheckOutcome.fail("Value must be positive")
    """

    def __call__(
        self,
        value: Any,
        row: Mapping[str, Any],
        params: Any,
        context: "ValidationContext",
    ) -> "CheckOutcome":
        """Check ``value`` (the rule column's cell in ``row``).

        Args:
            value: Cell value under test
            row: Whole row, for kinds that read other columns
            params: Typed parameter record of the rule kind
            context: Datasets, value lists and per-run caches

        Returns:
            CheckOutcome describing the verdict
        """
        ...
