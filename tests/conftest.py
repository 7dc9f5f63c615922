"""Shared test fixtures and Hypothesis strategies for dqrules tests."""

import logging
from datetime import date

import pytest
from hypothesis import settings
from hypothesis import strategies as st

from dqrules.core.models import Rule

settings.register_profile("dqrules", max_examples=100, deadline=None)
settings.load_profile("dqrules")


# Hypothesis strategies for generating cell values and rows

absent_values = st.sampled_from([None, "", float("nan")])

present_scalars = st.one_of(
    st.integers(min_value=-10**6, max_value=10**6),
    st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False),
    st.text(min_size=1, max_size=12).filter(lambda s: s != ""),
    st.booleans(),
)

calendar_dates = st.dates(min_value=date(1990, 1, 1), max_value=date(2040, 12, 31))


@st.composite
def numeric_strings(draw: st.DrawFn) -> tuple[str, float]:
    """Generate a numeric-looking string together with its numeric value."""
    number = draw(st.integers(min_value=-10**6, max_value=10**6))
    padding = draw(st.sampled_from(["", " "]))
    return f"{padding}{number}{padding}", float(number)


@st.composite
def transaction_rows(draw: st.DrawFn, min_rows: int = 0, max_rows: int = 20) -> list[dict]:
    """Generate transaction rows with a category, a region and an amount.

    Amounts are sometimes missing so absent-value handling gets exercised.
    """
    size = draw(st.integers(min_value=min_rows, max_value=max_rows))
    rows = []
    for _ in range(size):
        rows.append(
            {
                "category": draw(st.sampled_from(["food", "travel", "office"])),
                "region": draw(st.sampled_from(["north", "south"])),
                "amount": draw(st.one_of(st.none(), st.integers(min_value=-500, max_value=500))),
            }
        )
    return rows


# Fixtures


@pytest.fixture
def make_rule():
    """Build a Rule from keyword arguments in wire (camelCase) form."""

    def _make(rule_type: str, column: str = "value", table: str = "t", **fields) -> Rule:
        data = {
            "id": fields.pop("id", f"{rule_type}-rule"),
            "name": fields.pop("name", f"{rule_type} rule"),
            "table": table,
            "column": column,
            "ruleType": rule_type,
        }
        data.update(fields)
        return Rule.from_dict(data)

    return _make


@pytest.fixture
def shop_datasets() -> dict[str, list[dict]]:
    """Transactions referencing users, used by the end-to-end scenarios."""
    return {
        "transactions": [
            {
                "id": 1,
                "userId": 1,
                "amount": 100,
                "refundAmount": 20,
                "processingFee": 3,
                "transactionDate": "2024-03-15",
                "status": "closed",
            },
            {
                "id": 2,
                "userId": 9999,
                "amount": 50,
                "refundAmount": 0,
                "processingFee": 1,
                "transactionDate": "2024-04-01",
                "status": "open",
            },
        ],
        "users": [
            {"id": 1, "name": "Ada", "country": "NL"},
            {"id": 2, "name": "Grace", "country": "US"},
        ],
    }


@pytest.fixture
def restore_root_logger():
    """Undo root logger changes made by configure_logging."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
