"""Example: Validating a small shop dataset

This example builds a rule collection in Python, runs it over two in-memory
tables and prints the text report and the per-rule pass rates.
"""

import polars as pl

from dqrules.validation import ValidationEngine, ValidationMode, load_rules, load_value_lists

RULES = [
    {
        "id": "amount-required",
        "name": "Amount is required",
        "table": "transactions",
        "column": "amount",
        "ruleType": "required",
    },
    {
        "id": "user-exists",
        "name": "User exists",
        "table": "transactions",
        "column": "userId",
        "ruleType": "reference-integrity",
        "parameters": {"referenceTable": "users", "referenceColumn": "id", "checkType": "exists"},
    },
    {
        "id": "net-amount",
        "name": "Net amount is positive",
        "table": "transactions",
        "column": "amount",
        "ruleType": "formula",
        "parameters": {"formula": "amount - refundAmount > 0"},
        "severity": "warning",
    },
    {
        "id": "known-currency",
        "name": "Currency is supported",
        "table": "transactions",
        "column": "currency",
        "ruleType": "list",
        "parameters": {"listId": "currencies"},
    },
    {
        "id": "shipped-after-order",
        "name": "Shipping follows ordering",
        "table": "transactions",
        "column": "shippedAt",
        "ruleType": "column-comparison",
        "parameters": {"leftColumn": "shippedAt", "comparisonOperator": ">=", "rightColumn": "orderedAt"},
    },
]

VALUE_LISTS = [{"id": "currencies", "name": "Currencies", "values": ["EUR", "USD", "GBP"]}]


def main():
    """Run the example rules over sample data."""
    datasets = {
        "users": [{"id": 1, "name": "Ada"}, {"id": 2, "name": "Grace"}],
        "transactions": [
            {
                "userId": 1,
                "amount": 100,
                "refundAmount": 20,
                "currency": "EUR",
                "orderedAt": "2024-03-01",
                "shippedAt": "2024-03-02",
            },
            {
                "userId": 9999,
                "amount": 50,
                "refundAmount": 50,
                "currency": "JPY",
                "orderedAt": "2024-03-05",
                "shippedAt": "2024-03-04",
            },
            {
                "userId": 2,
                "amount": None,
                "refundAmount": 0,
                "currency": "USD",
                "orderedAt": "2024-03-07",
                "shippedAt": "2024-03-07",
            },
        ],
    }

    rules = load_rules(RULES)
    value_lists = load_value_lists(VALUE_LISTS)

    print("Example 1: Full report")
    print("-" * 80)
    engine = ValidationEngine(rules, value_lists, workers=2)
    report = engine.run(datasets)
    print(report.format(severity_filter="issues"))
    print("\n")

    print("Example 2: Pass rates per rule")
    print("-" * 80)
    with pl.Config(tbl_rows=-1):
        print(report.pass_rates())
    print("\n")

    # Stops after the first rule with a failing row
    print("Example 3: Fail-fast mode")
    print("-" * 80)
    fail_fast = ValidationEngine(rules, value_lists, mode=ValidationMode.FAIL_FAST)
    print(fail_fast.run(datasets).summary())


if __name__ == "__main__":
    main()
