"""Tests for row conditions and the flat AND/OR chain fold."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from dqrules.core.conditions import ChainStep, evaluate_conditions, evaluate_operator, fold_chain
from dqrules.core.models import Condition, LogicalOperator

AND, OR = LogicalOperator.AND, LogicalOperator.OR


def _step(valid: bool, name: str, joiner: LogicalOperator = AND) -> ChainStep:
    return ChainStep(valid, name, "" if valid else f"{name} failed", joiner)


@pytest.mark.parametrize(
    ("a", "b", "c", "expected"),
    [
        (False, True, False, True),
        (False, False, False, False),
        (True, True, False, True),
        (True, False, True, True),
        (False, False, True, True),
    ],
)
def test_chain_folds_left_to_right_without_precedence(a, b, c, expected):
    outcome = fold_chain([_step(a, "a", AND), _step(b, "b", OR), _step(c, "c")])
    assert outcome.is_valid is ((a and b) or c)
    assert outcome.is_valid is expected


@given(verdicts=st.lists(st.booleans(), min_size=1, max_size=8), joiners=st.lists(st.booleans(), min_size=8, max_size=8))
def test_property_chain_matches_left_fold(verdicts, joiners):
    ops = [OR if flag else AND for flag in joiners]
    steps = [_step(v, f"c{i}", ops[i]) for i, v in enumerate(verdicts)]

    expected = verdicts[0]
    for i in range(1, len(verdicts)):
        if ops[i - 1] is AND:
            expected = expected and verdicts[i]
        else:
            expected = expected or verdicts[i]

    outcome = fold_chain(steps)
    assert outcome.is_valid is expected
    if outcome.is_valid:
        assert outcome.message == ""
    else:
        assert outcome.message.endswith("failed")


def test_empty_chain_is_valid():
    assert fold_chain([]).is_valid


def test_and_chain_keeps_first_failure():
    outcome = fold_chain([_step(True, "a"), _step(False, "b"), _step(False, "c")])
    assert not outcome.is_valid
    assert outcome.failing_column == "b"
    assert outcome.message == "b failed"


@pytest.mark.parametrize(
    ("value", "operator", "expected_value", "valid"),
    [
        ("abc", "contains", "b", True),
        ("abc", "not-contains", "b", False),
        ("abc", "starts-with", "a", True),
        ("abc", "ends-with", "a", False),
        ("abc", "matches", "^a.c$", True),
        ("", "is-blank", None, True),
        (None, "is-not-blank", None, False),
        ("10", ">", 9, True),
        (5, "<=", "5", True),
        (5, "contains", "5", False),
    ],
)
def test_evaluate_operator(value, operator, expected_value, valid):
    assert evaluate_operator(value, operator, expected_value, "col").is_valid is valid


def test_failure_messages_name_the_column():
    assert evaluate_operator(5, ">", 10, "amount").message == "amount should be greater than 10"
    assert evaluate_operator("x", "is-blank", None, "note").message == "note should be blank"


def test_invalid_regex_and_unknown_operator_fail():
    assert evaluate_operator("x", "matches", "(", "c").message.startswith("Invalid regex pattern")
    assert evaluate_operator("x", "like", "x", "c").message == "Unknown operator: like"


def test_broken_operators_are_configuration_errors():
    assert evaluate_operator("x", "matches", "(", "c").configuration_error
    assert evaluate_operator("x", "like", "x", "c").configuration_error
    assert not evaluate_operator(1, ">", 5, "c").configuration_error


def test_chain_keeps_configuration_error_of_recorded_failure():
    broken = ChainStep(False, "a", "Unknown operator: like", AND, True)
    outcome = fold_chain([broken, _step(False, "b")])
    assert outcome.configuration_error
    assert outcome.failing_column == "a"

    outcome = fold_chain([_step(False, "b"), broken])
    assert not outcome.configuration_error
    assert outcome.failing_column == "b"


def test_or_success_clears_configuration_error():
    broken = ChainStep(False, "a", "Unknown operator: like", OR, True)
    assert fold_chain([broken, _step(True, "b")]).is_valid


def test_evaluate_conditions_reads_each_column():
    conditions = [
        Condition("status", "==", "closed", OR),
        Condition("amount", ">", 0),
    ]
    assert evaluate_conditions({"status": "open", "amount": 1}, conditions).is_valid
    outcome = evaluate_conditions({"status": "open", "amount": 0}, conditions)
    assert not outcome.is_valid
    assert outcome.failing_column == "status"
