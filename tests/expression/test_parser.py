"""Tests for the formula tokenizer and parser."""

import pytest

from dqrules.expression import Dialect, FormulaSyntaxError, UnknownFunctionError, parse
from dqrules.expression.ast import BinaryOp, Call, ColumnRef, Literal, UnaryOp, column_names, is_boolean_root
from dqrules.expression.tokenizer import TokenKind, tokenize


def test_tokenize_splits_operators_longest_first():
    kinds = [(t.kind, t.text) for t in tokenize("a === 'x' && b >= 2")]
    assert kinds == [
        (TokenKind.IDENT, "a"),
        (TokenKind.OPERATOR, "==="),
        (TokenKind.STRING, "'x'"),
        (TokenKind.OPERATOR, "&&"),
        (TokenKind.IDENT, "b"),
        (TokenKind.OPERATOR, ">="),
        (TokenKind.NUMBER, "2"),
        (TokenKind.EOF, ""),
    ]


def test_tokenize_reads_escapes_and_quoted_identifiers():
    tokens = tokenize(r'`unit price` + "a\"b"')
    assert tokens[0].kind is TokenKind.QUOTED_IDENT
    assert tokens[0].value == "unit price"
    assert tokens[2].value == 'a"b'


@pytest.mark.parametrize("formula", ["'abc", "`abc", "a # b"])
def test_tokenize_rejects_bad_input(formula):
    with pytest.raises(FormulaSyntaxError):
        tokenize(formula)


def test_arithmetic_precedence():
    node = parse("a + b * 2")
    assert node == BinaryOp("+", ColumnRef("a"), BinaryOp("*", ColumnRef("b"), Literal(2)))


def test_logical_operators_are_normalised():
    node = parse("!(a === 1) || b !== 2")
    assert node == BinaryOp(
        "or",
        UnaryOp("not", BinaryOp("==", ColumnRef("a"), Literal(1))),
        BinaryOp("!=", ColumnRef("b"), Literal(2)),
    )


def test_and_binds_tighter_than_or():
    node = parse("a or b and c")
    assert node.op == "or"
    assert node.right.op == "and"


def test_list_literals_and_membership():
    node = parse("status in ['open', 'closed', -1]")
    assert node == BinaryOp("in", ColumnRef("status"), Literal(("open", "closed", -1)))


def test_aggregation_call_with_group_list():
    node = parse('SUM("amount", ["category"]) > 100')
    assert node.left == Call("SUM", (Literal("amount"), Literal(("category",))))


def test_script_dialect_accepts_return_and_row_access():
    node = parse("return row.amount > 0 && row['fee'] < 5;", Dialect.SCRIPT)
    assert node.left.left == ColumnRef("amount", qualified=True)
    assert node.right.left == ColumnRef("fee", qualified=True)


def test_script_dialect_rejects_calls():
    with pytest.raises(UnknownFunctionError):
        parse("SUM('amount') > 0", Dialect.SCRIPT)


@pytest.mark.parametrize("formula", ["", "a +", "(a", "a b", "return a", "x.y > 1", "[a]"])
def test_invalid_formulas_raise_syntax_errors(formula):
    with pytest.raises(FormulaSyntaxError):
        parse(formula)


def test_syntax_errors_carry_position():
    with pytest.raises(FormulaSyntaxError) as exc_info:
        parse("amount > ")
    assert exc_info.value.position is not None
    assert exc_info.value.context["formula"] == "amount > "


def test_boolean_root_detection():
    assert is_boolean_root(parse("a > 1"))
    assert is_boolean_root(parse("not a"))
    assert is_boolean_root(parse("a and b"))
    assert not is_boolean_root(parse("a - b"))


def test_column_names_skip_call_arguments():
    assert column_names(parse('amount - SUM("fee") > limit')) == {"amount", "limit"}


def test_deeply_nested_formula_is_a_syntax_error():
    formula = "(" * 10_000 + "1" + ")" * 10_000
    with pytest.raises(FormulaSyntaxError, match="Formula is nested too deeply"):
        parse(formula)


def test_column_names_of_long_chains():
    formula = " + ".join(f"c{i}" for i in range(5_000))
    assert len(column_names(parse(formula))) == 5_000
