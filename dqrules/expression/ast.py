"""Closed set of formula AST nodes."""

from dataclasses import dataclass
from typing import Any, Union

COMPARISON_OPS = frozenset({"==", "!=", "===", "!==", ">", ">=", "<", "<=", "in"})
LOGICAL_OPS = frozenset({"and", "or"})


@dataclass(frozen=True)
class Literal:
    """Constant value. List literals are stored as tuples."""

    value: Any


@dataclass(frozen=True)
class ColumnRef:
    """Reference to a row column.

    ``qualified`` is set for ``row.field`` access, which always reads the row;
    bare names may also resolve to named bindings or aggregation aliases.
    """

    name: str
    qualified: bool = False


@dataclass(frozen=True)
class BinaryOp:
    op: str
    left: "Node"
    right: "Node"


@dataclass(frozen=True)
class UnaryOp:
    op: str
    operand: "Node"


@dataclass(frozen=True)
class Call:
    name: str
    args: tuple["Node", ...]


Node = Union[Literal, ColumnRef, BinaryOp, UnaryOp, Call]


def is_boolean_root(node: Node) -> bool:
    """Check whether a formula's root node yields a boolean verdict."""
    if isinstance(node, BinaryOp):
        return node.op in COMPARISON_OPS or node.op in LOGICAL_OPS
    if isinstance(node, UnaryOp):
        return node.op == "not"
    return False


def column_names(node: Node) -> set[str]:
    """Collect every column name referenced by a formula."""
    names: set[str] = set()
    pending = [node]
    while pending:
        current = pending.pop()
        if isinstance(current, ColumnRef):
            names.add(current.name)
        elif isinstance(current, BinaryOp):
            pending.extend((current.left, current.right))
        elif isinstance(current, UnaryOp):
            pending.append(current.operand)
        elif isinstance(current, Call):
            pending.extend(arg for arg in current.args if not isinstance(arg, Literal))
    return names
