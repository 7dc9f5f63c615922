"""Recursive-descent parser for the formula language.

Grammar, lowest precedence first::

    formula     := ["return"] or_expr [";"]           (script dialect only)
    or_expr     := and_expr (("||" | "or") and_expr)*
    and_expr    := not_expr (("&&" | "and") not_expr)*
    not_expr    := ("!" | "not") not_expr | comparison
    comparison  := additive (("==" | "!=" | "===" | "!==" | ">" | ">=" | "<" | "<=" | "in") additive)*
    additive    := term (("+" | "-") term)*
    term        := unary (("*" | "/" | "%") unary)*
    unary       := ("-" | "+") unary | primary
    primary     := NUMBER | STRING | "true" | "false" | "null"
                 | IDENT "(" [args] ")" | IDENT | `quoted name`
                 | "row" "." IDENT | "row" "[" STRING "]"
                 | "(" or_expr ")" | "[" [literal ("," literal)*] "]"

Operators are normalised while parsing: ``&&``/``||``/``!`` become
``and``/``or``/``not`` and the strict equality forms become ``==``/``!=``.
"""

from enum import Enum
from functools import lru_cache

from dqrules.expression.ast import BinaryOp, Call, ColumnRef, Literal, Node, UnaryOp
from dqrules.expression.errors import FormulaSyntaxError, UnknownFunctionError
from dqrules.expression.tokenizer import Token, TokenKind, tokenize

KEYWORDS = frozenset({"and", "or", "not", "in", "true", "false", "null", "return"})
NESTING_MESSAGE = "Formula is nested too deeply"

_NORMALISED = {"&&": "and", "||": "or", "!": "not", "===": "==", "!==": "!="}
_COMPARISONS = frozenset({"==", "!=", "===", "!==", ">", ">=", "<", "<="})


class Dialect(Enum):
    """Formula dialects.

    FORMULA: aggregation calls allowed, bare names read the row.
    SCRIPT: boolean scripts with optional ``return``/``;`` and ``row.field``
    access; no function calls.
    """

    FORMULA = "formula"
    SCRIPT = "script"


class _Parser:
    def __init__(self, formula: str, dialect: Dialect) -> None:
        self.formula = formula
        self.dialect = dialect
        self.tokens = tokenize(formula)
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        if token.kind is not TokenKind.EOF:
            self.pos += 1
        return token

    def error(self, message: str, token: Token | None = None) -> FormulaSyntaxError:
        token = token or self.current
        return FormulaSyntaxError(message, formula=self.formula, position=token.position)

    def expect(self, kind: TokenKind) -> Token:
        if self.current.kind is not kind:
            found = self.current.text or self.current.kind.value
            raise self.error(f"Expected '{kind.value}' but found '{found}'")
        return self.advance()

    def at_operator(self, *ops: str) -> bool:
        return self.current.kind is TokenKind.OPERATOR and self.current.text in ops

    def at_keyword(self, *words: str) -> bool:
        return self.current.kind is TokenKind.IDENT and self.current.text in words

    def parse(self) -> Node:
        if self.current.kind is TokenKind.EOF:
            raise self.error("Formula is empty")
        if self.dialect is Dialect.SCRIPT and self.at_keyword("return"):
            self.advance()
        node = self.parse_or()
        if self.dialect is Dialect.SCRIPT and self.current.kind is TokenKind.SEMICOLON:
            self.advance()
        if self.current.kind is not TokenKind.EOF:
            raise self.error(f"Unexpected token '{self.current.text}'")
        return node

    def parse_or(self) -> Node:
        node = self.parse_and()
        while self.at_operator("||") or self.at_keyword("or"):
            self.advance()
            node = BinaryOp("or", node, self.parse_and())
        return node

    def parse_and(self) -> Node:
        node = self.parse_not()
        while self.at_operator("&&") or self.at_keyword("and"):
            self.advance()
            node = BinaryOp("and", node, self.parse_not())
        return node

    def parse_not(self) -> Node:
        if self.at_operator("!") or self.at_keyword("not"):
            self.advance()
            return UnaryOp("not", self.parse_not())
        return self.parse_comparison()

    def parse_comparison(self) -> Node:
        node = self.parse_additive()
        while self.at_operator(*_COMPARISONS) or self.at_keyword("in"):
            op = self.advance().text
            node = BinaryOp(_NORMALISED.get(op, op), node, self.parse_additive())
        return node

    def parse_additive(self) -> Node:
        node = self.parse_term()
        while self.at_operator("+", "-"):
            op = self.advance().text
            node = BinaryOp(op, node, self.parse_term())
        return node

    def parse_term(self) -> Node:
        node = self.parse_unary()
        while self.at_operator("*", "/", "%"):
            op = self.advance().text
            node = BinaryOp(op, node, self.parse_unary())
        return node

    def parse_unary(self) -> Node:
        if self.at_operator("-", "+"):
            op = self.advance().text
            return UnaryOp(op, self.parse_unary())
        return self.parse_primary()

    def parse_primary(self) -> Node:
        token = self.current

        if token.kind is TokenKind.NUMBER:
            self.advance()
            number = token.value
            return Literal(int(number) if number.is_integer() and "." not in token.text else number)

        if token.kind is TokenKind.STRING:
            self.advance()
            return Literal(token.value)

        if token.kind is TokenKind.QUOTED_IDENT:
            self.advance()
            return ColumnRef(token.value)

        if token.kind is TokenKind.LPAREN:
            self.advance()
            node = self.parse_or()
            self.expect(TokenKind.RPAREN)
            return node

        if token.kind is TokenKind.LBRACKET:
            return self.parse_list()

        if token.kind is TokenKind.IDENT:
            return self.parse_identifier()

        found = token.text or token.kind.value
        raise self.error(f"Unexpected token '{found}'")

    def parse_identifier(self) -> Node:
        token = self.advance()
        name = token.text

        if name == "true":
            return Literal(True)
        if name == "false":
            return Literal(False)
        if name == "null":
            return Literal(None)
        if name in KEYWORDS:
            raise self.error(f"Unexpected keyword '{name}'", token)

        if self.current.kind is TokenKind.LPAREN:
            if self.dialect is Dialect.SCRIPT:
                raise UnknownFunctionError(
                    "Function calls are not allowed in script formulas",
                    function=name,
                    formula=self.formula,
                )
            return self.parse_call(name)

        if self.dialect is Dialect.SCRIPT and name == "row":
            if self.current.kind is TokenKind.DOT:
                self.advance()
                field = self.current
                if field.kind not in (TokenKind.IDENT, TokenKind.QUOTED_IDENT):
                    raise self.error("Expected a field name after 'row.'")
                self.advance()
                return ColumnRef(field.value, qualified=True)
            if self.current.kind is TokenKind.LBRACKET:
                self.advance()
                field = self.expect(TokenKind.STRING)
                self.expect(TokenKind.RBRACKET)
                return ColumnRef(field.value, qualified=True)

        if self.current.kind is TokenKind.DOT:
            raise self.error(f"Property access is only supported on 'row', not '{name}'")

        return ColumnRef(name)

    def parse_call(self, name: str) -> Node:
        self.expect(TokenKind.LPAREN)
        args: list[Node] = []
        if self.current.kind is not TokenKind.RPAREN:
            args.append(self.parse_or())
            while self.current.kind is TokenKind.COMMA:
                self.advance()
                args.append(self.parse_or())
        self.expect(TokenKind.RPAREN)
        return Call(name, tuple(args))

    def parse_list(self) -> Node:
        self.expect(TokenKind.LBRACKET)
        items: list[object] = []
        if self.current.kind is not TokenKind.RBRACKET:
            items.append(self.parse_list_item())
            while self.current.kind is TokenKind.COMMA:
                self.advance()
                items.append(self.parse_list_item())
        self.expect(TokenKind.RBRACKET)
        return Literal(tuple(items))

    def parse_list_item(self) -> object:
        start = self.current
        node = self.parse_unary()
        if isinstance(node, UnaryOp) and node.op == "-" and isinstance(node.operand, Literal):
            return -node.operand.value
        if not isinstance(node, Literal):
            raise self.error("List elements must be literal values", start)
        return node.value


@lru_cache(maxsize=1024)
def parse(formula: str, dialect: Dialect = Dialect.FORMULA) -> Node:
    """Parse formula text into an AST.

    Parsed trees are immutable and cached per ``(formula, dialect)``.

    Raises:
        FormulaSyntaxError: If the text is not a valid formula
        UnknownFunctionError: If a script formula contains a call

    Example:
        >>> parse("amount > 0")
        BinaryOp(op='>', left=ColumnRef(name='amount', qualified=False), right=Literal(value=0))
    """
    try:
        return _Parser(formula, dialect).parse()
    except RecursionError:
        raise FormulaSyntaxError(NESTING_MESSAGE, formula=formula) from None
