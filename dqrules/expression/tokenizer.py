"""Tokenizer for the formula language."""

import re
from dataclasses import dataclass
from enum import Enum

from dqrules.expression.errors import FormulaSyntaxError


class TokenKind(Enum):
    NUMBER = "number"
    STRING = "string"
    IDENT = "identifier"
    QUOTED_IDENT = "quoted identifier"
    OPERATOR = "operator"
    LPAREN = "("
    RPAREN = ")"
    LBRACKET = "["
    RBRACKET = "]"
    COMMA = ","
    DOT = "."
    SEMICOLON = ";"
    EOF = "end of formula"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    text: str
    position: int
    value: object = None


# Longest operators first so "===" wins over "==".
_OPERATORS = ("===", "!==", "==", "!=", ">=", "<=", "&&", "||", ">", "<", "+", "-", "*", "/", "%", "!")

_PUNCTUATION = {
    "(": TokenKind.LPAREN,
    ")": TokenKind.RPAREN,
    "[": TokenKind.LBRACKET,
    "]": TokenKind.RBRACKET,
    ",": TokenKind.COMMA,
    ";": TokenKind.SEMICOLON,
}

_NUMBER_RE = re.compile(r"(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_IDENT_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "0": "\0", "\\": "\\", '"': '"', "'": "'"}


def _read_string(formula: str, start: int) -> tuple[str, int]:
    quote = formula[start]
    chars: list[str] = []
    i = start + 1
    while i < len(formula):
        ch = formula[i]
        if ch == "\\":
            if i + 1 >= len(formula):
                break
            nxt = formula[i + 1]
            chars.append(_ESCAPES.get(nxt, nxt))
            i += 2
            continue
        if ch == quote:
            return "".join(chars), i + 1
        chars.append(ch)
        i += 1
    raise FormulaSyntaxError("Unterminated string literal", formula=formula, position=start)


def tokenize(formula: str) -> list[Token]:
    """Split a formula into tokens.

    Raises:
        FormulaSyntaxError: On characters outside the language or unterminated
            string and identifier quotes

    Example:
        >>> [t.text for t in tokenize("amount * 2 >= 10")]
        ['amount', '*', '2', '>=', '10', '']
    """
    tokens: list[Token] = []
    i = 0
    length = len(formula)

    while i < length:
        ch = formula[i]

        if ch.isspace():
            i += 1
            continue

        if ch.isdigit() or (ch == "." and i + 1 < length and formula[i + 1].isdigit()):
            match = _NUMBER_RE.match(formula, i)
            text = match.group(0)
            tokens.append(Token(TokenKind.NUMBER, text, i, float(text)))
            i = match.end()
            continue

        if ch in ("'", '"'):
            value, end = _read_string(formula, i)
            tokens.append(Token(TokenKind.STRING, formula[i:end], i, value))
            i = end
            continue

        if ch == "`":
            end = formula.find("`", i + 1)
            if end < 0:
                raise FormulaSyntaxError("Unterminated quoted identifier", formula=formula, position=i)
            name = formula[i + 1 : end]
            tokens.append(Token(TokenKind.QUOTED_IDENT, formula[i : end + 1], i, name))
            i = end + 1
            continue

        match = _IDENT_RE.match(formula, i)
        if match:
            tokens.append(Token(TokenKind.IDENT, match.group(0), i, match.group(0)))
            i = match.end()
            continue

        if ch == ".":
            tokens.append(Token(TokenKind.DOT, ch, i))
            i += 1
            continue

        if ch in _PUNCTUATION:
            tokens.append(Token(_PUNCTUATION[ch], ch, i))
            i += 1
            continue

        for op in _OPERATORS:
            if formula.startswith(op, i):
                tokens.append(Token(TokenKind.OPERATOR, op, i))
                i += len(op)
                break
        else:
            raise FormulaSyntaxError(f"Unexpected character '{ch}'", formula=formula, position=i)

    tokens.append(Token(TokenKind.EOF, "", length))
    return tokens
