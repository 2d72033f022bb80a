# kv_grammar.py
# Hand-rolled grammar for the key/value list format
#
# =============================================================================
#  GRAMMAR
# =============================================================================
#
#   file       = line *( NEWLINE line ) EOF
#   line       = [WS] [ comment | pair ] [WS]
#   comment    = "#" *( any char except line break )
#   pair       = identifier [WS] ":" [WS] value_list
#   identifier = [A-Za-z_] *[A-Za-z0-9_]
#   value_list = "[" [WS] [ number *( [WS] "," [WS] number ) ] [WS] "]"
#   number     = literal slot; shape and range are checked by kv_parser
#
# Each rule maps onto one _parse_* function below. Lines are the unit of the
# format, so line breaks are tokens of their own and never count as
# whitespace.
#
# The lexer does not tell identifiers and numbers apart: both come out as
# WORD tokens and the rule consuming the token decides what it must look
# like. That keeps "[1, two, 3]" structurally valid and leaves the verdict
# on "two" to the conversion step.
# =============================================================================

import bisect
import re
from typing import Iterator, List, NamedTuple, Optional, Tuple, Union

# ---------------------------------------------------------------------------
# REGEX BLUEPRINT
# ---------------------------------------------------------------------------
_NEWLINE    = r"\r\n|\r|\n"
_WHITESPACE = r"[^\S\r\n]+"
_COMMENT    = r"#[^\r\n]*"
_WORD       = r"[^\s,:#\[\]]+"

_TOKEN_RE = re.compile(
    rf"(?P<NEWLINE>{_NEWLINE})|"
    rf"(?P<WHITESPACE>{_WHITESPACE})|"
    rf"(?P<COMMENT>{_COMMENT})|"
    r"(?P<LBRACKET>\[)|"
    r"(?P<RBRACKET>\])|"
    r"(?P<COMMA>,)|"
    r"(?P<COLON>:)|"
    rf"(?P<WORD>{_WORD})",
)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")

# Human readable names used in "expected ..." diagnostics.
_DESCRIBE = {
    "NEWLINE":  "end of line",
    "EOF":      "end of input",
    "LBRACKET": "'['",
    "RBRACKET": "']'",
    "COMMA":    "','",
    "COLON":    "':'",
}

# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------
class ParseError(Exception):
    """Base class for every error the parser raises."""


class DocumentSyntaxError(ParseError, SyntaxError):
    """
    Input does not conform to the grammar.

    Carries the 1-based line and column of the offending token and the
    rule(s) that would have been accepted there.
    """

    def __init__(self, message: str, line: Optional[int] = None,
                 column: Optional[int] = None, expected: Tuple[str, ...] = ()):
        super().__init__(message)
        self.line = line
        self.column = column
        self.expected = expected

# ---------------------------------------------------------------------------
# TOKEN RECORD
# ---------------------------------------------------------------------------
class Token(Tuple[str, str, int]):
    """Immutable token record: (kind, value, absolute_offset)."""
    pass

# ---------------------------------------------------------------------------
# MATCH TREE
# ---------------------------------------------------------------------------
class Number(NamedTuple):
    literal: str
    line: int
    column: int


class ValueList(NamedTuple):
    items: Tuple[Number, ...]
    line: int
    column: int


class Pair(NamedTuple):
    key: str
    values: ValueList
    line: int
    column: int


class Comment(NamedTuple):
    text: str
    line: int
    column: int


class Document(NamedTuple):
    lines: Tuple[Union[Comment, Pair], ...]

# ---------------------------------------------------------------------------
# LOOKAHEAD RING
# ---------------------------------------------------------------------------
class LookAhead:
    """One-slot pushback over the token stream."""
    def __init__(self, iterable: Iterator[Token]):
        self._iter = iter(iterable)
        self._buf: List[Token] = []

    def __next__(self):
        if self._buf:
            return self._buf.pop()
        return next(self._iter)

    def peek(self) -> Token:
        if not self._buf:
            self._buf.append(next(self._iter))
        return self._buf[-1]

# ---------------------------------------------------------------------------
# POSITIONS AND DIAGNOSTICS
# ---------------------------------------------------------------------------
class SourceText:
    """
    Input text plus the offsets where each of its lines starts.

    The line starts are found once, so turning an offset into a
    (line, column) pair is a binary search rather than a rescan.
    """

    def __init__(self, text: str):
        self.text = text
        self._starts = [0] + [m.end() for m in re.finditer(_NEWLINE, text)]

    def position(self, offset: int) -> Tuple[int, int]:
        """Translate an absolute offset into a 1-based (line, column) pair."""
        line = bisect.bisect_right(self._starts, offset)
        return line, offset - self._starts[line - 1] + 1

    def line_text(self, line: int) -> str:
        start = self._starts[line - 1]
        if line < len(self._starts):
            return self.text[start:self._starts[line]].rstrip("\r\n")
        return self.text[start:]

    def error(self, line: int, column: int, message: str,
              expected: Tuple[str, ...] = ()) -> DocumentSyntaxError:
        """Build a DocumentSyntaxError with position and a caret excerpt."""
        caret = " " * (column - 1) + "^"
        full = f"line {line}, column {column}: {message}\n  {self.line_text(line)}\n  {caret}"
        return DocumentSyntaxError(full, line, column, expected)


def _describe(tok: Token) -> str:
    kind, value, _ = tok
    if kind in _DESCRIBE:
        return _DESCRIBE[kind]
    return f"'{value}'"


def _unexpected(src: SourceText, tok: Token, *expected: str) -> DocumentSyntaxError:
    return src.error(
        *src.position(tok[2]),
        f"expected {' or '.join(expected)}, found {_describe(tok)}",
        expected,
    )

# ---------------------------------------------------------------------------
# LEXER
# ---------------------------------------------------------------------------
def lex(text: str) -> Iterator[Token]:
    """
    Single-pass generator producing tokens, WHITESPACE included since the
    rules decide where it may appear. Finishes with an EOF token.

    The token patterns together cover every character, so lexing itself
    never fails; anything out of place is reported by the rules.
    """
    for m in _TOKEN_RE.finditer(text):
        yield Token((m.lastgroup, m.group(), m.start()))
    yield Token(("EOF", "", len(text)))

# ---------------------------------------------------------------------------
# PARSER UTILITIES
# ---------------------------------------------------------------------------
def _skip_ws(tokens: LookAhead) -> None:
    while tokens.peek()[0] == "WHITESPACE":
        next(tokens)


def _expect(tokens: LookAhead, src: SourceText, expected_kind: str) -> Token:
    """Consume and verify the next token."""
    tok = next(tokens)
    if tok[0] != expected_kind:
        raise _unexpected(src, tok, _DESCRIBE.get(expected_kind, expected_kind))
    return tok


def is_identifier(value: str) -> bool:
    return _IDENTIFIER_RE.fullmatch(value) is not None

# ---------------------------------------------------------------------------
# RULES
# ---------------------------------------------------------------------------
def _parse_value_list(tokens: LookAhead, src: SourceText) -> ValueList:
    open_tok = _expect(tokens, src, "LBRACKET")
    line, column = src.position(open_tok[2])
    items: List[Number] = []

    _skip_ws(tokens)
    if tokens.peek()[0] == "RBRACKET":
        next(tokens)
        return ValueList(tuple(items), line, column)

    while True:
        tok = next(tokens)
        if tok[0] != "WORD":
            raise _unexpected(src, tok, "number")
        items.append(Number(tok[1], *src.position(tok[2])))
        _skip_ws(tokens)
        tok = next(tokens)
        if tok[0] == "RBRACKET":
            break
        if tok[0] != "COMMA":
            raise _unexpected(src, tok, "','", "']'")
        _skip_ws(tokens)
    return ValueList(tuple(items), line, column)


def _parse_pair(tokens: LookAhead, src: SourceText) -> Pair:
    tok = next(tokens)
    if not is_identifier(tok[1]):
        raise _unexpected(src, tok, "identifier")
    line, column = src.position(tok[2])
    _skip_ws(tokens)
    _expect(tokens, src, "COLON")
    _skip_ws(tokens)
    return Pair(tok[1], _parse_value_list(tokens, src), line, column)


def _parse_line(tokens: LookAhead, src: SourceText) -> Optional[Union[Comment, Pair]]:
    """Parse one line; blank lines yield None. Leaves the line break unread."""
    _skip_ws(tokens)
    kind, value, pos = tokens.peek()

    node: Optional[Union[Comment, Pair]] = None
    if kind == "COMMENT":
        next(tokens)
        node = Comment(value[1:], *src.position(pos))
    elif kind == "WORD":
        node = _parse_pair(tokens, src)
    elif kind not in ("NEWLINE", "EOF"):
        raise _unexpected(src, tokens.peek(), "comment", "identifier", "end of line")

    _skip_ws(tokens)
    if tokens.peek()[0] not in ("NEWLINE", "EOF"):
        raise _unexpected(src, tokens.peek(), "end of line")
    return node


def _parse_file(tokens: LookAhead, src: SourceText) -> Document:
    lines: List[Union[Comment, Pair]] = []
    while True:
        node = _parse_line(tokens, src)
        if node is not None:
            lines.append(node)
        kind, _, _ = next(tokens)
        if kind == "EOF":
            return Document(tuple(lines))

# ---------------------------------------------------------------------------
# PUBLIC API
# ---------------------------------------------------------------------------
def parse_document(text: str) -> Document:
    """
    Match the whole text against the `file` rule and return its match tree.

    Raises DocumentSyntaxError on the first construct that does not fit.
    """
    return _parse_file(LookAhead(lex(text)), SourceText(text))


__all__ = [
    "Comment", "Document", "DocumentSyntaxError", "Number", "Pair",
    "ParseError", "SourceText", "Token", "ValueList", "is_identifier",
    "lex", "parse_document",
]
