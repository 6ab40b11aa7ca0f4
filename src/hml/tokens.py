"""Token types, source positions, and character classification helpers."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    COMMENT = auto()  # ; lines
    TAG_OPEN = auto()  # ##name or ##name{
    TAG_CLOSE = auto()  # ##name}
    ATTRIBUTE = auto()  # prefix:name=value
    CHARACTERS = auto()  # quoted string, escapes not yet interpreted
    RAW_CHARACTERS = auto()  # r"..." string
    WHITESPACE = auto()
    EOF = auto()


@dataclass(frozen=True, slots=True, order=True)
class Position:
    """Source position, 1-based line and column, 0-based UTF-8 byte offset."""

    line: int
    column: int
    offset: int

    @classmethod
    def zero(cls) -> Position:
        return cls(1, 1, 0)

    def advance(self, ch: str) -> Position:
        """Return the position just after *ch*."""
        if ch == "\n":
            return Position(self.line + 1, 1, self.offset + 1)
        return Position(self.line, self.column + 1, self.offset + utf8_length(ch))

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


@dataclass(frozen=True, slots=True)
class Span:
    """Source range from start (inclusive) to end (exclusive)."""

    start: Position
    end: Position

    @classmethod
    def at(cls, pos: Position) -> Span:
        """Zero-width span at *pos*."""
        return cls(pos, pos)

    def extend(self, end: Position) -> Span:
        return Span(self.start, max(self.end, end))

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexer token.

    Which payload fields are meaningful depends on ``type``: tags carry
    ``prefix``, ``name``, ``depth`` and ``boxed``; attributes carry
    ``prefix``, ``name`` and ``value``; strings carry ``value``; comments
    carry ``lines``.
    """

    type: TokenType
    span: Span
    prefix: str = ""
    name: str = ""
    value: str = ""
    depth: int = 0
    boxed: bool = False
    lines: tuple[str, ...] = ()

    @classmethod
    def comment(cls, span: Span, lines: list[str]) -> Token:
        return cls(TokenType.COMMENT, span, lines=tuple(lines))

    @classmethod
    def tag_open(cls, span: Span, prefix: str, name: str, depth: int, boxed: bool) -> Token:
        return cls(TokenType.TAG_OPEN, span, prefix=prefix, name=name, depth=depth, boxed=boxed)

    @classmethod
    def tag_close(cls, span: Span, prefix: str, name: str, depth: int) -> Token:
        return cls(TokenType.TAG_CLOSE, span, prefix=prefix, name=name, depth=depth, boxed=True)

    @classmethod
    def attribute(cls, span: Span, prefix: str, name: str, value: str) -> Token:
        return cls(TokenType.ATTRIBUTE, span, prefix=prefix, name=name, value=value)

    @classmethod
    def characters(cls, span: Span, value: str, raw: bool = False) -> Token:
        tt = TokenType.RAW_CHARACTERS if raw else TokenType.CHARACTERS
        return cls(tt, span, value=value)

    @classmethod
    def whitespace(cls, span: Span) -> Token:
        return cls(TokenType.WHITESPACE, span)

    @classmethod
    def eof(cls, span: Span) -> Token:
        return cls(TokenType.EOF, span)

    @property
    def qualified_name(self) -> str:
        """``prefix:name`` as written, or just ``name`` without a prefix."""
        return f"{self.prefix}:{self.name}" if self.prefix else self.name


def utf8_length(ch: str) -> int:
    """Return the number of bytes *ch* occupies in UTF-8."""
    cp = ord(ch)
    if cp < 0x80:
        return 1
    if cp < 0x800:
        return 2
    if cp < 0x10000:
        return 3
    return 4


# XML NameStartChar ranges beyond ASCII letters and underscore
_NAME_START_RANGES = (
    (0xC0, 0xD6),
    (0xD8, 0xF6),
    (0xF8, 0x2FF),
    (0x370, 0x37D),
    (0x37F, 0x1FFF),
    (0x200C, 0x200D),
    (0x2070, 0x218F),
    (0x2C00, 0x2FEF),
    (0x3001, 0xD7FF),
    (0xF900, 0xFDCF),
    (0xFDF0, 0xFFFD),
    (0x10000, 0xEFFFF),
)

_NAME_EXTRA_RANGES = (
    (0x300, 0x36F),
    (0x203F, 0x2040),
)


def is_newline(ch: str) -> bool:
    return ch == "\n"


def is_hash(ch: str) -> bool:
    return ch == "#"


def is_quote(ch: str) -> bool:
    return ch == '"' or ch == "'"


def is_whitespace(ch: str) -> bool:
    return ch.isspace()


def is_name_start(ch: str) -> bool:
    """Return True if ch may start a tag or attribute name."""
    if not ch:
        return False
    if ch == "_" or ("A" <= ch <= "Z") or ("a" <= ch <= "z"):
        return True
    cp = ord(ch)
    return any(lo <= cp <= hi for lo, hi in _NAME_START_RANGES)


def is_name(ch: str) -> bool:
    """Return True if ch may continue a name."""
    if is_name_start(ch):
        return True
    if not ch:
        return False
    if ch in "-.·" or ("0" <= ch <= "9"):
        return True
    cp = ord(ch)
    return any(lo <= cp <= hi for lo, hi in _NAME_EXTRA_RANGES)
