"""Error types with formatted source context."""

from __future__ import annotations

from enum import Enum, auto

from hml.tokens import Span


class HmlError(Exception):
    """Base class for all reader errors; carries a span when one is known."""

    def __init__(self, message: str, span: Span | None = None, source: str = "") -> None:
        self.message = message
        self.span = span
        self.source = source
        super().__init__(self._summary())

    def _summary(self) -> str:
        if self.span is None:
            return self.message
        return f"{self.span.start}: {self.message}"

    def format(self, filename: str = "input.hml", source: str | None = None) -> str:
        """Render the error with a context window around the offending span."""
        if source is None:
            source = self.source
        if self.span is None:
            return f"error: {self.message}\n --> {filename}"

        lines = source.split("\n")
        line_idx = self.span.start.line - 1
        col = self.span.start.column

        if 0 <= line_idx < len(lines):
            source_line = lines[line_idx].rstrip("\r")
        else:
            source_line = ""
        prev_line = lines[line_idx - 1].rstrip("\r") if 0 < line_idx <= len(lines) else None

        # Underline the full span when on one line, otherwise to end of line
        if self.span.end.line == self.span.start.line:
            underline_len = max(1, self.span.end.column - col)
        else:
            underline_len = max(1, len(source_line) - col + 1)

        pad = " " * (col - 1)
        carets = "^" * underline_len

        line_num = str(self.span.start.line)
        gutter_width = len(line_num) + 1

        blank_gutter = " " * gutter_width + "|"
        line_gutter = f"{line_num:>{gutter_width - 1}} |"

        parts = [
            f"error: {self.message}",
            f"{' ' * gutter_width}--> {filename}:{self.span.start.line}:{col}",
            blank_gutter,
        ]
        if prev_line is not None:
            prev_num = str(self.span.start.line - 1)
            parts.append(f"{prev_num:>{gutter_width - 1}} | {prev_line}".rstrip())
        parts.append(f"{line_gutter} {source_line}")
        parts.append(f"{blank_gutter} {pad}{carets}")
        parts.append(blank_gutter)
        return "\n".join(parts)


class HmlIOError(HmlError):
    """Reading the document failed."""


# ---------------------------------------------------------------------------
# Lexer errors
# ---------------------------------------------------------------------------


class LexError(HmlError):
    """Raised on the first lexing error."""


class UnexpectedCharacter(LexError):
    def __init__(self, ch: str, span: Span, source: str = "") -> None:
        self.ch = ch
        super().__init__(f"unexpected character {ch!r}", span, source)


class ExpectedTagName(LexError):
    def __init__(self, span: Span, source: str = "") -> None:
        super().__init__("expected a tag name after '#'", span, source)


class ExpectedWhitespaceAfterTag(LexError):
    def __init__(self, span: Span, source: str = "") -> None:
        super().__init__("expected whitespace after tag", span, source)


class UnexpectedNewlineInQuotedString(LexError):
    def __init__(self, span: Span, source: str = "") -> None:
        super().__init__("unexpected newline in quoted string", span, source)


class ExpectedEquals(LexError):
    def __init__(self, ch: str, span: Span, source: str = "") -> None:
        self.ch = ch
        super().__init__(f"expected '=' after attribute name, found {ch!r}", span, source)


class ExpectedAttributeValue(LexError):
    def __init__(self, span: Span, source: str = "") -> None:
        super().__init__("expected attribute value after '='", span, source)


class UnexpectedEOF(LexError):
    def __init__(self, span: Span, source: str = "") -> None:
        super().__init__("unexpected end of input", span, source)


# ---------------------------------------------------------------------------
# Parser errors
# ---------------------------------------------------------------------------


class ParseError(HmlError):
    """Raised on the first structural error in the token stream."""


class UnexpectedTagIndent(ParseError):
    def __init__(self, expected_depth: int, span: Span) -> None:
        self.expected_depth = expected_depth
        super().__init__(f"expected a tag indent of at most {expected_depth}", span)


class UnexpectedAttribute(ParseError):
    def __init__(self, name: str, span: Span) -> None:
        self.name = name
        super().__init__(f"attribute '{name}' is not part of a tag", span)


class UnexpectedCloseTag(ParseError):
    def __init__(self, name: str, span: Span) -> None:
        self.name = name
        super().__init__(f"close tag '{name}' has no open element", span)


class MismatchedCloseTag(ParseError):
    def __init__(self, expected: str, found: str, span: Span) -> None:
        self.expected = expected
        self.found = found
        super().__init__(f"close tag '{found}' does not match open element '{expected}'", span)


class BeyondEndOfTokens(ParseError):
    def __init__(self) -> None:
        super().__init__("no more events after end of document")


# ---------------------------------------------------------------------------
# Name resolution errors
# ---------------------------------------------------------------------------


class MarkupErrorKind(Enum):
    EMPTY_NAME = auto()
    UNMAPPED_PREFIX = auto()
    BAD_NAME = auto()


_MARKUP_MESSAGES = {
    MarkupErrorKind.EMPTY_NAME: "empty name",
    MarkupErrorKind.UNMAPPED_PREFIX: "unmapped prefix '{}'",
    MarkupErrorKind.BAD_NAME: "bad name '{}'",
}


class MarkupError(HmlError):
    """A name could not be built or resolved against the namespace stack."""

    def __init__(
        self,
        kind: MarkupErrorKind,
        detail: str = "",
        span: Span | None = None,
        source: str = "",
    ) -> None:
        self.kind = kind
        self.detail = detail
        super().__init__(_MARKUP_MESSAGES[kind].format(detail), span, source)

    def with_span(self, span: Span) -> MarkupError:
        return MarkupError(self.kind, self.detail, span, self.source)
