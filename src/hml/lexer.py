"""HML lexer: converts a character source into a lazy token stream."""

from __future__ import annotations

from collections.abc import Iterator

from hml.errors import (
    ExpectedAttributeValue,
    ExpectedEquals,
    ExpectedTagName,
    ExpectedWhitespaceAfterTag,
    LexError,
    UnexpectedCharacter,
    UnexpectedEOF,
    UnexpectedNewlineInQuotedString,
)
from hml.source import CharSource
from hml.tokens import (
    Position,
    Span,
    Token,
    TokenType,
    is_hash,
    is_name,
    is_name_start,
    is_newline,
    is_quote,
    is_whitespace,
)


class Lexer:
    """Tokenize HML from a CharSource, one token per ``next_token`` call.

    Whitespace between tokens is skipped unless ``emit_whitespace`` is set,
    in which case each run becomes a WHITESPACE token. Once the source is
    exhausted the same EOF token is returned on every call.
    """

    def __init__(self, source: CharSource, emit_whitespace: bool = False) -> None:
        self._source = source
        self._emit_whitespace = emit_whitespace
        self._token_start = Position.zero()
        self._eof: Token | None = None

    def __iter__(self) -> Iterator[Token]:
        """Yield tokens up to and including EOF."""
        while True:
            tok = self.next_token()
            yield tok
            if tok.type is TokenType.EOF:
                return

    def next_token(self) -> Token:
        if self._eof is not None:
            return self._eof

        if is_whitespace(self._peek()):
            start = self._pos()
            self._skip_whitespace()
            if self._emit_whitespace:
                return Token.whitespace(Span(start, self._pos()))

        self._token_start = self._pos()
        ch = self._peek()

        if not ch:
            self._eof = Token.eof(Span.at(self._token_start))
            return self._eof

        if ch == ";":
            return self._lex_comment()

        if is_hash(ch):
            return self._lex_hash()

        if is_quote(ch):
            self._advance()
            value = self._read_quoted_string(ch, 0)
            return Token.characters(self._span(), value)

        if ch == "r":
            nxt = self._peek(1)
            if is_hash(nxt) or is_quote(nxt):
                return self._lex_raw_string()

        if is_name_start(ch):
            return self._lex_attribute()

        raise self._unexpected(ch)

    # ------------------------------------------------------------------
    # Position helpers
    # ------------------------------------------------------------------

    def _pos(self) -> Position:
        return self._source.position

    def _peek(self, offset: int = 0) -> str:
        return self._source.peek(offset)

    def _advance(self) -> str:
        return self._source.advance()

    def _span(self) -> Span:
        return Span(self._token_start, self._pos())

    def _error_span(self) -> Span:
        """Span from the token start to one character past the cursor."""
        end = self._pos()
        ch = self._peek()
        if ch:
            end = end.advance(ch)
        return Span(self._token_start, end)

    def _unexpected(self, ch: str) -> LexError:
        return UnexpectedCharacter(ch, self._error_span(), self._source.text)

    def _unexpected_eof(self) -> LexError:
        return UnexpectedEOF(self._span(), self._source.text)

    def _skip_whitespace(self) -> None:
        while is_whitespace(self._peek()):
            self._advance()

    def _count_hashes(self) -> int:
        count = 0
        while is_hash(self._peek()):
            self._advance()
            count += 1
        return count

    # ------------------------------------------------------------------
    # Comments
    # ------------------------------------------------------------------

    def _lex_comment(self) -> Token:
        lines: list[str] = []
        end = self._pos()
        while True:
            self._advance()  # consume ';'
            chars = []
            while self._peek() and not is_newline(self._peek()):
                chars.append(self._advance())
            lines.append("".join(chars))
            end = self._pos()

            # A following line continues the comment if its first
            # non-blank character is ';'
            if not is_newline(self._peek()):
                break
            offset = 1
            while self._peek(offset) in (" ", "\t", "\r"):
                offset += 1
            if self._peek(offset) != ";":
                break
            for _ in range(offset):
                self._advance()
        return Token.comment(Span(self._token_start, end), lines)

    # ------------------------------------------------------------------
    # Names
    # ------------------------------------------------------------------

    def _read_name(self) -> str | None:
        if not is_name_start(self._peek()):
            return None
        chars = [self._advance()]
        while is_name(self._peek()):
            chars.append(self._advance())
        return "".join(chars)

    def _read_namespace_name(self) -> tuple[str, str] | None:
        """Read ``name`` or ``prefix:name``; returns (prefix, name)."""
        name = self._read_name()
        if name is None:
            return None
        if self._peek() != ":":
            return "", name
        self._advance()
        name2 = self._read_name()
        if name2 is None:
            return None
        return name, name2

    # ------------------------------------------------------------------
    # Tags and hash-padded strings
    # ------------------------------------------------------------------

    def _lex_hash(self) -> Token:
        hash_count = self._count_hashes()
        ch = self._peek()

        if is_quote(ch):
            self._advance()
            value = self._read_quoted_string(ch, hash_count)
            return Token.characters(self._span(), value)

        names = self._read_namespace_name()
        if names is None:
            raise ExpectedTagName(self._error_span(), self._source.text)
        prefix, name = names

        ch = self._peek()
        if ch == "{":
            self._advance()
            tok = Token.tag_open(self._span(), prefix, name, hash_count, True)
        elif ch == "}":
            self._advance()
            tok = Token.tag_close(self._span(), prefix, name, hash_count)
        else:
            tok = Token.tag_open(self._span(), prefix, name, hash_count, False)

        ch = self._peek()
        if ch and not is_whitespace(ch):
            raise ExpectedWhitespaceAfterTag(self._error_span(), self._source.text)
        return tok

    def _lex_raw_string(self) -> Token:
        self._advance()  # consume 'r'
        hash_count = self._count_hashes()
        ch = self._peek()
        if not ch:
            raise self._unexpected_eof()
        if not is_quote(ch):
            raise self._unexpected(ch)
        self._advance()
        value = self._read_quoted_string(ch, hash_count)
        return Token.characters(self._span(), value, raw=True)

    def _read_quoted_string(self, quote: str, hash_count: int) -> str:
        """Read up to the closing quote; the opening quote is already consumed.

        With no hashes the string must close on the same line. Otherwise it
        ends at the first quote followed by ``hash_count`` hashes; a quote
        followed by fewer hashes is part of the contents.
        """
        chars: list[str] = []
        while True:
            ch = self._peek()
            if not ch:
                raise self._unexpected_eof()
            if is_newline(ch) and hash_count == 0:
                raise UnexpectedNewlineInQuotedString(self._error_span(), self._source.text)
            self._advance()
            if ch != quote:
                chars.append(ch)
                continue
            run = 0
            while run < hash_count and is_hash(self._peek()):
                self._advance()
                run += 1
            if run == hash_count:
                return "".join(chars)
            chars.append(quote)
            chars.append("#" * run)

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def _lex_attribute(self) -> Token:
        names = self._read_namespace_name()
        if names is None:
            ch = self._peek()
            if not ch:
                raise self._unexpected_eof()
            raise self._unexpected(ch)
        prefix, name = names

        ch = self._peek()
        if not ch:
            raise self._unexpected_eof()
        if ch != "=":
            raise ExpectedEquals(ch, self._error_span(), self._source.text)
        self._advance()

        value = self._read_value()
        return Token.attribute(self._span(), prefix, name, value)

    def _read_value(self) -> str:
        ch = self._peek()
        if not ch:
            raise self._unexpected_eof()
        if is_quote(ch):
            self._advance()
            return self._read_quoted_string(ch, 0)

        # '#'-padded quoted value
        offset = 0
        while is_hash(self._peek(offset)):
            offset += 1
        if offset and is_quote(self._peek(offset)):
            hash_count = self._count_hashes()
            quote = self._advance()
            return self._read_quoted_string(quote, hash_count)

        if is_whitespace(ch):
            raise ExpectedAttributeValue(self._error_span(), self._source.text)
        chars = []
        while self._peek() and not is_whitespace(self._peek()):
            chars.append(self._advance())
        return "".join(chars)


def tokenize(text: str, filename: str = "<string>", emit_whitespace: bool = False) -> list[Token]:
    """Convenience function: tokenize text and return the tokens, ending with EOF."""
    return list(Lexer(CharSource(text, filename), emit_whitespace))
