"""Shared test fixtures and helpers."""

from __future__ import annotations

import pytest

from hml.events import (
    Comment,
    Content,
    EndDocument,
    EndElement,
    Event,
    StartDocument,
    StartElement,
)
from hml.lexer import tokenize
from hml.names import NamespaceStack
from hml.parser import HmlReader
from hml.tokens import Token, TokenType


@pytest.fixture
def lex():
    """Return a helper that tokenizes source and returns tokens (excluding EOF)."""

    def _lex(source: str, emit_whitespace: bool = False) -> list[Token]:
        tokens = tokenize(source, emit_whitespace=emit_whitespace)
        # Strip trailing EOF for convenience
        return [t for t in tokens if t.type != TokenType.EOF]

    return _lex


@pytest.fixture
def events():
    """Return a helper that parses source and returns (events, namespace stack)."""

    def _events(source: str, **kwargs) -> tuple[list[Event], NamespaceStack]:
        reader = HmlReader.from_string(source, "test.hml", **kwargs)
        return list(reader), reader.namespace_stack

    return _events


@pytest.fixture
def outline(events):
    """Return a helper that parses source and describes each event as a tuple."""

    def _outline(source: str, **kwargs) -> list[tuple]:
        evs, ns = events(source, **kwargs)
        return [describe(ev, ns) for ev in evs]

    return _outline


def describe(event: Event, ns: NamespaceStack) -> tuple:
    """Reduce an event to plain strings so expectations can be written inline.

    Start elements become ``("StE", uri, name, [(uri, name, value), ...])``.
    """
    if isinstance(event, StartDocument):
        return ("StD", event.version)
    if isinstance(event, EndDocument):
        return ("EndD",)
    if isinstance(event, StartElement):
        attrs = [
            (ns.uri_str(a.name.uri), ns.name_str(a.name.name), a.value)
            for a in event.tag.attributes
        ]
        return ("StE", ns.uri_str(event.name.uri), ns.name_str(event.name.name), attrs)
    if isinstance(event, EndElement):
        return ("EndE",)
    if isinstance(event, Content):
        return ("Content", event.kind, event.data)
    if isinstance(event, Comment):
        return ("Comment", event.text)
    raise TypeError(f"unexpected event {event!r}")


def assert_types(tokens: list[Token], expected: list[TokenType]) -> None:
    """Assert that the token types match the expected list."""
    actual = [t.type for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def assert_values(tokens: list[Token], expected: list[str]) -> None:
    """Assert that the token values match the expected list."""
    actual = [t.value for t in tokens]
    assert actual == expected, f"Expected {expected}, got {actual}"


def find_tokens(tokens: list[Token], tt: TokenType) -> list[Token]:
    """Return all tokens of the given type."""
    return [t for t in tokens if t.type == tt]
