"""HML parser: converts a token stream into markup events."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field

from hml.errors import (
    BeyondEndOfTokens,
    HmlError,
    MarkupError,
    MismatchedCloseTag,
    UnexpectedAttribute,
    UnexpectedCloseTag,
    UnexpectedTagIndent,
)
from hml.events import (
    Comment,
    Content,
    ContentType,
    EndDocument,
    EndElement,
    Event,
    StartDocument,
    StartElement,
)
from hml.lexer import Lexer
from hml.names import Attributes, Name, NamespacePool, NamespaceStack, Tag
from hml.source import CharSource
from hml.tokens import Position, Span, Token, TokenType

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _StackElement:
    """An element from its open tag until its EndElement.

    A namespace frame is pushed when the element is created; xmlns
    attributes declare into that frame before the tag name is resolved.
    """

    parent_depth: int
    open_tag: Token
    span: Span
    attributes: Attributes = field(default_factory=Attributes)
    name: Name = field(default_factory=Name)

    def add_attribute(self, ns_stack: NamespaceStack, token: Token) -> None:
        try:
            self.attributes.add(ns_stack, token.prefix, token.name, token.value)
        except MarkupError as exc:
            raise exc.with_span(token.span) from None
        self.span = self.span.extend(token.span.end)

    def start_element(self, ns_stack: NamespaceStack) -> StartElement:
        try:
            tag = Tag.build(ns_stack, self.open_tag.prefix, self.open_tag.name, self.attributes)
        except MarkupError as exc:
            raise exc.with_span(self.open_tag.span) from None
        self.name = tag.name
        return StartElement(self.span, tag)


class Parser:
    """Pull parser turning HML tokens into a balanced event stream.

    Each ``next_event`` call consumes tokens until one event can be
    returned. Indentation is tracked as ``tag_depth``: a tag with N hashes
    opens a child when N is one deeper than the current depth and closes
    open elements when it is not deeper. A boxed tag (``#name{``) resets
    the depth to zero for its contents until the matching ``#name}``.
    """

    def __init__(self, version: int = 100) -> None:
        self.version = version
        self._start_emitted = False
        self._end_emitted = False
        self._finished = False
        self._pending_eof = False
        self._tag_depth = 0
        self._stack: list[_StackElement] = []
        self._pending_open_tag: Token | None = None
        self._pending_close: tuple[Token, Name] | None = None
        self._pending_token: Token | None = None
        self._start_element_building = False
        self._token_pos = Position.zero()

    def set_version(self, version: int) -> Parser:
        self.version = version
        return self

    @property
    def tag_depth(self) -> int:
        return self._tag_depth

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_event(
        self, ns_stack: NamespaceStack, fetch_token: Callable[[], Token | None]
    ) -> Event:
        """Return the next event, fetching tokens as needed.

        *fetch_token* returns the next token, or None once input is
        exhausted (an EOF token is then synthesized).
        """
        while True:
            if not self._start_emitted:
                self._start_emitted = True
                return StartDocument(Span.at(self._token_pos), self.version)
            if self._finished:
                raise BeyondEndOfTokens()
            if self._end_emitted:
                self._finished = True
                return EndDocument(Span.at(self._token_pos))

            if self._pending_eof:
                event = self._handle_pending_eof(ns_stack)
            elif self._pending_close is not None:
                close, self._pending_close = self._pending_close, None
                event = self._handle_close_tag(ns_stack, *close)
            elif self._pending_open_tag is not None:
                open_tag, self._pending_open_tag = self._pending_open_tag, None
                event = self._handle_open_tag(ns_stack, open_tag)
            elif self._pending_token is not None:
                token, self._pending_token = self._pending_token, None
                event = self._handle_token(ns_stack, token)
            else:
                token = fetch_token()
                if token is None:
                    token = Token.eof(Span.at(self._token_pos))
                event = self._handle_token(ns_stack, token)

            if event is not None:
                return event

    def events(self, ns_stack: NamespaceStack, tokens: Iterable[Token]) -> Iterator[Event]:
        """Yield every event of the document, StartDocument to EndDocument."""
        it = iter(tokens)

        def fetch() -> Token | None:
            return next(it, None)

        while True:
            event = self.next_event(ns_stack, fetch)
            yield event
            if isinstance(event, EndDocument):
                return

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _pop_element(self, ns_stack: NamespaceStack, span: Span) -> EndElement:
        element = self._stack.pop()
        ns_stack.pop_frame()
        self._tag_depth = element.parent_depth
        logger.debug("close %s, depth now %d", element.open_tag.qualified_name, self._tag_depth)
        return EndElement(span, element.name)

    def _handle_pending_eof(self, ns_stack: NamespaceStack) -> Event | None:
        if self._stack:
            return self._pop_element(ns_stack, Span.at(self._token_pos))
        self._end_emitted = True
        return None

    def _handle_close_tag(self, ns_stack: NamespaceStack, close_tag: Token, name: Name) -> Event:
        """Close implicitly-closed children first, then the boxed element itself."""
        if not self._stack:
            raise UnexpectedCloseTag(close_tag.qualified_name, close_tag.span)
        if self._tag_depth > 0:
            self._pending_close = (close_tag, name)
            return self._pop_element(ns_stack, Span.at(close_tag.span.start))

        element = self._stack[-1]
        if not element.name.same_local(name):
            raise MismatchedCloseTag(
                element.open_tag.qualified_name, close_tag.qualified_name, close_tag.span
            )
        return self._pop_element(ns_stack, close_tag.span)

    def _handle_open_tag(self, ns_stack: NamespaceStack, open_tag: Token) -> Event | None:
        if open_tag.depth <= self._tag_depth:
            # Closes the previous sibling (and any of its open children)
            self._pending_open_tag = open_tag
            return self._pop_element(ns_stack, Span.at(open_tag.span.start))

        if open_tag.depth == self._tag_depth + 1:
            ns_stack.push_frame()
            self._stack.append(_StackElement(self._tag_depth, open_tag, open_tag.span))
            self._start_element_building = True
            self._tag_depth = 0 if open_tag.boxed else open_tag.depth
            logger.debug("open %s, depth now %d", open_tag.qualified_name, self._tag_depth)
            return None

        raise UnexpectedTagIndent(self._tag_depth + 1, open_tag.span)

    def _handle_token(self, ns_stack: NamespaceStack, token: Token) -> Event | None:
        if token.type is TokenType.WHITESPACE:
            return None

        if self._start_element_building and token.type is not TokenType.ATTRIBUTE:
            self._start_element_building = False
            self._pending_token = token
            return self._stack[-1].start_element(ns_stack)

        self._token_pos = token.span.end

        if token.type is TokenType.COMMENT:
            return Comment.from_lines(token.span, token.lines)

        if token.type is TokenType.TAG_OPEN:
            self._pending_open_tag = token
            return None

        if token.type is TokenType.TAG_CLOSE:
            try:
                name = Name.resolve(ns_stack, token.prefix, token.name)
            except MarkupError as exc:
                raise exc.with_span(token.span) from None
            self._pending_close = (token, name)
            return None

        if token.type is TokenType.ATTRIBUTE:
            if not self._start_element_building:
                raise UnexpectedAttribute(token.qualified_name, token.span)
            self._stack[-1].add_attribute(ns_stack, token)
            return None

        if token.type is TokenType.CHARACTERS:
            return Content(token.span, ContentType.INTERPRETABLE, token.value)

        if token.type is TokenType.RAW_CHARACTERS:
            return Content(token.span, ContentType.RAW, token.value)

        # EOF
        self._pending_eof = True
        return None


class HmlReader:
    """Lexer, parser and namespaces wired together over one source.

    Iterating the reader yields every event of the document. The
    namespace stack stays available for turning ids back into strings.
    """

    def __init__(
        self,
        source: CharSource,
        *,
        version: int = 100,
        xmlns: bool = True,
        declarations: dict[str, str] | None = None,
    ) -> None:
        self.source = source
        self.namespace_stack = NamespaceStack(NamespacePool(xmlns))
        for prefix, uri in (declarations or {}).items():
            self.namespace_stack.declare_ns(prefix, uri)
        self.lexer = Lexer(source)
        self.parser = Parser(version)

    @classmethod
    def from_string(cls, text: str, filename: str = "<string>", **kwargs) -> HmlReader:
        return cls(CharSource(text, filename), **kwargs)

    def next_event(self) -> Event:
        try:
            return self.parser.next_event(self.namespace_stack, self.lexer.next_token)
        except HmlError as exc:
            raise self._with_source(exc)

    def __iter__(self) -> Iterator[Event]:
        try:
            yield from self.parser.events(self.namespace_stack, self.lexer)
        except HmlError as exc:
            raise self._with_source(exc)

    def _with_source(self, exc: HmlError) -> HmlError:
        """Parser and name errors are raised without the document text."""
        if not exc.source:
            exc.source = self.source.text
        return exc


def read_events(text: str, filename: str = "<string>", **kwargs) -> list[Event]:
    """Convenience function: parse HML text and return the full event list."""
    return list(HmlReader.from_string(text, filename, **kwargs))
