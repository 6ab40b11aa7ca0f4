"""Markup event types produced by the HML parser."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from hml.names import Name, NameId, Tag
from hml.tokens import Span


class ContentType(Enum):
    RAW = auto()  # no escape interpretation (XML CDATA)
    INTERPRETABLE = auto()  # escapes to be resolved by the consumer
    WHITESPACE = auto()  # only space, tab and newline


class EventType(Enum):
    START_DOCUMENT = auto()
    END_DOCUMENT = auto()
    START_ELEMENT = auto()
    END_ELEMENT = auto()
    CONTENT = auto()
    PROCESSING_INSTRUCTION = auto()
    COMMENT = auto()


@dataclass(frozen=True, slots=True)
class StartDocument:
    """First event of every document; version 100 means 1.00."""

    span: Span
    version: int = 100
    type = EventType.START_DOCUMENT


@dataclass(frozen=True, slots=True)
class EndDocument:
    span: Span
    type = EventType.END_DOCUMENT


@dataclass(frozen=True, slots=True)
class StartElement:
    span: Span
    tag: Tag
    type = EventType.START_ELEMENT

    @property
    def name(self) -> Name:
        return self.tag.name


@dataclass(frozen=True, slots=True)
class EndElement:
    """Closes the element whose StartElement carried the same name."""

    span: Span
    name: Name
    type = EventType.END_ELEMENT


@dataclass(frozen=True, slots=True)
class Content:
    span: Span
    kind: ContentType
    data: str
    type = EventType.CONTENT


@dataclass(frozen=True, slots=True)
class Comment:
    """Comment text joined with newlines, with the length of each line."""

    span: Span
    text: str
    line_lengths: tuple[int, ...]
    type = EventType.COMMENT

    @classmethod
    def from_lines(cls, span: Span, lines: tuple[str, ...] | list[str]) -> Comment:
        return cls(span, "\n".join(lines), tuple(len(line) for line in lines))

    @property
    def lines(self) -> list[str]:
        result = []
        pos = 0
        for length in self.line_lengths:
            result.append(self.text[pos : pos + length])
            pos += length + 1
        return result


@dataclass(frozen=True, slots=True)
class ProcessingInstruction:
    span: Span
    name: NameId
    data: str | None = None
    type = EventType.PROCESSING_INSTRUCTION


Event = (
    StartDocument
    | EndDocument
    | StartElement
    | EndElement
    | Content
    | Comment
    | ProcessingInstruction
)
