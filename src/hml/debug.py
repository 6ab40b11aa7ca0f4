"""--debug event dump to stderr."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from typing import TextIO

from hml.events import (
    Comment,
    Content,
    EndDocument,
    EndElement,
    Event,
    ProcessingInstruction,
    StartDocument,
    StartElement,
)
from hml.names import NamespaceStack


def dump_events(events: Iterable[Event], ns_stack: NamespaceStack, *, file: TextIO = sys.stderr) -> None:
    """Print one line per event to *file*, indented by element nesting."""
    depth = 0
    for event in events:
        if isinstance(event, (EndElement, EndDocument)):
            depth = max(depth - 1, 0)
        file.write(f"{_indent(depth)}{_describe(event, ns_stack)}  @{event.span.start}\n")
        if isinstance(event, (StartElement, StartDocument)):
            depth += 1


def _indent(depth: int) -> str:
    return "  " * depth


def _describe(event: Event, ns: NamespaceStack) -> str:
    if isinstance(event, StartDocument):
        return f"StartDocument version={event.version}"
    if isinstance(event, EndDocument):
        return "EndDocument"
    if isinstance(event, StartElement):
        parts = [f"StartElement {event.name.to_string(ns)}"]
        for attr in event.tag.attributes:
            parts.append(f"{attr.name.to_string(ns)}={attr.value!r}")
        return " ".join(parts)
    if isinstance(event, EndElement):
        return f"EndElement {event.name.to_string(ns)}"
    if isinstance(event, Content):
        return f"Content {event.kind.name} {event.data!r}"
    if isinstance(event, Comment):
        return f"Comment {event.text!r}"
    if isinstance(event, ProcessingInstruction):
        return f"ProcessingInstruction {ns.name_str(event.name)} {event.data!r}"
    return repr(event)
