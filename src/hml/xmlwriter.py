"""XML writer: serializes an HML event stream as an XML document."""

from __future__ import annotations

import io
from collections.abc import Iterable
from typing import TextIO

from hml.escape import ESCAPE_ATTR, ESCAPE_PCDATA, escape_text, unescape
from hml.events import (
    Comment,
    Content,
    ContentType,
    EndDocument,
    EndElement,
    Event,
    ProcessingInstruction,
    StartDocument,
    StartElement,
)
from hml.names import XML_NAMESPACE, XMLNS_NAMESPACE, Name, NamespaceStack


def format_version(version: int) -> str:
    """Render a version in hundredths as text, e.g. 100 -> '1.0', 105 -> '1.05'."""
    major, minor = divmod(version, 100)
    return f"{major}.{f'{minor:02d}'.rstrip('0') or '0'}"


class XmlWriter:
    """Write events to *out* as XML text.

    Elements without content are self-closed. With ``indent`` each
    element and comment starts on its own line, indented two spaces per
    level; content is written inline.

    Namespaces bound in the base frame of *ns_stack*, such as reader
    declarations, are declared on each top-level element. WHITESPACE
    content is never produced by the parser; when a caller supplies it
    the text is written unchanged.
    """

    def __init__(self, ns_stack: NamespaceStack, out: TextIO, indent: bool = True) -> None:
        self._ns = ns_stack
        self._out = out
        self._indent = indent
        self._level = 0
        self._tag_open = False  # start tag written without its closing '>'
        self._has_children: list[bool] = []
        self._at_line_start = True

    def write(self, event: Event) -> None:
        if isinstance(event, StartDocument):
            self._write(f'<?xml version="{format_version(event.version)}" encoding="utf-8"?>')
        elif isinstance(event, EndDocument):
            self._close_start_tag()
            self._write("\n")
        elif isinstance(event, StartElement):
            self._start_element(event)
        elif isinstance(event, EndElement):
            self._end_element(event)
        elif isinstance(event, Content):
            self._content(event)
        elif isinstance(event, Comment):
            self._open_child()
            self._write(f"<!--{_comment_text(event.text)}-->")
        elif isinstance(event, ProcessingInstruction):
            self._open_child()
            name = self._ns.name_str(event.name)
            data = f" {event.data}" if event.data else ""
            self._write(f"<?{name}{data}?>")

    # ------------------------------------------------------------------
    # Element helpers
    # ------------------------------------------------------------------

    def _qualified(self, name: Name) -> str:
        local = self._ns.name_str(name.name)
        if name.prefix.is_none():
            return local
        prefix = self._ns.prefix_str(name.prefix)
        # A default namespace declaration is carried as xmlns:xmlns
        if prefix == "xmlns" and local == "xmlns" and self._ns.uri_str(name.uri) == XMLNS_NAMESPACE:
            return "xmlns"
        return f"{prefix}:{local}"

    def _base_declarations(self) -> list[tuple[str, str]]:
        """xmlns attributes for the base frame, skipping the predefined bindings."""
        result = []
        for prefix_id, uri_id in self._ns.iter_base_mappings():
            prefix = self._ns.prefix_str(prefix_id)
            uri = self._ns.uri_str(uri_id)
            if not prefix:
                if uri:
                    result.append(("xmlns", uri))
            elif (prefix, uri) not in (("xml", XML_NAMESPACE), ("xmlns", XMLNS_NAMESPACE)):
                result.append((f"xmlns:{prefix}", uri))
        return result

    def _start_element(self, event: StartElement) -> None:
        self._open_child()
        attributes = [
            (self._qualified(attr.name), attr.value) for attr in event.tag.attributes
        ]
        if self._level == 0:
            declared = {name for name, _ in attributes}
            base = [(n, v) for n, v in self._base_declarations() if n not in declared]
            attributes = base + attributes
        parts = [f"<{self._qualified(event.tag.name)}"]
        for name, value in attributes:
            parts.append(f' {name}="{escape_text(value, ESCAPE_ATTR)}"')
        self._write("".join(parts))
        self._tag_open = True
        self._has_children.append(False)
        self._level += 1

    def _end_element(self, event: EndElement) -> None:
        self._level -= 1
        had_children = self._has_children.pop()
        if self._tag_open:
            self._tag_open = False
            self._write("/>")
            return
        if had_children:
            self._newline()
        self._write(f"</{self._qualified(event.name)}>")

    def _content(self, event: Content) -> None:
        self._close_start_tag()
        if event.kind is ContentType.RAW:
            # ']]>' cannot appear inside a CDATA section
            data = event.data.replace("]]>", "]]]]><![CDATA[>")
            self._write(f"<![CDATA[{data}]]>")
        elif event.kind is ContentType.INTERPRETABLE:
            self._write(escape_text(unescape(event.data), ESCAPE_PCDATA))
        else:
            self._write(event.data)

    def _open_child(self) -> None:
        """Start a node on its own line inside the current element."""
        self._close_start_tag()
        if self._has_children:
            self._has_children[-1] = True
        self._newline()

    def _close_start_tag(self) -> None:
        if self._tag_open:
            self._tag_open = False
            self._write(">")

    def _newline(self) -> None:
        if not self._indent:
            return
        if not self._at_line_start:
            self._write("\n")
        self._write("  " * self._level)

    def _write(self, text: str) -> None:
        if text:
            self._out.write(text)
            self._at_line_start = text.endswith("\n")


def _comment_text(text: str) -> str:
    """Make comment text legal in XML: no '--' and no trailing '-'."""
    while "--" in text:
        text = text.replace("--", "- -")
    if text.endswith("-"):
        text += " "
    return text


def render(events: Iterable[Event], ns_stack: NamespaceStack, indent: bool = True) -> str:
    """Render a complete event stream to an XML string."""
    out = io.StringIO()
    writer = XmlWriter(ns_stack, out, indent)
    for event in events:
        writer.write(event)
    return out.getvalue()
