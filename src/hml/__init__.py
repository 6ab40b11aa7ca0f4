"""HML reader: a hash-indented markup language parsed into XML-style events."""

from __future__ import annotations

__version__ = "0.1.0"


def convert(
    source: str,
    filename: str = "input.hml",
    version: int = 100,
    xmlns: bool = True,
    indent: bool = True,
) -> str:
    """Parse HML source and render it as XML."""
    from hml.parser import HmlReader
    from hml.xmlwriter import render

    reader = HmlReader.from_string(source, filename, version=version, xmlns=xmlns)
    events = list(reader)
    return render(events, reader.namespace_stack, indent=indent)
