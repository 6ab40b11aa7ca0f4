"""Character source with lookahead and position tracking."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from hml.errors import HmlIOError
from hml.tokens import Position


class CharSource:
    """Unicode text read one code point at a time.

    ``peek`` looks ahead without consuming; ``advance`` consumes one
    character and moves ``position`` past it. Both return ``""`` at the
    end of the text.
    """

    def __init__(self, text: str, filename: str = "<string>") -> None:
        self.text = text
        self.filename = filename
        self._index = 0
        self.position = Position.zero()

    @classmethod
    def from_path(cls, path: str | Path) -> CharSource:
        try:
            text = Path(path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise HmlIOError(f"cannot read {path}: {exc}") from exc
        return cls(text, str(path))

    @classmethod
    def from_stream(cls, stream: TextIO | None = None, filename: str = "<stdin>") -> CharSource:
        if stream is None:
            stream = sys.stdin
        try:
            text = stream.read()
        except (OSError, UnicodeDecodeError) as exc:
            raise HmlIOError(f"cannot read {filename}: {exc}") from exc
        return cls(text, filename)

    def peek(self, offset: int = 0) -> str:
        idx = self._index + offset
        if idx < len(self.text):
            return self.text[idx]
        return ""

    def advance(self) -> str:
        if self._index >= len(self.text):
            return ""
        ch = self.text[self._index]
        self._index += 1
        self.position = self.position.advance(ch)
        return ch

    def at_eof(self) -> bool:
        return self._index >= len(self.text)

    def line_text(self, line: int) -> str:
        """Return source line *line* (1-based) without its newline."""
        lines = self.text.split("\n")
        if 1 <= line <= len(lines):
            return lines[line - 1]
        return ""
