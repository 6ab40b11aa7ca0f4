"""Escaping for XML output, entity replacement, and HML backslash escapes."""

from __future__ import annotations

# Bit flags selecting which characters ``escape`` replaces; '&' and '<'
# are always escaped
ESCAPE_QUOTE = 1
ESCAPE_APOS = 2
ESCAPE_GT = 4
ESCAPE_LF = 8
ESCAPE_CR = 16
ESCAPE_ATTR = ESCAPE_QUOTE | ESCAPE_APOS | ESCAPE_GT | ESCAPE_LF | ESCAPE_CR
ESCAPE_PCDATA = 0

_ALWAYS = {"&": "&amp;", "<": "&lt;"}
_OPTIONAL = (
    ('"', "&quot;", ESCAPE_QUOTE),
    ("'", "&apos;", ESCAPE_APOS),
    (">", "&gt;", ESCAPE_GT),
    ("\n", "&#xA;", ESCAPE_LF),
    ("\r", "&#xD;", ESCAPE_CR),
)


def _escape_table(char_set: int) -> dict[str, str]:
    table = dict(_ALWAYS)
    for ch, repl, flag in _OPTIONAL:
        if char_set & flag:
            table[ch] = repl
    return table


def escape(s: str, char_set: int = ESCAPE_PCDATA) -> str | None:
    """Return *s* with markup characters replaced, or None if nothing needed escaping."""
    table = _escape_table(char_set)
    if not any(ch in table for ch in s):
        return None
    return "".join(table.get(ch, ch) for ch in s)


def escape_text(s: str, char_set: int = ESCAPE_PCDATA) -> str:
    """Like ``escape`` but always returns a string."""
    escaped = escape(s, char_set)
    return s if escaped is None else escaped


# ---------------------------------------------------------------------------
# Entity references
# ---------------------------------------------------------------------------


class Entities:
    """A set of named entities and how to replace them."""

    def __init__(self, entities: dict[str, str] | None = None) -> None:
        self.map: dict[str, str] = dict(entities or {})

    @classmethod
    def xml(cls) -> Entities:
        """The five predefined XML entities, in lower and upper case."""
        base = {"amp": "&", "lt": "<", "gt": ">", "apos": "'", "quot": '"'}
        entities = dict(base)
        entities.update((k.upper(), v) for k, v in base.items())
        return cls(entities)

    def _char_ref(self, ref: str) -> str | None:
        """Resolve ``#NN`` or ``#xHH`` to a character, or None if malformed."""
        if len(ref) < 2 or ref[0] != "#":
            return None
        if ref[1] in "xX":
            digits = ref[2:]
            if not digits or not all(d in _HEX_DIGITS for d in digits):
                return None
            value = int(digits, 16)
        else:
            digits = ref[1:]
            if not all("0" <= d <= "9" for d in digits):
                return None
            value = int(digits, 10)
        if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
            return None
        return chr(value)

    def replace_entities(self, s: str, inc_map: bool = True) -> str | None:
        """Replace entity and character references, or return None if there are none.

        With ``inc_map`` false only character references (``&#..;``) are
        replaced, as for the contents of an entity declaration. Unknown or
        malformed references are copied through unchanged.
        """
        result: list[str] = []
        changed = False
        i = 0
        n = len(s)
        while i < n:
            amp = s.find("&", i)
            if amp < 0:
                result.append(s[i:])
                break
            result.append(s[i:amp])
            semi = s.find(";", amp + 1)
            if semi < 0:
                result.append(s[amp:])
                break
            ref = s[amp + 1 : semi]
            replacement = self.map.get(ref) if inc_map else None
            if replacement is None:
                replacement = self._char_ref(ref)
            if replacement is None:
                result.append(s[amp : semi + 1])
            else:
                result.append(replacement)
                changed = True
            i = semi + 1
        return "".join(result) if changed else None


# ---------------------------------------------------------------------------
# HML backslash escapes
# ---------------------------------------------------------------------------


class EscapeError(Exception):
    """Raised for a malformed backslash escape in HML content."""

    def __init__(self, message: str, text: str) -> None:
        self.message = message
        self.text = text
        super().__init__(f"{message} in {text!r}")


_SIMPLE_ESCAPES = {
    "0": "\0",
    "t": "\t",
    "r": "\r",
    "n": "\n",
    "'": "'",
    '"': '"',
    "\\": "\\",
}

_HEX_DIGITS = frozenset("0123456789abcdefABCDEF")


def unescape(s: str) -> str:
    """Resolve ``\\n``, ``\\xHH``, ``\\u{HHHH}`` and friends in interpretable content.

    ``\\x`` escapes are limited to 7-bit values; ``\\u{...}`` takes one to
    six hex digits naming a valid code point.
    """
    if "\\" not in s:
        return s
    result: list[str] = []
    i = 0
    n = len(s)
    while i < n:
        ch = s[i]
        if ch != "\\":
            result.append(ch)
            i += 1
            continue
        if i + 1 >= n:
            raise EscapeError("end of string in escape", s)
        esc = s[i + 1]
        if esc in _SIMPLE_ESCAPES:
            result.append(_SIMPLE_ESCAPES[esc])
            i += 2
        elif esc == "x":
            digits = s[i + 2 : i + 4]
            if len(digits) != 2 or not all(d in _HEX_DIGITS for d in digits):
                raise EscapeError("hex escape must be \\xHH", s)
            value = int(digits, 16)
            if value > 0x7F:
                raise EscapeError("hex escape must be in range 0-0x7f", s)
            result.append(chr(value))
            i += 4
        elif esc == "u":
            if i + 2 >= n or s[i + 2] != "{":
                raise EscapeError("\\u escape requires { to follow", s)
            close = s.find("}", i + 3)
            if close < 0:
                raise EscapeError("end of string in escape", s)
            digits = s[i + 3 : close]
            if not digits or not all(d in _HEX_DIGITS for d in digits):
                raise EscapeError("unicode escape requires hex digits", s)
            if len(digits) > 6:
                raise EscapeError("at most 6 hex digits", s)
            value = int(digits, 16)
            if value > 0x10FFFF or 0xD800 <= value <= 0xDFFF:
                raise EscapeError("invalid unicode value", s)
            result.append(chr(value))
            i = close + 1
        else:
            raise EscapeError(f"bad escape '\\{esc}'", s)
    return "".join(result)
