"""Namespace pool, namespace stack, and resolved markup names."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field

from hml.errors import MarkupError, MarkupErrorKind

logger = logging.getLogger(__name__)

XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
XMLNS_NAMESPACE = "http://www.w3.org/2000/xmlns/"


# ---------------------------------------------------------------------------
# Ids
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class _Id:
    """Index into one of the pool's string tables; index 0 means none."""

    index: int = 0

    def is_none(self) -> bool:
        return self.index == 0

    def __bool__(self) -> bool:
        return self.index != 0


class PrefixId(_Id):
    pass


class UriId(_Id):
    pass


class NameId(_Id):
    pass


# ---------------------------------------------------------------------------
# Pool
# ---------------------------------------------------------------------------


class NamespacePool:
    """Interned prefixes, URIs and local names, plus known prefix mappings.

    The pool lives for a whole parse and only ever grows; tokens, events
    and names refer to its strings by id.
    """

    def __init__(self, xmlns: bool = True) -> None:
        self.xmlns = xmlns
        self._prefixes: list[str] = [""]
        self._uris: list[str] = [""]
        self._names: list[str] = [""]
        self._prefix_index: dict[str, int] = {}
        self._uri_index: dict[str, int] = {}
        self._name_index: dict[str, int] = {}
        self.mappings: set[tuple[PrefixId, UriId]] = set()

    @staticmethod
    def _intern(s: str, table: list[str], index: dict[str, int]) -> int:
        if not s:
            return 0
        i = index.get(s)
        if i is None:
            i = len(table)
            table.append(s)
            index[s] = i
        return i

    def intern_prefix(self, prefix: str) -> PrefixId:
        return PrefixId(self._intern(prefix, self._prefixes, self._prefix_index))

    def intern_uri(self, uri: str) -> UriId:
        return UriId(self._intern(uri, self._uris, self._uri_index))

    def intern_name(self, name: str) -> NameId:
        return NameId(self._intern(name, self._names, self._name_index))

    def find_prefix(self, prefix: str) -> PrefixId | None:
        """Look up a prefix without interning it."""
        if not prefix:
            return PrefixId()
        i = self._prefix_index.get(prefix)
        return None if i is None else PrefixId(i)

    def record_mapping(self, prefix_id: PrefixId, uri_id: UriId) -> None:
        self.mappings.add((prefix_id, uri_id))

    def prefix_str(self, prefix_id: PrefixId) -> str:
        return self._prefixes[prefix_id.index]

    def uri_str(self, uri_id: UriId) -> str:
        return self._uris[uri_id.index]

    def name_str(self, name_id: NameId) -> str:
        return self._names[name_id.index]


# ---------------------------------------------------------------------------
# Stack
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class _Frame:
    mappings: dict[PrefixId, UriId] = field(default_factory=dict)
    order: list[PrefixId] = field(default_factory=list)

    def declare(self, prefix_id: PrefixId, uri_id: UriId) -> None:
        if prefix_id not in self.mappings:
            self.order.append(prefix_id)
        self.mappings[prefix_id] = uri_id


class NamespaceStack:
    """Frames of prefix to URI mappings over a shared pool.

    The base frame always maps the empty prefix to no namespace; in XML
    mode it also binds ``xml`` and ``xmlns`` to their reserved URIs.
    """

    def __init__(self, pool: NamespacePool | None = None) -> None:
        self.pool = pool if pool is not None else NamespacePool()
        self._frames: list[_Frame] = [_Frame()]
        self.declare_ns("", "")
        if self.pool.xmlns:
            self.declare_ns("xml", XML_NAMESPACE)
            self.declare_ns("xmlns", XMLNS_NAMESPACE)

    @property
    def uses_xmlns(self) -> bool:
        return self.pool.xmlns

    @property
    def depth(self) -> int:
        """Number of frames, including the base frame."""
        return len(self._frames)

    def push_frame(self) -> None:
        self._frames.append(_Frame())

    def pop_frame(self) -> None:
        if len(self._frames) <= 1:
            raise RuntimeError("namespace stack popped beyond its base frame")
        self._frames.pop()

    def declare(self, prefix_id: PrefixId, uri_id: UriId) -> None:
        """Bind a prefix in the top frame, replacing any binding there."""
        self.pool.record_mapping(prefix_id, uri_id)
        self._frames[-1].declare(prefix_id, uri_id)

    def declare_if_unset(self, prefix_id: PrefixId, uri_id: UriId) -> bool:
        if prefix_id in self._frames[-1].mappings:
            return False
        self.declare(prefix_id, uri_id)
        return True

    def declare_ns(self, prefix: str, uri: str) -> tuple[PrefixId, UriId]:
        """Intern a prefix and URI and bind them in the top frame."""
        prefix_id = self.pool.intern_prefix(prefix)
        uri_id = self.pool.intern_uri(uri)
        self.declare(prefix_id, uri_id)
        logger.debug("frame %d: %r -> %r", self.depth, prefix, uri)
        return prefix_id, uri_id

    def lookup(self, prefix_id: PrefixId) -> UriId | None:
        for frame in reversed(self._frames):
            uri_id = frame.mappings.get(prefix_id)
            if uri_id is not None:
                return uri_id
        return None

    def __iter__(self) -> Iterator[tuple[PrefixId, UriId]]:
        """Yield the effective mappings, innermost binding of each prefix only."""
        seen: set[PrefixId] = set()
        for frame in reversed(self._frames):
            for prefix_id in frame.order:
                if prefix_id not in seen:
                    seen.add(prefix_id)
                    yield prefix_id, frame.mappings[prefix_id]

    def iter_top_mappings(self) -> Iterator[tuple[PrefixId, UriId]]:
        """Yield the mappings declared in the top frame, in declaration order."""
        frame = self._frames[-1]
        for prefix_id in frame.order:
            yield prefix_id, frame.mappings[prefix_id]

    def iter_base_mappings(self) -> Iterator[tuple[PrefixId, UriId]]:
        """Yield the mappings of the base frame, in declaration order."""
        frame = self._frames[0]
        for prefix_id in frame.order:
            yield prefix_id, frame.mappings[prefix_id]

    def find_prefix(self, prefix: str) -> PrefixId | None:
        return self.pool.find_prefix(prefix)

    def prefix_str(self, prefix_id: PrefixId) -> str:
        return self.pool.prefix_str(prefix_id)

    def uri_str(self, uri_id: UriId) -> str:
        return self.pool.uri_str(uri_id)

    def name_str(self, name_id: NameId) -> str:
        return self.pool.name_str(name_id)


# ---------------------------------------------------------------------------
# Names, attributes, tags
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Name:
    """A prefix, the URI it resolved to when the name was built, and a local name."""

    prefix: PrefixId = PrefixId()
    uri: UriId = UriId()
    name: NameId = NameId()

    @classmethod
    def resolve(cls, ns_stack: NamespaceStack, prefix: str, name: str) -> Name:
        """Build a name, resolving *prefix* in the current stack."""
        if not name:
            raise MarkupError(MarkupErrorKind.EMPTY_NAME)
        prefix_id = ns_stack.find_prefix(prefix)
        if prefix_id is None:
            raise MarkupError(MarkupErrorKind.UNMAPPED_PREFIX, prefix)
        uri_id = ns_stack.lookup(prefix_id)
        if uri_id is None:
            raise MarkupError(MarkupErrorKind.UNMAPPED_PREFIX, prefix)
        return cls(prefix_id, uri_id, ns_stack.pool.intern_name(name))

    @classmethod
    def local(cls, ns_stack: NamespaceStack, name: str) -> Name:
        """Build a name with no prefix and no namespace."""
        if not name:
            raise MarkupError(MarkupErrorKind.EMPTY_NAME)
        return cls(PrefixId(), UriId(), ns_stack.pool.intern_name(name))

    @classmethod
    def parse(cls, ns_stack: NamespaceStack, s: str) -> Name:
        """Build a name from ``prefix:name`` or ``name``."""
        parts = s.split(":")
        if len(parts) == 2:
            return cls.resolve(ns_stack, parts[0], parts[1])
        if len(parts) == 1:
            return cls.local(ns_stack, s)
        raise MarkupError(MarkupErrorKind.BAD_NAME, s)

    def to_string(self, ns_stack: NamespaceStack) -> str:
        if self.prefix.is_none():
            return ns_stack.name_str(self.name)
        return f"{ns_stack.prefix_str(self.prefix)}:{ns_stack.name_str(self.name)}"

    def same_local(self, other: Name) -> bool:
        """True when prefix and local name match, whatever they resolved to."""
        return self.prefix == other.prefix and self.name == other.name


@dataclass(frozen=True, slots=True)
class Attribute:
    name: Name
    value: str

    @classmethod
    def build(cls, ns_stack: NamespaceStack, prefix: str, name: str, value: str) -> Attribute:
        """Resolve an attribute, declaring namespaces for ``xmlns`` attributes.

        Declarations go into the top frame, which belongs to the element
        under construction, so they apply to the element's own tag name and
        to any attributes that follow.
        """
        if ns_stack.uses_xmlns:
            if not prefix and name == "xmlns":
                ns_stack.declare_ns("", value)
                return cls(Name.resolve(ns_stack, "xmlns", "xmlns"), value)
            if prefix == "xmlns":
                ns_stack.declare_ns(name, value)
        return cls(Name.resolve(ns_stack, prefix, name), value)


class Attributes:
    """Attributes in source order; duplicates are kept."""

    def __init__(self) -> None:
        self._attributes: list[Attribute] = []

    def add(self, ns_stack: NamespaceStack, prefix: str, name: str, value: str) -> None:
        self._attributes.append(Attribute.build(ns_stack, prefix, name, value))

    def __iter__(self) -> Iterator[Attribute]:
        return iter(self._attributes)

    def __len__(self) -> int:
        return len(self._attributes)

    def __getitem__(self, index: int) -> Attribute:
        return self._attributes[index]

    def __repr__(self) -> str:
        return f"Attributes({self._attributes!r})"


@dataclass(frozen=True, slots=True)
class Tag:
    """An element name and its attributes."""

    name: Name
    attributes: Attributes

    @classmethod
    def build(
        cls, ns_stack: NamespaceStack, prefix: str, name: str, attributes: Attributes
    ) -> Tag:
        return cls(Name.resolve(ns_stack, prefix, name), attributes)
