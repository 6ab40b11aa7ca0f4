"""Test the namespace pool, namespace stack, and name resolution."""

import pytest

from hml.errors import MarkupError, MarkupErrorKind
from hml.names import (
    XML_NAMESPACE,
    XMLNS_NAMESPACE,
    Attribute,
    Name,
    NameId,
    NamespacePool,
    NamespaceStack,
    PrefixId,
    UriId,
)


@pytest.fixture
def ns():
    return NamespaceStack(NamespacePool())


class TestPool:
    def test_empty_string_is_none(self):
        pool = NamespacePool()
        assert pool.intern_prefix("") == PrefixId()
        assert pool.intern_uri("").is_none()
        assert not pool.intern_name("")

    def test_interning_is_stable(self):
        pool = NamespacePool()
        a = pool.intern_name("svg")
        b = pool.intern_name("line")
        assert pool.intern_name("svg") == a
        assert a != b
        assert pool.name_str(a) == "svg"

    def test_find_prefix_does_not_intern(self):
        pool = NamespacePool()
        assert pool.find_prefix("svg") is None
        pid = pool.intern_prefix("svg")
        assert pool.find_prefix("svg") == pid

    def test_id_kinds_are_distinct(self):
        assert PrefixId(1) != UriId(1)
        assert UriId(1) != NameId(1)


class TestStack:
    def test_defaults_xmlns(self, ns):
        mappings = {ns.prefix_str(p): ns.uri_str(u) for p, u in ns}
        assert mappings == {"": "", "xml": XML_NAMESPACE, "xmlns": XMLNS_NAMESPACE}

    def test_defaults_without_xmlns(self):
        ns = NamespaceStack(NamespacePool(xmlns=False))
        assert [(ns.prefix_str(p), ns.uri_str(u)) for p, u in ns] == [("", "")]
        assert not ns.uses_xmlns

    def test_inner_frame_shadows(self, ns):
        ns.push_frame()
        pid, uri = ns.declare_ns("", "https://fred")
        assert ns.lookup(pid) == uri
        ns.pop_frame()
        assert ns.uri_str(ns.lookup(pid)) == ""

    def test_iteration_yields_innermost_only(self, ns):
        ns.declare_ns("a", "one")
        ns.push_frame()
        ns.declare_ns("a", "two")
        found = [(ns.prefix_str(p), ns.uri_str(u)) for p, u in ns if ns.prefix_str(p) == "a"]
        assert found == [("a", "two")]

    def test_base_mappings_ignore_inner_frames(self, ns):
        ns.declare_ns("a", "1")
        ns.push_frame()
        ns.declare_ns("b", "2")
        found = [(ns.prefix_str(p), ns.uri_str(u)) for p, u in ns.iter_base_mappings()]
        assert found[-1] == ("a", "1")
        assert ("b", "2") not in found

    def test_top_mappings_in_order(self, ns):
        ns.push_frame()
        ns.declare_ns("b", "2")
        ns.declare_ns("a", "1")
        assert [ns.prefix_str(p) for p, _ in ns.iter_top_mappings()] == ["b", "a"]

    def test_declare_if_unset(self, ns):
        ns.push_frame()
        pid = ns.pool.intern_prefix("p")
        assert ns.declare_if_unset(pid, ns.pool.intern_uri("first"))
        assert not ns.declare_if_unset(pid, ns.pool.intern_uri("second"))
        assert ns.uri_str(ns.lookup(pid)) == "first"

    def test_mappings_recorded_in_pool(self, ns):
        pid, uid = ns.declare_ns("p", "u")
        assert (pid, uid) in ns.pool.mappings

    def test_depth(self, ns):
        assert ns.depth == 1
        ns.push_frame()
        assert ns.depth == 2

    def test_pop_base_frame_raises(self, ns):
        with pytest.raises(RuntimeError):
            ns.pop_frame()


class TestName:
    def test_resolve_unprefixed(self, ns):
        name = Name.resolve(ns, "", "svg")
        assert name.prefix.is_none()
        assert ns.uri_str(name.uri) == ""
        assert name.to_string(ns) == "svg"

    def test_resolve_prefixed(self, ns):
        ns.declare_ns("s", "https://svg")
        name = Name.resolve(ns, "s", "rect")
        assert ns.uri_str(name.uri) == "https://svg"
        assert name.to_string(ns) == "s:rect"

    def test_empty_name(self, ns):
        with pytest.raises(MarkupError) as info:
            Name.resolve(ns, "", "")
        assert info.value.kind is MarkupErrorKind.EMPTY_NAME

    def test_unmapped_prefix(self, ns):
        with pytest.raises(MarkupError) as info:
            Name.resolve(ns, "nope", "x")
        assert info.value.kind is MarkupErrorKind.UNMAPPED_PREFIX
        assert "nope" in info.value.message

    def test_interned_but_undeclared_prefix(self, ns):
        ns.push_frame()
        ns.declare_ns("p", "u")
        ns.pop_frame()
        with pytest.raises(MarkupError) as info:
            Name.resolve(ns, "p", "x")
        assert info.value.kind is MarkupErrorKind.UNMAPPED_PREFIX

    def test_parse(self, ns):
        assert Name.parse(ns, "xml:lang").to_string(ns) == "xml:lang"
        assert Name.parse(ns, "lang").to_string(ns) == "lang"

    def test_parse_bad_name(self, ns):
        with pytest.raises(MarkupError) as info:
            Name.parse(ns, "a:b:c")
        assert info.value.kind is MarkupErrorKind.BAD_NAME

    def test_same_local_ignores_uri(self, ns):
        outer = Name.resolve(ns, "", "box")
        ns.push_frame()
        ns.declare_ns("", "https://fred")
        inner = Name.resolve(ns, "", "box")
        assert outer != inner
        assert outer.same_local(inner)


class TestXmlnsAttributes:
    def test_default_declaration(self, ns):
        ns.push_frame()
        attr = Attribute.build(ns, "", "xmlns", "https://fred")
        assert ns.uri_str(attr.name.uri) == XMLNS_NAMESPACE
        assert ns.uri_str(Name.resolve(ns, "", "box").uri) == "https://fred"

    def test_prefixed_declaration(self, ns):
        ns.push_frame()
        attr = Attribute.build(ns, "xmlns", "blob", "https://fred")
        assert ns.name_str(attr.name.name) == "blob"
        assert ns.uri_str(Name.resolve(ns, "blob", "x").uri) == "https://fred"

    def test_plain_attribute_without_xmlns_mode(self):
        ns = NamespaceStack(NamespacePool(xmlns=False))
        attr = Attribute.build(ns, "", "xmlns", "https://fred")
        assert ns.uri_str(attr.name.uri) == ""
        assert ns.uri_str(Name.resolve(ns, "", "box").uri) == ""
