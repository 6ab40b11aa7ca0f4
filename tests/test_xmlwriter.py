"""Test XML output from HML event streams."""

import io

import pytest

from hml import convert
from hml.escape import EscapeError
from hml.events import Content, ContentType, ProcessingInstruction, StartDocument
from hml.names import NamespaceStack
from hml.parser import HmlReader
from hml.tokens import Position, Span
from hml.xmlwriter import XmlWriter, format_version, render

DECL = '<?xml version="1.0" encoding="utf-8"?>'


def xml(*lines: str) -> str:
    return "\n".join((DECL,) + lines) + "\n"


class TestStructure:
    def test_nested_and_empty_elements(self):
        assert convert("#svg ##line ##text") == xml(
            "<svg>",
            "  <line/>",
            "  <text/>",
            "</svg>",
        )

    def test_boxed(self):
        assert convert("#svg ##box{ #line ##box} ##text") == xml(
            "<svg>",
            "  <box>",
            "    <line/>",
            "  </box>",
            "  <text/>",
            "</svg>",
        )

    def test_no_indent(self):
        assert convert("#svg ##line", indent=False) == DECL + "<svg><line/></svg>\n"

    def test_empty_document(self):
        assert convert("") == DECL + "\n"


class TestVersion:
    @pytest.mark.parametrize(
        "version, text",
        [(100, "1.0"), (110, "1.1"), (105, "1.05"), (200, "2.0")],
    )
    def test_format_version(self, version, text):
        assert format_version(version) == text

    def test_declaration_uses_version(self):
        assert convert("#a", version=110).startswith('<?xml version="1.1"')


class TestAttributes:
    def test_values_escaped(self):
        out = convert("#a t=#\"say \"hi\" & <bye>\"#")
        assert '<a t="say &quot;hi&quot; &amp; &lt;bye&gt;"/>' in out

    def test_default_namespace_declaration(self):
        assert "<box xmlns=\"https://fred\"/>" in convert("#box xmlns='https://fred'")

    def test_prefixed(self):
        assert '<p:a xmlns:p="u" p:b="1"/>' in convert("#p:a xmlns:p='u' p:b=1")


class TestContent:
    def test_text_escaped(self):
        assert "<p>a&lt;b &amp; c</p>" in convert('#p "a<b & c"')

    def test_backslash_escapes_resolved(self):
        assert "<p>café!</p>" in convert(r'#p "caf\u{e9}\x21"')

    def test_bad_escape_raises(self):
        with pytest.raises(EscapeError):
            convert(r'#p "\q"')

    def test_raw_becomes_cdata(self):
        assert r"<p><![CDATA[a\n<b>]]></p>" in convert(r"#p r'a\n<b>'")

    def test_cdata_terminator_split(self):
        assert "<p><![CDATA[a]]]]><![CDATA[>b]]></p>" in convert("#p r'a]]>b'")

    def test_mixed_content(self):
        assert convert('#p "a" ##b "c"') == xml(
            "<p>a",
            "  <b>c</b>",
            "</p>",
        )


class TestComments:
    def test_comment(self):
        assert convert("; hello\n#x") == xml("<!-- hello-->", "<x/>")

    def test_double_dash_broken_up(self):
        assert "<!--a- -b- -->" in convert(";a--b-")

    def test_comment_inside_element(self):
        assert convert("#x ; note") == xml("<x>", "  <!-- note-->", "</x>")


class TestWriter:
    def test_processing_instruction(self):
        ns = NamespaceStack()
        out = io.StringIO()
        writer = XmlWriter(ns, out, indent=False)
        span = Span.at(Position.zero())
        writer.write(StartDocument(span))
        writer.write(ProcessingInstruction(span, ns.pool.intern_name("xml-stylesheet"), 'href="a.css"'))
        writer.write(ProcessingInstruction(span, ns.pool.intern_name("go")))
        assert out.getvalue() == DECL + '<?xml-stylesheet href="a.css"?><?go?>'

    def test_whitespace_content_written_as_is(self):
        ns = NamespaceStack()
        out = io.StringIO()
        span = Span.at(Position.zero())
        XmlWriter(ns, out, indent=False).write(Content(span, ContentType.WHITESPACE, " \t\n"))
        assert out.getvalue() == " \t\n"


def render_with(source: str, declarations: dict[str, str], **kwargs) -> str:
    reader = HmlReader.from_string(source, declarations=declarations, **kwargs)
    events = list(reader)
    return render(events, reader.namespace_stack)


class TestReaderDeclarations:
    def test_prefix_declared_on_root(self):
        out = render_with("#s:svg ##s:line", {"s": "http://www.w3.org/2000/svg"})
        assert out == xml(
            '<s:svg xmlns:s="http://www.w3.org/2000/svg">',
            "  <s:line/>",
            "</s:svg>",
        )

    def test_default_namespace(self):
        out = render_with("#svg", {"": "http://www.w3.org/2000/svg"})
        assert '<svg xmlns="http://www.w3.org/2000/svg"/>' in out

    def test_declared_before_own_attributes(self):
        out = render_with("#a:root b=1", {"a": "urn:a"})
        assert '<a:root xmlns:a="urn:a" b="1"/>' in out

    def test_not_repeated_when_root_declares_it(self):
        out = render_with("#p:root xmlns:p='urn:own'", {"p": "urn:base"})
        assert '<p:root xmlns:p="urn:own"/>' in out

    def test_each_top_level_element(self):
        out = render_with("#p:a #p:b", {"p": "urn:p"})
        assert out.count('xmlns:p="urn:p"') == 2

    def test_predefined_bindings_not_written(self):
        out = render_with("#a xml:lang=en", {})
        assert '<a xml:lang="en"/>' in out

    def test_without_xmlns_mode(self):
        out = render_with("#p:a", {"p": "urn:p"}, xmlns=False)
        assert '<p:a xmlns:p="urn:p"/>' in out
