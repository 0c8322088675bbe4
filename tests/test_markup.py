"""Tests for the XmlMarkup builder."""

from __future__ import annotations

import pytest

from ember import XmlMarkup


class TestTags:
    def test_content_and_attributes(self):
        xml = XmlMarkup()
        xml.a("A Link", {"href": "http://x.org"})
        assert xml.target_() == '<a href="http://x.org">A Link</a>'

    def test_empty_tag(self):
        xml = XmlMarkup()
        xml.br()
        assert str(xml) == "<br/>"

    def test_keyword_attributes_lose_trailing_underscore(self):
        xml = XmlMarkup()
        xml.div("x", class_="person", id="p1")
        assert xml.target_() == '<div class="person" id="p1">x</div>'

    def test_none_attributes_skipped(self):
        xml = XmlMarkup()
        xml.input(name="q", value=None)
        assert xml.target_() == '<input name="q"/>'

    def test_escaping(self):
        xml = XmlMarkup()
        xml.p("1 < 2 & 3", title='say "hi"')
        assert xml.target_() == '<p title="say &quot;hi&quot;">1 &lt; 2 &amp; 3</p>'

    def test_tag_named_like_builder_method(self):
        xml = XmlMarkup()
        xml.tag_("target", "t")
        xml.text__("plain")
        assert xml.target_() == "<target>t</target><text_>plain</text_>"


class TestNesting:
    def test_block_with_indent(self):
        xml = XmlMarkup(indent=2)
        with xml.div(class_="person"):
            xml.h1("Ada")
            xml.p("Analyst")
        assert xml.target_() == (
            '<div class="person">\n  <h1>Ada</h1>\n  <p>Analyst</p>\n</div>\n'
        )

    def test_block_without_indent(self):
        xml = XmlMarkup()
        with xml.ul():
            xml.li("one")
            xml.li("two")
        assert xml.target_() == "<ul><li>one</li><li>two</li></ul>"

    def test_block_after_content_rejected(self):
        xml = XmlMarkup()
        with pytest.raises(TypeError, match="cannot mix"):
            with xml.p("text"):
                pass

    def test_margin(self):
        xml = XmlMarkup(indent=2, margin=1)
        xml.b("x")
        assert xml.target_() == "  <b>x</b>\n"


class TestSpecialNodes:
    def test_instruct_default(self):
        xml = XmlMarkup()
        xml.instruct_()
        assert xml.target_() == '<?xml version="1.0" encoding="UTF-8"?>'

    def test_instruct_custom(self):
        xml = XmlMarkup()
        xml.instruct_("xml-stylesheet", type="text/xsl", href="s.xsl")
        assert xml.target_() == '<?xml-stylesheet type="text/xsl" href="s.xsl"?>'

    def test_comment_text_cdata(self):
        xml = XmlMarkup()
        xml.comment_("note")
        xml.text_("a&b")
        xml.cdata_("x]]>y")
        assert xml.target_() == "<!-- note -->a&amp;b<![CDATA[x]]]]><![CDATA[>y]]>"

    def test_dunder_lookup_is_not_a_tag(self):
        with pytest.raises(AttributeError):
            XmlMarkup().__missing_dunder__  # noqa: B018
