"""Tests for the scripted-markup lexer and its trim modes."""

from __future__ import annotations

import re

import pytest
from hypothesis import given, settings

from ember._types import TokenType
from ember.environment.exceptions import CompileError
from ember.lexer import tokenize

from .strategies import arbitrary_template_source, plain_text, template_fragment


def kinds(tokens):
    return [(t.type, t.value) for t in tokens]


class TestFragments:
    def test_text_only(self):
        assert kinds(tokenize("just text\n")) == [(TokenType.TEXT, "just text\n")]

    def test_expression_code_and_comment(self):
        tokens = tokenize("a<%= x %>b<% y = 1 %>c<%# note %>d")
        assert kinds(tokens) == [
            (TokenType.TEXT, "a"),
            (TokenType.EXPR, " x "),
            (TokenType.TEXT, "b"),
            (TokenType.CODE, " y = 1 "),
            (TokenType.TEXT, "c"),
            (TokenType.COMMENT, " note "),
            (TokenType.TEXT, "d"),
        ]

    def test_escaped_open_tag_is_literal(self):
        tokens = tokenize("<%% not code %> and <%= x %>")
        assert tokens[0].type is TokenType.TEXT
        assert tokens[0].value == "<% not code %> and "
        assert tokens[1].type is TokenType.EXPR

    def test_line_numbers_follow_source(self):
        tokens = tokenize("one\ntwo <%= a %>\n\nfour <% b %>")
        expr = next(t for t in tokens if t.type is TokenType.EXPR)
        code = next(t for t in tokens if t.type is TokenType.CODE)
        assert expr.lineno == 2
        assert code.lineno == 4

    def test_multiline_tag_line_number_is_its_start(self):
        tokens = tokenize("x\n<%\n  a = 1\n  b = 2\n%>\n<%= a %>")
        code = next(t for t in tokens if t.type is TokenType.CODE)
        expr = next(t for t in tokens if t.type is TokenType.EXPR)
        assert code.lineno == 2
        assert expr.lineno == 6

    def test_unclosed_tag_raises(self):
        with pytest.raises(CompileError) as exc_info:
            tokenize("line one\n<%= name ", name="broken.phtml")
        assert exc_info.value.lineno == 2
        assert exc_info.value.template_name == "broken.phtml"


class TestTrimModes:
    def test_dash_close_swallows_newline(self):
        tokens = tokenize("<% x = 1 -%>\nafter", "-")
        assert tokens[-1].value == "after"

    def test_dash_open_strips_indentation(self):
        tokens = tokenize("line\n    <%- x = 1 %>rest", "-")
        assert tokens[0].value == "line\n"

    def test_dash_open_keeps_text_on_same_line(self):
        tokens = tokenize("a <%- x = 1 %>", "-")
        assert tokens[0].value == "a "

    def test_plain_close_keeps_newline_in_dash_mode(self):
        tokens = tokenize("<% x = 1 %>\nafter", "-")
        assert tokens[-1].value == "\nafter"

    def test_dash_markers_without_dash_mode_stay_in_code(self):
        tokens = tokenize("<% x = 1 -%>\n", "")
        assert tokens[0].type is TokenType.CODE
        assert tokens[0].value.endswith("-")

    def test_gt_mode_swallows_after_every_tag(self):
        tokens = tokenize("<%= a %>\n<%= b %>\nend", ">")
        assert [t.value for t in tokens if t.type is TokenType.TEXT] == ["end"]

    def test_line_mode_only_for_whole_line_tags(self):
        tokens = tokenize("<% x = 1 %>\ntext <%= x %>\nend", "<>")
        texts = [t.value for t in tokens if t.type is TokenType.TEXT]
        assert texts == ["text ", "\nend"]

    def test_percent_lines_are_code(self):
        tokens = tokenize("% for x in xs:\n<%= x %>\n% end\n%% literal\n", "%")
        assert kinds(tokens) == [
            (TokenType.CODE, " for x in xs:"),
            (TokenType.EXPR, " x "),
            (TokenType.TEXT, "\n"),
            (TokenType.CODE, " end"),
            (TokenType.TEXT, "% literal\n"),
        ]

    def test_percent_mode_line_numbers(self):
        tokens = tokenize("head\n% x = 1\n<%= x %>\n", "%")
        assert [t.lineno for t in tokens] == [1, 2, 3, 3]


class TestLexerProperties:
    """Property-based lexer invariants."""

    @given(source=plain_text)
    @settings(max_examples=200)
    def test_plain_text_roundtrip(self, source: str) -> None:
        """Text without tags is a single TEXT token with the original content."""
        tokens = tokenize(source)
        assert kinds(tokens) == [(TokenType.TEXT, source)]

    @given(source=template_fragment)
    @settings(max_examples=200)
    def test_fragment_text_is_preserved(self, source: str) -> None:
        """Dropping tags from a fragment leaves exactly the TEXT tokens."""
        tokens = tokenize(source, "")
        text = "".join(t.value for t in tokens if t.type is TokenType.TEXT)
        assert text == re.sub(r"<%.*?%>", "", source)

    @given(source=arbitrary_template_source)
    @settings(max_examples=300)
    def test_no_unhandled_crash(self, source: str) -> None:
        """The lexer only ever fails with CompileError."""
        try:
            tokenize(source)
        except CompileError:
            pass
