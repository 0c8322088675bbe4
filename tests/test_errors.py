"""Tests for failure wrapping, the template chain and error formatting."""

from __future__ import annotations

import pytest

from ember import (
    CompileError,
    DictStorage,
    ErrorCode,
    TemplateFailure,
    TemplateNotFoundError,
    TemplateRuntimeError,
    UndefinedError,
    View,
    build_source_snippet,
    configure,
)
from ember.environment import terminal


@pytest.fixture
def failing_view():
    storage = DictStorage(
        {
            "a.phtml": "<h1><%= title %></h1>\n<%= render('b') %>",
            "b.phtml": "ok\n<%= 1 / zero %>\nafter",
            "broken.phtml": "fine\n<%= 1 + %>",
            "open.phtml": "<% if ready: %>\nopen",
            "loop.phtml": "<%= render('loop') %>",
        },
        root="views",
        mtime=100.0,
    )
    return View(storage, {"title": "Orders", "zero": 0})


class TestTemplateChain:
    def test_nested_failure_names_every_template(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("a")
        failure = exc_info.value
        assert failure.file_name == "views/b.phtml"
        assert failure.chain == ["views/b.phtml", "views/a.phtml"]
        assert isinstance(failure.cause, ZeroDivisionError)
        assert failure.__cause__ is failure.cause

    def test_failure_carries_source_and_assigns(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("a")
        failure = exc_info.value
        assert failure.source == "ok\n<%= 1 / zero %>\nafter"
        assert failure.assigns == {"title": "Orders", "zero": 0}
        assert failure.line_number == 2
        assert failure.relative_file_name == "b.phtml"

    def test_assigns_snapshot_is_a_copy(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("b")
        failing_view.assigns["title"] = "changed"
        assert exc_info.value.assigns["title"] == "Orders"

    def test_str_includes_chain(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("a")
        text = str(exc_info.value)
        assert "ZeroDivisionError in b.phtml:2" in text
        assert "Template chain:" in text

    def test_scope_restored_after_failure(self, failing_view):
        with pytest.raises(TemplateFailure):
            failing_view.render("a", {"extra": 1})
        assert failing_view.scope.locals == {}
        assert failing_view.scope.depth == 0


class TestCompileFailures:
    def test_syntax_error_wrapped_with_line(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("broken")
        cause = exc_info.value.cause
        assert isinstance(cause, CompileError)
        assert cause.lineno == 2
        assert exc_info.value.line_number == 2

    def test_unclosed_block(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("open", {"ready": True})
        cause = exc_info.value.cause
        assert isinstance(cause, CompileError)
        assert cause.code is ErrorCode.UNBALANCED_BLOCK
        assert cause.lineno == 1

    def test_failed_compile_is_not_cached(self, failing_view):
        with pytest.raises(TemplateFailure):
            failing_view.render("broken")
        failing_view.storage.write("broken.phtml", "fixed", mtime=100.0)
        assert failing_view.render("broken") == "fixed"


class TestRenderDepth:
    def test_self_rendering_template_stops(self, failing_view):
        configure(max_render_depth=5)
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("loop")
        failure = exc_info.value
        assert isinstance(failure.cause, TemplateRuntimeError)
        assert failure.cause.code is ErrorCode.RENDER_DEPTH
        assert failure.chain == ["views/loop.phtml"] * 6


class TestFormatting:
    def test_format_compact_report(self, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("a")
        report = exc_info.value.format_compact()
        assert report.startswith("E-RUN-001: ZeroDivisionError in b.phtml:2: division by zero")
        assert ">  2 | <%= 1 / zero %>" in report
        assert "  • views/a.phtml" in report

    def test_not_found_compact(self):
        error = TemplateNotFoundError("No phtml, pxml, or delegate template found for x")
        assert error.format_compact().startswith("E-TPL-001: No phtml")

    def test_source_snippet(self):
        snippet = build_source_snippet("a\nb\nc\nd\ne", 3, context_lines=1)
        assert snippet.lines == ((2, "b"), (3, "c"), (4, "d"))
        assert snippet.format() == "   |\n   2 | b\n>  3 | c\n   4 | d\n   |"

    def test_snippet_clamped_at_edges(self):
        snippet = build_source_snippet("only", 1)
        assert snippet.lines == ((1, "only"),)

    def test_colored_report_strips_to_plain(self, monkeypatch, failing_view):
        with pytest.raises(TemplateFailure) as exc_info:
            failing_view.render("b")
        plain = exc_info.value.format_compact()
        monkeypatch.setattr(terminal, "_USE_COLORS", True)
        colored = exc_info.value.format_compact()
        assert colored != plain
        assert terminal.strip_colors(colored) == plain

    def test_undefined_suggestion(self):
        error = UndefinedError("titel", "x.phtml", frozenset({"title", "total"}))
        assert error.did_you_mean == "title"
        assert "Did you mean 'title'?" in str(error)

    def test_runtime_error_message(self):
        error = TemplateRuntimeError("too deep", template_name="a.phtml", suggestion="stop")
        assert str(error) == "Runtime Error: too deep\n  Location: a.phtml\n  Suggestion: stop"

    def test_inline_relative_file_name(self):
        failure = TemplateFailure(None, None, {}, "", ValueError("x"))
        assert failure.relative_file_name == "<inline>"
        assert failure.chain == []


class TestErrorCode:
    @pytest.mark.parametrize(
        ("code", "category"),
        [
            (ErrorCode.TEMPLATE_NOT_FOUND, "template"),
            (ErrorCode.UNBALANCED_BLOCK, "compile"),
            (ErrorCode.RENDER_DEPTH, "runtime"),
        ],
    )
    def test_category(self, code, category):
        assert code.category == category

    def test_values_are_unique(self):
        values = [code.value for code in ErrorCode]
        assert len(values) == len(set(values))
