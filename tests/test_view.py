"""Tests for View rendering call shapes."""

from __future__ import annotations

import logging

import pytest

from ember import (
    DictStorage,
    FlavorKind,
    TemplateFailure,
    TemplateFlavor,
    TemplateNotFoundError,
    TemplateRuntimeError,
    UndefinedError,
    View,
)


class ShoutHandler:
    """Delegate handler that records the view it was built with."""

    seen = []

    def __init__(self, view):
        self.view = view

    def render(self, template, local_assigns):
        ShoutHandler.seen.append((self.view, dict(local_assigns)))
        return template.format(**local_assigns).upper()


class TestRenderShapes:
    def test_logical_path(self, view):
        assert view.render("hello", {"name": "Ada"}) == "Hello, Ada!"

    def test_file_with_full_path(self, view):
        assert view.render(file="hello", locals={"name": "Ada"}) == "Hello, Ada!"

    def test_file_without_full_path(self, view):
        assert view.render(file="hello.phtml", use_full_path=False, locals={"name": "Bo"}) == (
            "Hello, Bo!"
        )

    def test_inline(self, view):
        assert view.render(inline="<%= site %>/<%= n %>", locals={"n": 2}) == "Ember/2"

    def test_inline_builder(self, view):
        assert view.render(inline="xml.b(site)", type="pxml") == "<b>Ember</b>\n"

    def test_nested_render(self, view):
        assert view.render("orders/index", {"orders": [1, 2]}) == "[1][2]"

    def test_no_shape_raises_type_error(self, view):
        with pytest.raises(TypeError, match="needs a path"):
            view.render()

    def test_missing_template(self, view):
        with pytest.raises(TemplateNotFoundError):
            view.render("nowhere")


class TestViewState:
    def test_first_render_recorded_once(self, view):
        view.render("orders/index", {"orders": [1]})
        view.render("hello", {"name": "x"})
        assert view.first_render == "orders/index"

    def test_assigns_visible_and_live(self, view):
        assert view.render(inline="<%= site %>") == "Ember"
        view.assigns["site"] = "Forge"
        assert view.render(inline="<%= site %>") == "Forge"

    def test_assigns_helper(self, view):
        assert view.render(inline="<%= assigns['site'] %>") == "Ember"

    def test_h_helper_escapes(self, view):
        assert view.render(inline="<%= h(v) %>", locals={"v": "<a & b>"}) == "&lt;a &amp; b&gt;"

    def test_locals_do_not_leak_between_renders(self, view):
        view.render("hello", {"name": "Ada"})
        assert view.render(file="hello") == "Hello, !"

    def test_unknown_name_raises_undefined(self, view):
        with pytest.raises(TemplateFailure) as exc_info:
            view.render(file="hello")
        assert isinstance(exc_info.value.cause, UndefinedError)

    def test_known_unbound_local_is_none(self, view):
        view.render(inline="<%= flag %>", locals={"flag": 1})
        assert view.render(inline="<%= flag is None %>") == "True"

    def test_none_renders_empty(self, view):
        assert view.render(inline="[<%= value %>]", locals={"value": None}) == "[]"

    def test_view_helper(self, view):
        assert view.render(inline="<%= view.first_render %>") == ""


class TestBuilderRender:
    def test_sets_default_content_type(self, view, host):
        assert view.render("feed", {"title": "News"}) == "<title>News</title>\n"
        assert host.headers["Content-Type"] == "text/xml"

    def test_keeps_existing_content_type(self, view, host):
        host.headers["Content-Type"] = "application/rss+xml"
        view.render("feed", {"title": "News"})
        assert host.headers["Content-Type"] == "application/rss+xml"

    def test_host_without_headers(self, storage):
        assert View(storage).render("feed", {"title": "T"}) == "<title>T</title>\n"


class TestDelegateRender:
    def test_handler_receives_view_and_locals(self, handlers):
        ShoutHandler.seen.clear()
        handlers.register("txt", ShoutHandler)
        view = View(DictStorage({"note.txt": "hi {who}"}), handlers=handlers)
        assert view.render("note", {"who": "ada"}) == "HI ADA"
        assert ShoutHandler.seen == [(view, {"who": "ada"})]

    def test_delegate_shadows_scripted_markup(self, storage, handlers):
        handlers.register("phtml", ShoutHandler)
        view = View(storage, handlers=handlers)
        assert view.render("orders/row", {}) == "[<%= ORDER %>]"

    def test_delegate_flavor_without_handler(self, view):
        flavor = TemplateFlavor(FlavorKind.DELEGATE, "md")
        with pytest.raises(TemplateRuntimeError, match=r"No handler registered for \.md"):
            view.render_template(flavor, "# title")


class TestLogging:
    def test_compile_message_goes_to_host_logger(self, view, caplog):
        with caplog.at_level(logging.DEBUG, logger="ember.tests.host"):
            view.render("hello", {"name": "x"})
        assert any("Compiled template hello.phtml" in r.getMessage() for r in caplog.records)

    def test_wrapped_failure_is_logged(self, view, caplog):
        with caplog.at_level(logging.DEBUG, logger="ember.view"):
            with pytest.raises(TemplateFailure):
                view.render(file="hello")
        assert any("Template hello.phtml failed" in r.getMessage() for r in caplog.records)
