"""Tests for VariableScope binding discipline and name lookup."""

from __future__ import annotations

import pytest
from hypothesis import given, settings

from ember import DictStorage, TemplateFailure, UndefinedError, VariableScope, View

from .strategies import local_bindings


class TestBindRestore:
    def test_bind_then_restore_removes_new_names(self):
        scope = VariableScope()
        state = scope.bind({"a": 1})
        assert scope.lookup("a") == 1
        scope.restore(state)
        assert "a" not in scope.locals

    def test_restore_puts_back_prior_values(self):
        scope = VariableScope()
        outer = scope.bind({"a": 1, "b": 2})
        inner = scope.bind({"a": 10, "c": 30})
        assert scope.locals == {"a": 10, "b": 2, "c": 30}
        scope.restore(inner)
        assert scope.locals == {"a": 1, "b": 2}
        scope.restore(outer)
        assert scope.locals == {}

    def test_restore_out_of_order_raises(self):
        scope = VariableScope()
        outer = scope.bind({"a": 1})
        scope.bind({"b": 2})
        with pytest.raises(RuntimeError, match="out of order"):
            scope.restore(outer)

    def test_bound_restores_on_failure(self):
        scope = VariableScope()
        with pytest.raises(ValueError), scope.bound({"a": 1}):
            raise ValueError("boom")
        assert scope.locals == {}
        assert scope.depth == 0

    def test_assigns_are_not_restored(self):
        assigns = {"title": "One"}
        scope = VariableScope(assigns)
        with scope.bound({"x": 1}):
            assigns["title"] = "Two"
            scope.apply_assigns()
        assert scope.lookup("title") == "Two"


class TestLookup:
    def test_order_locals_assigns_helpers_builtins(self):
        scope = VariableScope({"a": "assign", "len": "assign-len"}, helpers={"h": "helper", "a": "x"})
        with scope.bound({"a": "local"}):
            assert scope.lookup("a") == "local"
        assert scope.lookup("a") == "assign"
        assert scope.lookup("h") == "helper"
        assert scope.lookup("len") == "assign-len"
        assert scope.lookup("max") is max

    def test_known_local_reads_none_when_unbound(self):
        scope = VariableScope()
        with scope.bound({"item": 1}):
            pass
        assert scope.is_known("item")
        assert scope.lookup("item") is None

    def test_unknown_name_raises(self):
        scope = VariableScope({"title": "x"})
        with pytest.raises(UndefinedError) as exc_info:
            scope.lookup("titel")
        assert exc_info.value.name == "titel"
        assert "Did you mean 'title'?" in str(exc_info.value)

    def test_snapshot_is_a_copy(self):
        assigns = {"a": 1}
        scope = VariableScope(assigns)
        snapshot = scope.snapshot_assigns()
        assigns["a"] = 2
        assert snapshot == {"a": 1}


class TestLeakFreeRendering:
    """Locals bound for a render are gone afterwards, on success and on failure."""

    @given(outer=local_bindings, inner=local_bindings)
    @settings(max_examples=100)
    def test_nested_binds_restore_outer_view(self, outer, inner):
        scope = VariableScope()
        with scope.bound(outer):
            before = dict(scope.locals)
            with scope.bound(inner):
                pass
            assert scope.locals == before
        assert scope.locals == {}

    @given(locals=local_bindings)
    @settings(max_examples=50)
    def test_render_failure_does_not_leak(self, locals):
        storage = DictStorage({"boom.phtml": "<%= 1 / 0 %>", "ok.phtml": "ok"})
        view = View(storage)
        with pytest.raises(TemplateFailure):
            view.render("boom", locals)
        assert view.scope.locals == {}
        assert view.scope.depth == 0
        assert view.render("ok") == "ok"

    def test_nested_render_keeps_outer_locals(self):
        storage = DictStorage(
            {
                "outer.phtml": "<%= x %>,<%= render('inner', {'x': 2}) %>,<%= x %>",
                "inner.phtml": "<%= x %>",
            }
        )
        view = View(storage)
        assert view.render("outer", {"x": 1}) == "1,2,1"
        assert view.scope.locals == {}

    def test_failing_inner_render_restores_outer_binding(self):
        storage = DictStorage(
            {
                "outer.phtml": (
                    "<% try: %><%= render('inner', {'x': 2}) %>"
                    "<% except Exception: %>caught<% end %>:<%= x %>"
                ),
                "inner.phtml": "<%= x / 0 %>",
            }
        )
        view = View(storage)
        assert view.render("outer", {"x": 1}) == "caught:1"
