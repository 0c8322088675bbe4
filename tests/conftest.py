"""Pytest configuration and fixtures for Ember tests."""

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from ember import DictStorage, HandlerRegistry, View, configure, reset_settings, reset_template_cache
from ember.environment import terminal


class FakeClock:
    """Deterministic clock for source-cache staleness tests."""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


@pytest.fixture(autouse=True)
def clean_state(monkeypatch):
    """Fresh process-wide cache, default settings and no ANSI colours per test."""
    monkeypatch.setattr(terminal, "_USE_COLORS", False)
    reset_settings()
    reset_template_cache()
    yield
    reset_settings()
    reset_template_cache()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Process-wide template cache driven by the fake clock."""
    return reset_template_cache(clock=clock)


@pytest.fixture
def caching():
    """Enable cached template loading for the test."""
    return configure(cache_template_loading=True)


@pytest.fixture
def storage():
    """In-memory templates shared by most tests (all stamped at t=100)."""
    return DictStorage(
        {
            "hello.phtml": "Hello, <%= name %>!",
            "orders/index.phtml": (
                "<% for order in orders: %><%= render('orders/row', {'order': order}) %><% end %>"
            ),
            "orders/row.phtml": "[<%= order %>]",
            "orders/_item.phtml": "<%= item %>",
            "feed.pxml": "xml.title(title)",
        },
        mtime=100.0,
    )


@pytest.fixture
def host():
    """Host collaborator with a logger and a response header map."""
    return SimpleNamespace(logger=logging.getLogger("ember.tests.host"), headers={})


@pytest.fixture
def handlers():
    """A private delegate-handler registry (leaves the process-wide one untouched)."""
    return HandlerRegistry()


@pytest.fixture
def view(storage, host, handlers):
    return View(storage, {"site": "Ember"}, host, handlers=handlers)


def assert_contains(result: str, *expected_parts: str) -> None:
    """Assert the rendered result contains all expected parts."""
    for part in expected_parts:
        assert part in result, (
            f"Rendered output missing expected content:\n"
            f"  Missing: {part!r}\n"
            f"  Actual: {result!r}"
        )
