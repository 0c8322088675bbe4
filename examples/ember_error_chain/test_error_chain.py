"""Tests for the error chain example."""

from ember.environment import terminal


class TestErrorChainApp:
    def test_chain_runs_innermost_first(self, example_app) -> None:
        assert example_app.failure.chain == ["orders/totals.phtml", "orders/index.phtml"]

    def test_original_cause_is_kept(self, example_app) -> None:
        assert isinstance(example_app.failure.cause, ZeroDivisionError)

    def test_failing_line(self, example_app) -> None:
        assert example_app.failure.line_number == 2

    def test_assigns_snapshot(self, example_app) -> None:
        assert example_app.failure.assigns == {"user": "ada"}

    def test_report_shows_snippet_and_chain(self, example_app) -> None:
        report = terminal.strip_colors(example_app.report)
        assert "E-RUN-001" in report
        assert ">  2 | Average: <%= total / len(orders) %>" in report
        assert "Template chain:" in report
