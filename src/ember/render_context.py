"""Ember RenderContext: per-render diagnostics kept out of the variable scope.

Each ``View.render_file`` call runs inside a RenderContext holding the
template being rendered, its source and the nesting depth. Nested renders
get a child context; leaving the ``with`` block restores the parent.

Thread Safety:
    ContextVars are per-thread and per-task, so concurrent renders on
    different threads each see their own context chain.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field

from ember.environment.exceptions import ErrorCode, TemplateRuntimeError


@dataclass
class RenderContext:
    """Per-render state for error messages and the depth guard.

    Attributes:
        template_name: Template currently rendering
        source: Its text (for runtime error snippets)
        depth: Nesting depth; the outermost render is depth 1
        max_depth: Deepest nesting allowed before rendering is aborted
        template_stack: Names of the enclosing templates, outermost first
    """

    template_name: str | None = None
    source: str | None = None
    depth: int = 1
    max_depth: int = 50
    template_stack: list[str] = field(default_factory=list)

    def check_depth(self) -> None:
        """Raise if this context is nested deeper than ``max_depth``.

        Raises:
            TemplateRuntimeError: With ``ErrorCode.RENDER_DEPTH``
        """
        if self.depth > self.max_depth:
            raise TemplateRuntimeError(
                f"Maximum render depth exceeded ({self.max_depth}) "
                f"when rendering '{self.template_name}'",
                template_name=self.template_name,
                suggestion="Check for a template that renders itself: A → B → A",
                code=ErrorCode.RENDER_DEPTH,
            )

    def child_context(self, template_name: str | None, source: str | None = None) -> RenderContext:
        stack = self.template_stack.copy()
        if self.template_name:
            stack.append(self.template_name)
        return RenderContext(
            template_name=template_name,
            source=source,
            depth=self.depth + 1,
            max_depth=self.max_depth,
            template_stack=stack,
        )


_render_context: ContextVar[RenderContext | None] = ContextVar(
    "ember_render_context",
    default=None,
)


def get_render_context() -> RenderContext | None:
    """Get current render context (None if not in render)."""
    return _render_context.get()


def current_template_name() -> str | None:
    ctx = _render_context.get()
    return ctx.template_name if ctx is not None else None


@contextmanager
def render_context(
    template_name: str | None = None,
    source: str | None = None,
    max_depth: int = 50,
) -> Iterator[RenderContext]:
    """Enter a (possibly nested) render context.

    Raises:
        TemplateRuntimeError: If nesting exceeds ``max_depth``

    Example:
        with render_context("orders/index.phtml", text, max_depth=50) as ctx:
            html = unit.render(scope)
    """
    parent = _render_context.get()
    if parent is None:
        ctx = RenderContext(template_name=template_name, source=source, max_depth=max_depth)
    else:
        ctx = parent.child_context(template_name, source)
    ctx.check_depth()
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)
