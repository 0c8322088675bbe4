"""Variable binding scope for compiled units.

A VariableScope merges three layers that compiled code reads through
``lookup(name)``:

    locals      per-call bindings; bound before a render and restored after
    variables   the view's assigns, re-applied at the start of every call
    helpers     view helpers (``render``, ``h``, ``assigns``, ``view``)

Names missing from all three fall back to Python builtins.

Binding Discipline:
``bind(locals)`` records the prior value (or absence) of every key it
touches and pushes that record on a stack; ``restore(state)`` pops it and
puts the prior values back. Nested renders bind and restore inside their
caller, so an inner render never disturbs the outer bindings:

    with scope.bound({"item": row}):
        unit.render(scope)

Once a name has been bound on a scope it stays known: reading it while it
is unbound yields ``None`` instead of raising ``UndefinedError``.

A scope belongs to one view and is not shared between threads.

"""

from __future__ import annotations

import builtins
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from ember.environment.exceptions import UndefinedError
from ember.render_context import current_template_name


class _Absent:
    __slots__ = ()

    def __repr__(self) -> str:
        return "<absent>"


_ABSENT: Any = _Absent()


@dataclass(frozen=True, slots=True, eq=False)
class SavedState:
    """Prior values of the keys one ``bind`` call touched.

    ``_ABSENT`` marks a key that had no binding before the call.
    """

    prior: tuple[tuple[str, Any], ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(name for name, _ in self.prior)


class VariableScope:
    """Execution environment handed to every compiled unit.

    Attributes:
        assigns: Persistent view-level variables (the live dict, shared with
            templates through the ``assigns`` helper)
        locals: Current per-call bindings
        helpers: Names provided by the view
    """

    __slots__ = ("_known", "_stack", "_variables", "assigns", "helpers", "locals")

    def __init__(
        self,
        assigns: dict[str, Any] | None = None,
        helpers: Mapping[str, Any] | None = None,
    ):
        self.assigns: dict[str, Any] = assigns if assigns is not None else {}
        self.helpers: dict[str, Any] = dict(helpers or {})
        self.locals: dict[str, Any] = {}
        self._variables: dict[str, Any] = {}
        self._known: set[str] = set()
        self._stack: list[SavedState] = []
        self.apply_assigns()

    def apply_assigns(self) -> None:
        """Copy the current assigns into the variable layer.

        Assigns are never captured by ``bind``; changes made through the
        ``assigns`` helper become visible at the next call.
        """
        self._variables = dict(self.assigns)

    def bind(self, locals: Mapping[str, Any]) -> SavedState:
        prior = tuple((name, self.locals.get(name, _ABSENT)) for name in locals)
        self.locals.update(locals)
        self._known.update(locals)
        state = SavedState(prior)
        self._stack.append(state)
        return state

    def restore(self, state: SavedState) -> None:
        """Undo the ``bind`` that returned ``state``.

        Raises:
            RuntimeError: If ``state`` is not the most recent unrestored bind
        """
        if not self._stack or self._stack[-1] is not state:
            raise RuntimeError(
                "VariableScope.restore() called out of order: "
                f"expected the state for {self._stack[-1].keys if self._stack else '()'}, "
                f"got {state.keys}"
            )
        self._stack.pop()
        for name, value in reversed(state.prior):
            if value is _ABSENT:
                self.locals.pop(name, None)
            else:
                self.locals[name] = value

    @contextmanager
    def bound(self, locals: Mapping[str, Any] | None) -> Iterator[VariableScope]:
        """Bind ``locals`` for the duration of the block, restoring on every exit path."""
        state = self.bind(locals or {})
        try:
            yield self
        finally:
            self.restore(state)

    @property
    def depth(self) -> int:
        """Number of unrestored binds."""
        return len(self._stack)

    def is_known(self, name: str) -> bool:
        return name in self._known

    def lookup(self, name: str) -> Any:
        """Resolve a template name.

        Raises:
            UndefinedError: If the name was never bound and is not an
                assign, helper or builtin
        """
        if name in self.locals:
            return self.locals[name]
        if name in self._variables:
            return self._variables[name]
        if name in self.helpers:
            return self.helpers[name]
        value = getattr(builtins, name, _ABSENT)
        if value is not _ABSENT:
            return value
        if name in self._known:
            return None
        raise UndefinedError(
            name,
            current_template_name(),
            available_names=frozenset(self.locals).union(self._variables, self.helpers),
        )

    def snapshot_assigns(self) -> dict[str, Any]:
        return dict(self.assigns)

    def __repr__(self) -> str:
        return f"<VariableScope locals={sorted(self.locals)} depth={self.depth}>"
