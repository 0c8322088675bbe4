"""Compiled render units.

A CompiledUnit wraps the code object produced by the scripted-markup
compiler. The code is executed once, in a private copy of
``STATIC_NAMESPACE``, to define the render function; rendering then calls
that function with a ``VariableScope``.

Structure:
    CompiledUnit
    ├── key: UnitKey           # Registry identity
    ├── name: str              # Executable name (``_render_...``)
    ├── filename: str | None   # Template path, also the code's co_filename
    ├── source: str            # Template text the unit was compiled from
    └── _render_func           # The function defined by the code object

Thread-Safety:
Units are immutable after construction. Per-render state lives on the scope
passed to ``render()``, so one unit can be rendered by many threads at once.

"""

from __future__ import annotations

import time
import types
from typing import TYPE_CHECKING, Any

from ember.helpers import STATIC_NAMESPACE

if TYPE_CHECKING:
    from collections.abc import Callable

    from ember._types import UnitKey
    from ember.scope import VariableScope


class CompiledUnit:
    """A compiled template, callable with a scope.

    Example:
            >>> unit = compile_template("Hello <%= name %>")
            >>> unit.render(VariableScope(locals={"name": "World"}))
            'Hello World'

    """

    __slots__ = (
        "_code",
        "_compiled_at",
        "_filename",
        "_key",
        "_name",
        "_render_func",
        "_source",
    )

    def __init__(
        self,
        key: UnitKey,
        name: str,
        code: types.CodeType,
        filename: str | None,
        source: str,
    ):
        self._key = key
        self._name = name
        self._code = code
        self._filename = filename
        self._source = source
        self._compiled_at = time.time()

        namespace: dict[str, Any] = STATIC_NAMESPACE.copy()
        exec(code, namespace)
        render_func: Callable[[VariableScope], str] = namespace[name]
        self._render_func = render_func

    @property
    def key(self) -> UnitKey:
        return self._key

    @property
    def name(self) -> str:
        """Executable name of the render function."""
        return self._name

    @property
    def filename(self) -> str | None:
        return self._filename

    @property
    def source(self) -> str:
        return self._source

    @property
    def code(self) -> types.CodeType:
        return self._code

    @property
    def compiled_at(self) -> float:
        return self._compiled_at

    def render(self, scope: VariableScope) -> str:
        """Run the render function against ``scope`` and return the text."""
        return self._render_func(scope)

    __call__ = render

    def __repr__(self) -> str:
        return f"<CompiledUnit {self._name} ({self._key})>"
