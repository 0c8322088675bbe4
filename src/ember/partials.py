"""Partial rendering.

A partial is a template whose file name starts with the partial marker:

    render(partial="row")          → _row.phtml
    render(partial="shared/row")   → shared/_row.phtml

The partial's object is bound to a local named after the partial (``row``).
Collections bind each element in turn, plus ``row_counter`` (0-based):

    render(partial="row", collection=orders, spacer_template="divider")
    → row(orders[0]) divider row(orders[1]) divider row(orders[2])

"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ember.view import View


class PartialRenderer:
    """Render partials and partial collections through a view's ``render_file``."""

    __slots__ = ("_view",)

    def __init__(self, view: View):
        self._view = view

    def partial_path(self, partial_name: str) -> tuple[str, str]:
        """Return ``(logical path, variable name)`` for a partial name.

        Example:
            >>> renderer.partial_path("shared/row")
            ('shared/_row', 'row')
        """
        marker = self._view.settings.partial_marker
        directory, _, name = partial_name.rpartition("/")
        path = f"{directory}/{marker}{name}" if directory else f"{marker}{name}"
        return path, name

    def render_partial(
        self,
        partial_name: str,
        object: Any = None,
        local_assigns: Mapping[str, Any] | None = None,
    ) -> str:
        path, name = self.partial_path(partial_name)
        locals = dict(local_assigns or {})
        if name not in locals:
            locals[name] = object if object is not None else self._view.assigns.get(name)
        return self._view.render_file(path, True, locals)

    def render_partial_collection(
        self,
        partial_name: str,
        collection: Iterable[Any],
        spacer_template: str | None = None,
        local_assigns: Mapping[str, Any] | None = None,
    ) -> str:
        """Render the partial once per element, with the spacer between elements.

        An empty collection renders ``""``.
        """
        path, name = self.partial_path(partial_name)
        parts: list[str] = []
        for counter, element in enumerate(collection):
            if counter and spacer_template:
                parts.append(self.render_partial(spacer_template))
            locals = dict(local_assigns or {})
            locals[name] = element
            locals[f"{name}_counter"] = counter
            parts.append(self._view.render_file(path, True, locals))
        return "".join(parts)
