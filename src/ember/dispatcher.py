"""Extension dispatch: which flavor renders a logical template path.

Probe Order:
    1. registered delegate handlers, in registration order
    2. scripted markup (``.phtml``)
    3. structured builder (``.pxml``)

A flavor matches when its file is in the source cache (caching enabled) or
in storage. ``orders/index`` with a ``.phtml`` and a registered ``.md``
handler both present resolves to the ``md`` delegate.

"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ember._types import (
    BUILDER_EXTENSION,
    SCRIPTED_EXTENSION,
    SCRIPTED_MARKUP,
    STRUCTURED_BUILDER,
    FlavorKind,
    TemplateFlavor,
)
from ember.environment.exceptions import TemplateNotFoundError

if TYPE_CHECKING:
    from ember.cache import SourceCache
    from ember.environment.registry import HandlerRegistry
    from ember.environment.settings import Settings
    from ember.environment.storage import TemplateStorage


class ExtensionDispatcher:
    """Resolve logical paths to flavors for one view.

    Attributes:
        _storage: Backing template storage
        _sources: Shared source cache (consulted when caching is enabled)
        _handlers: Delegate handler registry
        _settings: Settings providing the caching toggle and partial marker
    """

    __slots__ = ("_handlers", "_settings", "_sources", "_storage")

    def __init__(
        self,
        storage: TemplateStorage,
        sources: SourceCache,
        handlers: HandlerRegistry,
        settings: Settings,
    ):
        self._storage = storage
        self._sources = sources
        self._handlers = handlers
        self._settings = settings

    def exists(self, path: str, extension: str) -> bool:
        full = self._storage.template_path(path, extension)
        caching = self._settings.cache_template_loading
        return self._sources.exists(full, caching=caching) or self._storage.exists(full)

    def delegate_for(self, path: str) -> TemplateFlavor | None:
        """First registered handler whose template exists for ``path``."""
        for extension, factory in self._handlers.items():
            if self.exists(path, extension):
                return TemplateFlavor(FlavorKind.DELEGATE, extension, factory)
        return None

    def resolve(self, path: str) -> TemplateFlavor:
        """Pick the flavor for ``path``.

        Raises:
            TemplateNotFoundError: If no handler or built-in flavor has a template
        """
        flavor = self.delegate_for(path)
        if flavor is not None:
            return flavor
        if self.exists(path, SCRIPTED_EXTENSION):
            return SCRIPTED_MARKUP
        if self.exists(path, BUILDER_EXTENSION):
            return STRUCTURED_BUILDER
        raise TemplateNotFoundError(f"No phtml, pxml, or delegate template found for {path}")

    def file_exists(self, path: str) -> bool:
        return (
            self.exists(path, SCRIPTED_EXTENSION)
            or self.exists(path, BUILDER_EXTENSION)
            or self.delegate_for(path) is not None
        )

    def is_public(self, path: str) -> bool:
        """False for partials (last segment starts with the partial marker).

        Advisory only; ``resolve`` renders partials like any other template.
        """
        return not path.rsplit("/", 1)[-1].startswith(self._settings.partial_marker)
