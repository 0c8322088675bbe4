"""Delegate template handler registry.

Maps a template extension to a handler factory. The dispatcher probes
registered extensions in registration order before the built-in flavors,
so a handler for ``phtml`` would shadow the scripted-markup compiler.

Example:
    >>> class MarkdownHandler:
    ...     def __init__(self, view):
    ...         self.view = view
    ...     def render(self, template, local_assigns):
    ...         return markdown(template)
    >>> register_template_handler("md", MarkdownHandler)

"""

from __future__ import annotations

import threading
from collections.abc import ItemsView, Iterator, KeysView

from ember._types import HandlerFactory


class HandlerRegistry:
    """Dict-like, registration-ordered mapping of extension → handler factory.

    Supports:
        - registry['md'] = factory
        - registry.register('md', factory)
        - factory = registry['md']
        - 'md' in registry

    All mutations use copy-on-write, so readers iterating ``items()`` on one
    thread never observe a registration made concurrently on another.
    """

    __slots__ = ("_handlers", "_lock")

    def __init__(self, handlers: dict[str, HandlerFactory] | None = None):
        self._handlers: dict[str, HandlerFactory] = dict(handlers or {})
        self._lock = threading.Lock()

    def register(self, extension: str, factory: HandlerFactory) -> None:
        extension = extension.lstrip(".")
        with self._lock:
            new = self._handlers.copy()
            new[extension] = factory
            self._handlers = new

    def unregister(self, extension: str) -> None:
        with self._lock:
            new = self._handlers.copy()
            new.pop(extension.lstrip("."), None)
            self._handlers = new

    def clear(self) -> None:
        with self._lock:
            self._handlers = {}

    def __getitem__(self, extension: str) -> HandlerFactory:
        return self._handlers[extension]

    def __setitem__(self, extension: str, factory: HandlerFactory) -> None:
        self.register(extension, factory)

    def __contains__(self, extension: object) -> bool:
        return extension in self._handlers

    def __iter__(self) -> Iterator[str]:
        return iter(self._handlers)

    def __len__(self) -> int:
        return len(self._handlers)

    def get(self, extension: str, default: HandlerFactory | None = None) -> HandlerFactory | None:
        return self._handlers.get(extension, default)

    def keys(self) -> KeysView[str]:
        return self._handlers.keys()

    def items(self) -> ItemsView[str, HandlerFactory]:
        return self._handlers.items()

    def copy(self) -> HandlerRegistry:
        return HandlerRegistry(self._handlers)


template_handlers = HandlerRegistry()


def register_template_handler(extension: str, factory: HandlerFactory) -> None:
    """Register ``factory`` for templates with ``extension`` process-wide."""
    template_handlers.register(extension, factory)
