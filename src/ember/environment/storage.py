"""Backing template storage.

A logical template path resolves to ``{root}/{logical_path}.{extension}``.
Storage answers four questions about a resolved path: does it exist, when
was it last modified, what is its text, and how to build the path from a
logical name.

Built-in Storages:
- `FileSystemStorage`: Templates under a directory on disk
- `DictStorage`: In-memory templates with explicit modification times

Custom Storages:
Implement the TemplateStorage protocol:
    ```python
    class DatabaseStorage:
        root = "db"

        def template_path(self, logical: str, extension: str) -> str:
            return f"{self.root}/{logical}.{extension}"

        def exists(self, path: str) -> bool:
            return db.query("SELECT 1 FROM templates WHERE path = ?", path) is not None

        def mtime(self, path: str) -> float:
            return db.query("SELECT updated_at FROM templates WHERE path = ?", path)

        def read(self, path: str) -> str:
            row = db.query("SELECT source FROM templates WHERE path = ?", path)
            if not row:
                raise TemplateNotFoundError(f"Template '{path}' not found")
            return row.source
    ```

Thread-Safety:
Storages must be safe for concurrent reads. ``DictStorage`` guards writes
with a lock so a reader never sees a path without its modification time.

"""

from __future__ import annotations

import threading
import time
from pathlib import Path
from typing import Protocol, runtime_checkable

from ember.environment.exceptions import TemplateNotFoundError


@runtime_checkable
class TemplateStorage(Protocol):
    """Backing store queried by the source cache and dispatcher."""

    @property
    def root(self) -> str: ...

    def template_path(self, logical: str, extension: str) -> str: ...

    def exists(self, path: str) -> bool: ...

    def mtime(self, path: str) -> float: ...

    def read(self, path: str) -> str: ...


class FileSystemStorage:
    """Load templates from a directory on disk.

    Example:
            >>> storage = FileSystemStorage("app/views")
            >>> storage.template_path("orders/index", "phtml")
            'app/views/orders/index.phtml'
            >>> storage.exists("app/views/orders/index.phtml")
            True

    Raises:
        TemplateNotFoundError: From ``read``/``mtime`` when the file is missing

    """

    __slots__ = ("_encoding", "_root")

    def __init__(self, root: str | Path, encoding: str = "utf-8"):
        self._root = str(root).rstrip("/") or "/"
        self._encoding = encoding

    @property
    def root(self) -> str:
        return self._root

    def template_path(self, logical: str, extension: str) -> str:
        return f"{self._root}/{logical}.{extension}"

    def exists(self, path: str) -> bool:
        return Path(path).is_file()

    def mtime(self, path: str) -> float:
        try:
            return Path(path).stat().st_mtime
        except FileNotFoundError:
            raise TemplateNotFoundError(f"Template '{path}' not found") from None

    def read(self, path: str) -> str:
        try:
            return Path(path).read_text(self._encoding)
        except (FileNotFoundError, IsADirectoryError):
            raise TemplateNotFoundError(f"Template '{path}' not found") from None

    def __repr__(self) -> str:
        return f"FileSystemStorage({self._root!r})"


class DictStorage:
    """Keep templates in memory, keyed by file name relative to ``root``.

    Each entry carries a modification time. ``write()`` replaces the text and
    advances the time, which lets tests drive cache staleness
    deterministically.

    Example:
            >>> storage = DictStorage({
            ...     "layouts/base.phtml": "<html><%= render('nav') %></html>",
            ...     "nav.phtml": "<nav/>",
            ... })
            >>> storage.template_path("nav", "phtml")
            'nav.phtml'
            >>> storage.write("nav.phtml", "<nav>new</nav>", mtime=10.0)

    Raises:
        TemplateNotFoundError: From ``read``/``mtime`` for unknown paths

    """

    __slots__ = ("_entries", "_lock", "_root")

    def __init__(
        self,
        mapping: dict[str, str] | None = None,
        root: str = "",
        *,
        mtime: float | None = None,
    ):
        self._root = root.rstrip("/")
        self._lock = threading.Lock()
        stamp = time.time() if mtime is None else mtime
        self._entries: dict[str, tuple[str, float]] = {
            self._full(name): (text, stamp) for name, text in (mapping or {}).items()
        }

    def _full(self, name: str) -> str:
        if not self._root or name.startswith(self._root + "/"):
            return name
        return f"{self._root}/{name}"

    @property
    def root(self) -> str:
        return self._root

    def template_path(self, logical: str, extension: str) -> str:
        return self._full(f"{logical}.{extension}")

    def exists(self, path: str) -> bool:
        return path in self._entries

    def mtime(self, path: str) -> float:
        try:
            return self._entries[path][1]
        except KeyError:
            raise TemplateNotFoundError(f"Template '{path}' not found") from None

    def read(self, path: str) -> str:
        try:
            return self._entries[path][0]
        except KeyError:
            from difflib import get_close_matches

            msg = f"Template '{path}' not found"
            matches = get_close_matches(path, sorted(self._entries), n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"
            raise TemplateNotFoundError(msg) from None

    def write(self, name: str, text: str, mtime: float | None = None) -> None:
        """Create or replace a template, stamping it ``mtime`` (default: now)."""
        with self._lock:
            self._entries[self._full(name)] = (text, time.time() if mtime is None else mtime)

    def delete(self, name: str) -> None:
        with self._lock:
            self._entries.pop(self._full(name), None)

    def list_templates(self) -> list[str]:
        return sorted(self._entries)

    def __repr__(self) -> str:
        return f"DictStorage({len(self._entries)} templates, root={self._root!r})"
