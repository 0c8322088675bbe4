"""Shared cache state: template sources and compiled units.

Two caches cooperate:

SourceCache
    Template text keyed by resolved path, with the time it was loaded.
    A re-read that changes a scripted-markup source invalidates its
    compiled unit.

UnitRegistry
    Compiled units keyed by ``UnitKey``. ``get_or_compile`` is
    single-flight: concurrent requests for one key run the factory once.

Both live on a ``TemplateCache``; the process-wide instance is returned by
``get_template_cache()`` and replaced by ``reset_template_cache()``.

Staleness:
    caching off  → every ``load`` re-reads storage
    caching on   → re-read when no entry exists, or when the entry's load
                   time is older than ``storage.mtime(path)``

Thread-Safety:
Every read and write of either cache happens under that cache's lock.
Storage reads and compile factories run outside the locks, so a slow read
or compile of one template never blocks lookups of another.

"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ember._types import FlavorKind, TemplateFlavor, UnitKey

if TYPE_CHECKING:
    from ember.environment.storage import TemplateStorage
    from ember.unit import CompiledUnit

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(frozen=True, slots=True)
class SourceEntry:
    """Cached template text and the clock time it was loaded (or last compiled)."""

    text: str
    loaded_at: float | None = None


@dataclass(slots=True)
class _InFlight:
    """A compile in progress; waiters block on ``done``."""

    generation: int
    done: threading.Event = field(default_factory=threading.Event)
    unit: CompiledUnit | None = None
    error: BaseException | None = None


class UnitRegistry:
    """Compiled units keyed by template identity.

    Invalidation bumps a per-key generation. A compile that started under an
    older generation still returns its unit to the callers waiting on it,
    but the unit is not stored.

    Example:
            >>> registry = UnitRegistry()
            >>> unit = registry.get_or_compile(key, lambda: Compiler().compile(text, name))
            >>> registry.get_or_compile(key, fail) is unit  # factory not called
            True

    """

    __slots__ = ("_generations", "_inflight", "_lock", "_stats", "_units")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._units: dict[UnitKey, CompiledUnit] = {}
        self._inflight: dict[UnitKey, _InFlight] = {}
        self._generations: dict[UnitKey, int] = {}
        self._stats = {"hits": 0, "misses": 0, "compiles": 0, "waits": 0, "invalidations": 0}

    def get_or_compile(self, key: UnitKey, factory: Callable[[], CompiledUnit]) -> CompiledUnit:
        """Return the unit for ``key``, running ``factory`` at most once per generation.

        Raises:
            Exception: Whatever ``factory`` raised, re-raised to every caller
                that waited on the failed compile
        """
        with self._lock:
            unit = self._units.get(key)
            if unit is not None:
                self._stats["hits"] += 1
                return unit
            flight = self._inflight.get(key)
            leader = flight is None
            if flight is None:
                flight = _InFlight(generation=self._generations.get(key, 0))
                self._inflight[key] = flight
                self._stats["misses"] += 1
            else:
                self._stats["waits"] += 1

        if not leader:
            flight.done.wait()
            if flight.error is not None:
                raise flight.error
            assert flight.unit is not None
            return flight.unit

        try:
            unit = factory()
        except BaseException as e:
            flight.error = e
            with self._lock:
                if self._inflight.get(key) is flight:
                    del self._inflight[key]
            flight.done.set()
            raise

        with self._lock:
            if self._inflight.get(key) is flight:
                del self._inflight[key]
            self._stats["compiles"] += 1
            if self._generations.get(key, 0) == flight.generation:
                self._units[key] = unit
            else:
                logger.debug("Discarding unit for %s: invalidated during compile", key)
        flight.unit = unit
        flight.done.set()
        return unit

    def get(self, key: UnitKey) -> CompiledUnit | None:
        with self._lock:
            return self._units.get(key)

    def invalidate(self, key: UnitKey) -> None:
        """Drop the unit for ``key`` and orphan any compile in flight for it."""
        with self._lock:
            self._units.pop(key, None)
            self._inflight.pop(key, None)
            self._generations[key] = self._generations.get(key, 0) + 1
            self._stats["invalidations"] += 1
        logger.debug("Invalidated compiled unit %s", key)

    def clear(self) -> None:
        with self._lock:
            for key in (*self._units, *self._inflight):
                self._generations[key] = self._generations.get(key, 0) + 1
            self._units.clear()
            self._inflight.clear()

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return dict(self._stats)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._units

    def __len__(self) -> int:
        with self._lock:
            return len(self._units)


class SourceCache:
    """Template text keyed by resolved path.

    Attributes:
        _units: Registry whose scripted-markup units are invalidated on re-read
        _clock: Time source for ``loaded_at`` (``time.time`` by default)
    """

    __slots__ = ("_clock", "_entries", "_lock", "_units")

    def __init__(self, units: UnitRegistry, clock: Clock = time.time):
        self._units = units
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, SourceEntry] = {}

    def load(
        self,
        storage: TemplateStorage,
        path: str,
        flavor: TemplateFlavor,
        *,
        caching: bool,
    ) -> str:
        """Return the text for ``path``, re-reading storage when needed.

        Storage is read outside the cache lock; only the entry swap is
        serialized. A scripted-markup unit is invalidated when the re-read
        text differs from the cached text (or nothing was cached), so an
        unchanged template keeps its compiled unit even with caching off.

        Raises:
            TemplateNotFoundError: If storage has no such template
        """
        with self._lock:
            entry = self._entries.get(path)
        if caching and entry is not None and not self._is_stale(storage, path, entry):
            return entry.text

        loaded_at = self._clock()
        text = storage.read(path)
        with self._lock:
            previous = self._entries.get(path)
            self._entries[path] = SourceEntry(text, loaded_at)
            changed = previous is None or previous.text != text
            if changed and flavor.kind is FlavorKind.SCRIPTED_MARKUP:
                self._units.invalidate(UnitKey.for_file(path))
        logger.debug("Loaded template source %s (changed=%s)", path, changed)
        return text

    @staticmethod
    def _is_stale(storage: TemplateStorage, path: str, entry: SourceEntry) -> bool:
        if entry.loaded_at is None:
            return True
        return entry.loaded_at < storage.mtime(path)

    def touch(self, path: str, text: str) -> None:
        """Mark ``path`` as loaded now, if the cached text is what was compiled."""
        with self._lock:
            entry = self._entries.get(path)
            if entry is not None and entry.text == text:
                self._entries[path] = SourceEntry(text, self._clock())

    def exists(self, path: str, *, caching: bool) -> bool:
        if not caching:
            return False
        with self._lock:
            return path in self._entries

    def get(self, path: str) -> SourceEntry | None:
        with self._lock:
            return self._entries.get(path)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class TemplateCache:
    """Source cache, unit registry and inline-name counter shared by views."""

    __slots__ = ("_counter_lock", "_inline_ids", "sources", "units")

    def __init__(self, clock: Clock = time.time):
        self.units = UnitRegistry()
        self.sources = SourceCache(self.units, clock=clock)
        self._inline_ids = itertools.count(1)
        self._counter_lock = threading.Lock()

    def next_inline_id(self) -> int:
        with self._counter_lock:
            return next(self._inline_ids)

    def clear(self) -> None:
        self.sources.clear()
        self.units.clear()


_cache_lock = threading.Lock()
_template_cache = TemplateCache()


def get_template_cache() -> TemplateCache:
    """Return the process-wide cache."""
    return _template_cache


def reset_template_cache(clock: Clock = time.time) -> TemplateCache:
    """Replace the process-wide cache with an empty one (used by tests)."""
    global _template_cache
    with _cache_lock:
        _template_cache = TemplateCache(clock=clock)
        return _template_cache
