"""
Keyed get-or-load cache with load-once semantics.
"""
import threading
from typing import Callable, Dict, Generic, Hashable, List, Optional, TypeVar
import logging

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class LoadOnceCache(Generic[K, V]):
    """
    Cache that calls ``loader`` at most once per key until invalidated.

    Concurrent first access to the same key blocks on a per-key lock, so
    only one thread runs the loader while the others wait for its result.
    A loader that raises caches nothing; the next ``get`` tries again.
    """

    def __init__(self, loader: Callable[[K], V]):
        self._loader = loader
        self._values: Dict[K, V] = {}
        self._key_locks: Dict[K, threading.Lock] = {}
        self._lock = threading.Lock()
        self._listeners: List[Callable[[Optional[K]], None]] = []

    def get(self, key: K) -> V:
        try:
            return self._values[key]
        except KeyError:
            pass

        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            if key in self._values:
                return self._values[key]
            logger.debug(f"Cache miss, loading {key!r}")
            value = self._loader(key)
            self._values[key] = value
            return value

    def __contains__(self, key: K) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    def on_invalidate(self, listener: Callable[[Optional[K]], None]):
        """Register a hook called with the key (or None for all) on invalidation."""
        self._listeners.append(listener)

    def invalidate(self, key: Optional[K] = None):
        """Drop one key, or everything when key is None."""
        with self._lock:
            if key is None:
                self._values.clear()
                self._key_locks.clear()
            else:
                self._values.pop(key, None)
                self._key_locks.pop(key, None)

        for listener in self._listeners:
            listener(key)

    def clear(self):
        self.invalidate(None)
