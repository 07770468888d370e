# app/core/lazy.py
import threading
from typing import Callable, Generic, TypeVar

T = TypeVar("T")


class LazyService(Generic[T]):
    """
    Build-once holder for a domain service.

    - `get()` returns the cached instance, building it on first use with
      double-checked locking (lock-free fast path, re-check under lock).
    - `init()` builds eagerly and replaces any cached instance; used at
      bootstrap where a fallible builder should fail fast.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._instance: T | None = None
        self._lock = threading.Lock()

    def get(self) -> T:
        instance = self._instance
        if instance is not None:
            return instance

        with self._lock:
            if self._instance is None:
                self._instance = self._factory()
            return self._instance

    def init(self, factory: Callable[[], T] | None = None) -> T:
        build = factory or self._factory
        with self._lock:
            self._instance = build()
            return self._instance

    @property
    def initialized(self) -> bool:
        return self._instance is not None
