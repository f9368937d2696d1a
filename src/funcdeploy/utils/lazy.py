"""At-most-once lazy initialization."""

import threading
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class Lazy(Generic[T]):
    """Runs ``factory`` once on first use and caches the outcome.

    A failed initialization is cached as well: later calls re-raise the same
    exception instead of retrying.
    """

    def __init__(self, factory: Callable[[], T]):
        self._factory = factory
        self._lock = threading.Lock()
        self._initialized = False
        self._value: Optional[T] = None
        self._error: Optional[BaseException] = None

    @property
    def initialized(self) -> bool:
        return self._initialized

    def get(self) -> T:
        if not self._initialized:
            with self._lock:
                if not self._initialized:
                    try:
                        self._value = self._factory()
                    except Exception as e:
                        self._error = e
                    self._initialized = True
        if self._error is not None:
            raise self._error
        return self._value  # type: ignore[return-value]
