"""Single-flight memoization for expensive shared handles."""

import threading
from concurrent.futures import Future
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Callable, Generic, Optional, TypeVar

from randomwalk.exceptions import ResourceClosedError, ResourceTimeoutError
from randomwalk.logging_config import get_logger

logger = get_logger("state")

T = TypeVar("T")


class SingleFlight(Generic[T]):
    """Builds a value at most once, even when requested concurrently.

    The first caller runs the factory; callers arriving while it runs wait
    on the same future and receive the same value or the same exception.
    A failed construction is forgotten so the next request starts a new one.
    """

    def __init__(
        self,
        name: str,
        factory: Callable[[], T],
        timeout: Optional[float] = None,
    ):
        self.name = name
        self._factory = factory
        self._timeout = timeout
        self._lock = threading.Lock()
        self._future: Optional[Future] = None
        self._closed = False

    def get(self) -> T:
        with self._lock:
            if self._closed:
                raise ResourceClosedError(f"{self.name} has been released")
            future = self._future
            owner = future is None
            if owner:
                future = self._future = Future()

        if not owner:
            try:
                return future.result(timeout=self._timeout)
            except FutureTimeoutError:
                raise ResourceTimeoutError(
                    f"Timed out after {self._timeout}s waiting for {self.name}"
                ) from None

        logger.debug(f"Constructing {self.name}")
        try:
            value = self._factory()
        except BaseException as e:
            with self._lock:
                self._future = None
            future.set_exception(e)
            raise
        future.set_result(value)
        logger.debug(f"Constructed {self.name}")
        return value

    def peek(self) -> Optional[T]:
        """Return the built value without constructing it, or None."""
        with self._lock:
            future = self._future
        if future is not None and future.done() and future.exception() is None:
            return future.result()
        return None

    def is_resolved(self) -> bool:
        return self.peek() is not None

    def close(self) -> Optional[T]:
        """Refuse further requests and hand back the built value, if any.

        A construction still in flight is awaited so its result can be
        released by the caller.
        """
        with self._lock:
            self._closed = True
            future, self._future = self._future, None
        if future is None:
            return None
        try:
            if future.exception(timeout=self._timeout) is not None:
                return None
        except FutureTimeoutError:
            logger.warning(
                f"Gave up waiting for {self.name} while closing",
                extra={"resource": self.name, "timeout": self._timeout},
            )
            return None
        return future.result()
