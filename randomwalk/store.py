"""Heterogeneous key/value store shared by the nodes of one walk."""

import threading
from typing import Any, Dict, Optional, Type, TypeVar

from randomwalk.exceptions import MissingKeyError

T = TypeVar("T")


class StateStore:
    """Thread-safe bag of values keyed by string.

    ``get`` is strict and raises for unset keys. The typed accessors are
    best-effort and return None for unset or wrong-typed keys.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._values: Dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def get(self, key: str) -> Any:
        with self._lock:
            if key not in self._values:
                raise MissingKeyError(key)
            return self._values[key]

    def get_typed(self, key: str, type_: Type[T]) -> Optional[T]:
        with self._lock:
            value = self._values.get(key)
        try:
            matches = isinstance(value, type_)
        except TypeError:
            # Subscripted generics such as List[int] cannot be checked at runtime
            return None
        return value if matches else None

    def get_string(self, key: str) -> Optional[str]:
        return self.get_typed(key, str)

    def get_long(self, key: str) -> Optional[int]:
        value = self.get_typed(key, int)
        # bool is an int subclass but not a number here
        if isinstance(value, bool):
            return None
        return value

    def snapshot(self) -> Dict[str, Any]:
        """Shallow copy of the current contents."""
        with self._lock:
            return dict(self._values)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._values

    def __len__(self) -> int:
        with self._lock:
            return len(self._values)
