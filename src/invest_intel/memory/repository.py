"""Key/value repositories behind the alert log and performance trackers."""

import os
import threading
from typing import Any, Protocol

import diskcache


class Store(Protocol):
    """Insertion-ordered mapping of string ids to records."""

    def get(self, key: str) -> Any | None: ...

    def put(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> bool: ...

    def values(self) -> list[Any]: ...

    def clear(self) -> None: ...

    def __contains__(self, key: object) -> bool: ...

    def __len__(self) -> int: ...


class InMemoryStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self) -> None:
        self._data: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._data[key] = value

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def values(self) -> list[Any]:
        with self._lock:
            return list(self._data.values())

    def clear(self) -> None:
        with self._lock:
            self._data.clear()

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)


class DiskStore:
    """
    Durable store on a diskcache Index.

    Records are pickled, so a record mutated in place must be put back
    to persist the change.
    """

    def __init__(self, name: str, directory: str | None = None):
        if directory is None:
            directory = os.environ.get("INVEST_STORE_DIR", ".cache/invest-intel")
        self.path = os.path.join(directory, name)
        self.index: diskcache.Index = diskcache.Index(self.path)

    def get(self, key: str) -> Any | None:
        return self.index.get(key)

    def put(self, key: str, value: Any) -> None:
        self.index[key] = value

    def delete(self, key: str) -> bool:
        return self.index.pop(key, None) is not None

    def values(self) -> list[Any]:
        return list(self.index.values())

    def clear(self) -> None:
        self.index.clear()

    def __contains__(self, key: object) -> bool:
        return key in self.index

    def __len__(self) -> int:
        return len(self.index)
