"""Key-value storage used to hand results between redirect flow participants."""

from __future__ import annotations

from typing import Protocol

KEY_SEPARATOR = ":"


class Storage(Protocol):
    """Minimal key-value capability. Implementations may be shared."""

    def get(self, key: str) -> str | None:
        """Return the value stored under ``key``, or ``None``."""
        ...

    def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete ``key``. Removing a missing key is not an error."""
        ...


class MemoryStorage:
    """Storage kept in a dictionary for the lifetime of the process."""

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = data if data is not None else {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def prefix(self, name: str) -> PrefixedStorage:
        """Return a view of this storage with keys namespaced under ``name``."""
        return PrefixedStorage(self, name)

    def keys(self) -> list[str]:
        return list(self._data)

    def __len__(self) -> int:
        return len(self._data)


class PrefixedStorage:
    """Namespaced view of another storage."""

    def __init__(self, storage: Storage, key_prefix: str) -> None:
        self._storage = storage
        self._key_prefix = key_prefix

    def _key(self, key: str) -> str:
        return f"{self._key_prefix}{KEY_SEPARATOR}{key}"

    def get(self, key: str) -> str | None:
        return self._storage.get(self._key(key))

    def set(self, key: str, value: str) -> None:
        self._storage.set(self._key(key), value)

    def remove(self, key: str) -> None:
        self._storage.remove(self._key(key))

    def prefix(self, name: str) -> PrefixedStorage:
        return PrefixedStorage(self, name)
