from __future__ import annotations

from geocar_client.application.ports.key_value_store_port import KeyValueStorePort


class InMemoryKeyValueStore(KeyValueStorePort):
    """Simple in-memory store for tests and ephemeral sessions. Not persistent."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)
