from __future__ import annotations

from typing import Protocol


class KeyValueStorePort(Protocol):
    """Durable string key/value persistence (OS keychain, encrypted file, memory...).

    Each operation must be atomic for its key. There is no cross-key
    transaction.
    """

    def get(self, key: str) -> str | None:
        """Returns the stored value or None when the key is absent."""
        ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None:
        """Removes the key. Deleting an absent key is not an error."""
        ...
