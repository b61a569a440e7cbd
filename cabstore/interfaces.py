from __future__ import annotations

from typing import Protocol

from .values import Value


class SnapshotStore(Protocol):
    """
    A single serialized snapshot persisted at a fixed location.
    """

    def exists(self) -> bool:
        ...

    def load(self) -> bytes:
        """Return the full snapshot content (raises ResourceUnavailable if it cannot be read)."""
        ...

    def save(self, payload: bytes) -> None:
        """Replace the snapshot atomically."""
        ...


class KeyValueStore(Protocol):
    """
    Minimal DB-friendly interface: string keys mapped to Values.
    """

    def insert(self, key: str, value: Value) -> object: ...
    def get(self, key: str) -> Value | None: ...
    def remove(self, key: str) -> object: ...
    def list_keys(self) -> list[str]: ...
