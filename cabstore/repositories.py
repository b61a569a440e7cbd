from __future__ import annotations

import asyncio
import os
from typing import Any

from .settings import Settings
from .store import CabStore, OpenOutcome, OpResult
from .values import Value


class AsyncCabStore:
    """
    Async wrapper around CabStore.
    Uses asyncio.to_thread to avoid blocking the event loop on file I/O and lock waits.
    """

    def __init__(self, store: CabStore) -> None:
        self._store = store

    @classmethod
    async def open(cls, path: str | os.PathLike[str], settings: Settings | None = None) -> "AsyncCabStore":
        store = await asyncio.to_thread(CabStore.open, path, settings)
        return cls(store)

    @property
    def sync(self) -> CabStore:
        return self._store

    @property
    def open_outcome(self) -> OpenOutcome:
        return self._store.open_outcome

    async def insert(self, key: str, value: Value | Any) -> OpResult:
        return await asyncio.to_thread(self._store.insert, key, value)

    async def get(self, key: str) -> Value | None:
        return await asyncio.to_thread(self._store.get, key)

    async def remove(self, key: str) -> OpResult:
        return await asyncio.to_thread(self._store.remove, key)

    async def list_keys(self) -> list[str]:
        return await asyncio.to_thread(self._store.list_keys)
