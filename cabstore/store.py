from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable

from .codec import copy_value, decode, encode
from .disk_store import SnapshotFile
from .errors import CabError, DecodeFailure, LockTimeout, ResourceUnavailable, WriteFailure
from .interfaces import KeyValueStore
from .locks import FileLock
from .paths import ensure_dir
from .settings import Settings, get_settings
from .values import Entries, Value, to_value

logger = logging.getLogger(__name__)


class OpenOutcome(str, Enum):
    LOADED = "loaded"
    CREATED = "created"
    # the file existed but did not decode; the store started empty
    RECOVERED_EMPTY = "recovered_empty"
    # the file could not be read or locked; the store started empty
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class OpResult:
    ok: bool
    error: str | None = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def succeeded(cls) -> "OpResult":
        return cls(ok=True)

    @classmethod
    def failed(cls, error: str) -> "OpResult":
        return cls(ok=False, error=error)


class CabStore(KeyValueStore):
    """
    A key-value store mirrored to a single file (the "cab").

    Every operation takes the cab's FileLock, reloads the whole snapshot from
    disk, acts, and (for mutations) rewrites the whole snapshot before
    releasing the lock. Values are never served from a cache that could be
    stale with respect to another instance sharing the same path.

    Use ``CabStore.open(path)`` to construct one.
    """

    def __init__(self, path: str | os.PathLike[str], *, settings: Settings | None = None):
        self._path = Path(path)
        self._settings = settings or get_settings()
        self._snapshot = SnapshotFile(self._path)
        self._lock = FileLock(
            self._path,
            timeout=self._settings.lock_timeout,
            initial_backoff=self._settings.lock_initial_backoff,
            max_backoff=self._settings.lock_max_backoff,
        )
        self._entries: Entries = {}
        self._open_outcome = OpenOutcome.CREATED
        self._quarantined_path: Path | None = None
        self._initialize()

    @classmethod
    def open(cls, path: str | os.PathLike[str], settings: Settings | None = None) -> "CabStore":
        return cls(path, settings=settings)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def open_outcome(self) -> OpenOutcome:
        return self._open_outcome

    @property
    def quarantined_path(self) -> Path | None:
        """Where undecodable bytes were moved to, if that ever happened."""
        return self._quarantined_path

    def __repr__(self) -> str:
        return f"CabStore(path={str(self._path)!r}, open_outcome={self._open_outcome.value!r})"

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def insert(self, key: str, value: Value | Any) -> OpResult:
        """Insert or replace ``key``. Plain str/int/float/dict values are converted."""
        if not isinstance(key, str):
            return OpResult.failed("key must be a str")
        try:
            converted = to_value(value)
        except TypeError as e:
            logger.warning("CAB INSERT: rejected value for %r: %s", key, e)
            return OpResult.failed(str(e))

        def _put(entries: Entries) -> None:
            entries[key] = converted

        return self._mutate("INSERT", key, _put)

    def get(self, key: str) -> Value | None:
        entries = self._load_locked("GET")
        if entries is None:
            return None
        value = entries.get(key)
        return None if value is None else copy_value(value)

    def remove(self, key: str) -> OpResult:
        def _drop(entries: Entries) -> None:
            entries.pop(key, None)

        return self._mutate("REMOVE", key, _drop)

    def list_keys(self) -> list[str]:
        entries = self._load_locked("KEYS")
        if entries is None:
            return []
        return list(entries.keys())

    # ------------------------------------------------------------------
    # Transaction plumbing
    # ------------------------------------------------------------------

    def _initialize(self) -> None:
        try:
            ensure_dir(self._path.parent)
        except OSError as e:
            raise WriteFailure(f"cannot create directory for {self._path}: {e}") from e

        try:
            with self._lock.hold(require_resource=False):
                if not self._snapshot.exists():
                    self._persist({})
                    self._open_outcome = OpenOutcome.CREATED
                    logger.info("CAB OPEN: created empty cab at %s", self._path)
                    return
                try:
                    self._reload()
                except DecodeFailure as e:
                    logger.warning("CAB OPEN: %s (%s); starting with an empty cab", self._path, e)
                    self._recover_corrupt()
                    self._entries = {}
                    self._persist(self._entries)
                    self._open_outcome = OpenOutcome.RECOVERED_EMPTY
                    return
                self._open_outcome = OpenOutcome.LOADED
                logger.debug("CAB OPEN: loaded %d keys from %s", len(self._entries), self._path)
        except (ResourceUnavailable, LockTimeout) as e:
            logger.warning("CAB OPEN: %s unavailable (%s); starting with an empty cab", self._path, e)
            self._entries = {}
            self._open_outcome = OpenOutcome.UNAVAILABLE

    def _reload(self) -> None:
        self._entries = decode(self._snapshot.load())

    def _load_locked(self, action: str) -> Entries | None:
        try:
            with self._lock.hold():
                self._reload()
                return self._entries
        except CabError as e:
            logger.warning("CAB %s: reload of %s failed: %s", action, self._path, e)
            return None

    def _mutate(self, action: str, key: str, change: Callable[[Entries], None]) -> OpResult:
        try:
            with self._lock.hold():
                try:
                    self._reload()
                except DecodeFailure as e:
                    logger.warning("CAB %s: %s (%s); continuing from last good cab", action, self._path, e)
                    self._recover_corrupt()
                entries = dict(self._entries)
                change(entries)
                self._persist(entries)
                self._entries = entries
        except CabError as e:
            logger.warning("CAB %s: %r on %s failed: %s", action, key, self._path, e)
            return OpResult.failed(str(e))
        logger.debug("CAB %s: %r on %s", action, key, self._path)
        return OpResult.succeeded()

    def _recover_corrupt(self) -> None:
        if not self._settings.quarantine_corrupt:
            return
        try:
            self._quarantined_path = self._snapshot.quarantine()
        except OSError as e:
            raise WriteFailure(f"cannot quarantine {self._path}: {e}") from e

    def _persist(self, entries: Entries) -> None:
        payload = encode(entries)
        retries = self._settings.write_retries
        delay = self._settings.write_retry_backoff
        last_error: OSError | None = None
        for attempt in range(1, retries + 1):
            try:
                self._snapshot.save(payload)
                return
            except OSError as e:
                last_error = e
                logger.error("CAB PERSIST: write to %s failed (attempt %d/%d): %r", self._path, attempt, retries, e)
                if attempt < retries:
                    time.sleep(delay)
                    delay *= 2
        raise WriteFailure(f"could not write {self._path} after {retries} attempts") from last_error
