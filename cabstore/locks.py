"""
Advisory locking for a cab file.

A holder owns two locks, always taken in this order:

1. a per-path ``threading.Lock`` from ``PathLockRegistry``, which serializes
   threads of this process without touching the filesystem;
2. an OS advisory lock on the ``<path>.lock`` sidecar (via ``filelock``), which
   serializes processes. The OS drops it when the holding process dies, so a
   crashed holder never leaves the cab locked.

Waiting is done with non-blocking attempts and exponential backoff, bounded by
a timeout. LOCKED always means "this holder owns the OS lock"; the data file's
permission bits are never used.
"""

from __future__ import annotations

import logging
import os
import threading
import time
from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Iterator

import filelock

from .errors import LockTimeout, ResourceUnavailable
from .paths import lock_path_for

logger = logging.getLogger(__name__)


class PathLockRegistry:
    """
    Provides a stable lock per normalized file path to avoid global contention.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    def lock_for(self, path: Path) -> threading.Lock:
        key = str(path.resolve())
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


GLOBAL_PATH_LOCKS = PathLockRegistry()


class LockState(str, Enum):
    FREE = "free"
    LOCKED = "locked"


class FileLock:
    def __init__(
        self,
        resource: Path,
        *,
        timeout: float = 10.0,
        initial_backoff: float = 0.001,
        max_backoff: float = 0.05,
        registry: PathLockRegistry = GLOBAL_PATH_LOCKS,
    ) -> None:
        self._resource = Path(resource)
        self._timeout = timeout
        self._initial_backoff = initial_backoff
        self._max_backoff = max(max_backoff, initial_backoff)
        self._thread_lock = registry.lock_for(self._resource)
        # thread_local=False: acquire/release bookkeeping is already serialized by _thread_lock
        self._os_lock = filelock.FileLock(str(lock_path_for(self._resource)), thread_local=False)
        self._held = False

    @property
    def resource(self) -> Path:
        return self._resource

    @property
    def lock_path(self) -> Path:
        return Path(self._os_lock.lock_file)

    @property
    def state(self) -> LockState:
        return LockState.LOCKED if self._held else LockState.FREE

    def wait_until_free(self, acquire: bool, *, require_resource: bool = True) -> bool:
        """
        Block until no other holder owns the lock.

        With ``acquire=True`` the caller leaves as the holder and must call
        ``release()``. With ``acquire=False`` the lock is handed straight back.

        Raises ResourceUnavailable if the guarded file is missing or unreadable
        (checked once, no retry) and LockTimeout if the wait exceeds the timeout.
        """
        if require_resource:
            self._check_resource()

        deadline = time.monotonic() + self._timeout
        if not self._thread_lock.acquire(timeout=self._timeout):
            raise LockTimeout(f"timed out after {self._timeout}s waiting for {self._resource}")
        try:
            self._acquire_os_lock(deadline)
        except BaseException:
            self._thread_lock.release()
            raise

        if acquire:
            self._held = True
            logger.debug("CAB LOCK: acquired %s", self.lock_path)
        else:
            self._os_lock.release()
            self._thread_lock.release()
        return True

    def release(self) -> bool:
        """Hand the lock back. Returns False if this holder did not own it."""
        if not self._held:
            return False
        self._held = False
        try:
            self._os_lock.release()
        finally:
            self._thread_lock.release()
        logger.debug("CAB LOCK: released %s", self.lock_path)
        return True

    @contextmanager
    def hold(self, *, require_resource: bool = True) -> Iterator[FileLock]:
        self.wait_until_free(True, require_resource=require_resource)
        try:
            yield self
        finally:
            self.release()

    def _check_resource(self) -> None:
        try:
            self._resource.stat()
        except OSError as e:
            raise ResourceUnavailable(f"{self._resource} doesn't exist or is not readable") from e
        if not os.access(self._resource, os.R_OK):
            raise ResourceUnavailable(f"{self._resource} is not readable")

    def _acquire_os_lock(self, deadline: float) -> None:
        delay = self._initial_backoff
        attempts = 0
        while True:
            attempts += 1
            try:
                self._os_lock.acquire(blocking=False)
                if attempts > 1:
                    logger.debug("CAB LOCK: %s free after %d attempts", self.lock_path, attempts)
                return
            except filelock.Timeout:
                pass
            except OSError as e:
                raise ResourceUnavailable(f"cannot open lock file {self.lock_path}: {e}") from e

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise LockTimeout(f"timed out after {self._timeout}s waiting for {self.lock_path}")
            time.sleep(min(delay, remaining))
            delay = min(delay * 2, self._max_backoff)
