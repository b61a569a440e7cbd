from __future__ import annotations

import logging
from pathlib import Path

from .errors import ResourceUnavailable
from .file_io import atomic_write_bytes, read_bytes
from .interfaces import SnapshotStore
from .paths import quarantine_path_for

logger = logging.getLogger(__name__)


class SnapshotFile(SnapshotStore):
    """
    Stores a single cab snapshot on disk at a fixed path.

    - ``load`` raises ResourceUnavailable for missing/unreadable files.
    - ``save`` writes atomically, so readers never see a torn snapshot.

    Callers are expected to hold the cab's FileLock around every call.
    """

    def __init__(self, path: Path):
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.exists()

    def load(self) -> bytes:
        try:
            payload = read_bytes(self._path)
        except OSError as e:
            raise ResourceUnavailable(f"cannot read {self._path}: {e}") from e
        if payload is None:
            raise ResourceUnavailable(f"{self._path} doesn't exist")
        return payload

    def save(self, payload: bytes) -> None:
        atomic_write_bytes(self._path, payload)

    def quarantine(self) -> Path:
        """
        Copy the current (undecodable) content to ``<path>.corrupt[.N]`` and return where it went.

        Earlier quarantined copies are never overwritten; if one already holds
        identical bytes it is reused. The snapshot itself stays in place until
        the next ``save`` replaces it.
        """
        payload = self.load()
        n = 0
        while True:
            target = quarantine_path_for(self._path, n)
            existing = read_bytes(target)
            if existing is None:
                break
            if existing == payload:
                logger.warning("CAB QUARANTINE: %s already preserved in %s", self._path, target)
                return target
            n += 1
        atomic_write_bytes(target, payload)
        logger.error("CAB QUARANTINE: copied undecodable snapshot %s to %s", self._path, target)
        return target
