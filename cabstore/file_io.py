from __future__ import annotations

import os
from pathlib import Path

from .paths import ensure_dir, tmp_path_for


def read_bytes(path: Path) -> bytes | None:
    """
    Read the full content of a file.

    Returns None when the file does not exist. Other I/O errors propagate.
    """
    try:
        with path.open("rb") as f:
            return f.read()
    except FileNotFoundError:
        return None


def atomic_write_bytes(path: Path, payload: bytes) -> None:
    """
    Atomically replace a file's content by writing a temp file, fsyncing it, then replacing.
    """
    ensure_dir(path.parent)
    tmp_path = tmp_path_for(path)
    with tmp_path.open("wb") as f:
        f.write(payload)
        f.flush()
        os.fsync(f.fileno())
    tmp_path.replace(path)
