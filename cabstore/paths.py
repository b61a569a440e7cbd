from __future__ import annotations

from pathlib import Path


def ensure_dir(path: Path) -> Path:
    path.mkdir(parents=True, exist_ok=True)
    return path


def _sidecar(path: Path, suffix: str) -> Path:
    return path.with_name(path.name + suffix)


def lock_path_for(path: Path) -> Path:
    return _sidecar(path, ".lock")


def tmp_path_for(path: Path) -> Path:
    return _sidecar(path, ".tmp")


def quarantine_path_for(path: Path, n: int = 0) -> Path:
    return _sidecar(path, ".corrupt" if n == 0 else f".corrupt.{n}")
