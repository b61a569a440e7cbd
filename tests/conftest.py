from __future__ import annotations

from pathlib import Path
import sys


import pytest


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for `import cabstore` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def cab_path(tmp_path: Path) -> Path:
    """
    A not-yet-existing cab file inside a per-test temp directory.
    """
    return tmp_path / "data" / "test.cab"


@pytest.fixture
def fast_settings():
    """
    Settings with short timeouts so failure paths don't slow the suite down.
    """
    from cabstore.settings import Settings

    return Settings(
        lock_timeout=0.5,
        lock_initial_backoff=0.001,
        lock_max_backoff=0.01,
        write_retries=3,
        write_retry_backoff=0.0,
        quarantine_corrupt=True,
    )
