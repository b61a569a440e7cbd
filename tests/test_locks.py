from __future__ import annotations

import threading
import time

import filelock
import pytest

from cabstore.errors import LockTimeout, ResourceUnavailable
from cabstore.locks import FileLock, LockState, PathLockRegistry


@pytest.fixture
def resource(tmp_path):
    p = tmp_path / "lock-target.cab"
    p.write_bytes(b"{}")
    return p


def _lock(path, **kw) -> FileLock:
    kw.setdefault("timeout", 0.3)
    kw.setdefault("max_backoff", 0.01)
    return FileLock(path, **kw)


def test_acquire_and_release_flip_state(resource):
    lock = _lock(resource)
    assert lock.state is LockState.FREE

    assert lock.wait_until_free(True) is True
    assert lock.state is LockState.LOCKED
    assert lock.lock_path.exists()

    assert lock.release() is True
    assert lock.state is LockState.FREE


def test_release_when_free_is_a_noop(resource):
    lock = _lock(resource)
    assert lock.release() is False
    assert lock.state is LockState.FREE


def test_wait_without_acquire_leaves_lock_free(resource):
    lock = _lock(resource)
    assert lock.wait_until_free(False) is True
    assert lock.state is LockState.FREE
    # still acquirable by someone else right away
    with _lock(resource).hold():
        pass


def test_missing_resource_fails_immediately(tmp_path):
    lock = _lock(tmp_path / "missing.cab", timeout=5.0)
    start = time.monotonic()
    with pytest.raises(ResourceUnavailable):
        lock.wait_until_free(True)
    assert time.monotonic() - start < 1.0
    assert lock.state is LockState.FREE


def test_missing_resource_allowed_when_not_required(tmp_path):
    lock = _lock(tmp_path / "not-yet.cab")
    with lock.hold(require_resource=False):
        assert lock.state is LockState.LOCKED
    assert lock.state is LockState.FREE


def test_second_holder_in_process_times_out(resource):
    first = _lock(resource)
    second = _lock(resource, timeout=0.1)
    with first.hold():
        with pytest.raises(LockTimeout):
            second.wait_until_free(True)
    assert second.state is LockState.FREE
    # after the first holder is gone the second gets in
    with second.hold():
        assert second.state is LockState.LOCKED


def test_os_lock_held_elsewhere_blocks_acquire(resource):
    # a fresh registry isolates us from the in-process guard, so only the OS lock is in play
    ours = _lock(resource, timeout=0.1, registry=PathLockRegistry())
    other = filelock.FileLock(str(ours.lock_path))
    other.acquire()
    try:
        with pytest.raises(LockTimeout):
            ours.wait_until_free(True)
    finally:
        other.release()
    with ours.hold():
        assert ours.state is LockState.LOCKED


def test_stale_lock_file_does_not_block(resource):
    lock = _lock(resource)
    # a holder that crashed leaves the sidecar behind but no OS lock
    lock.lock_path.write_text("")
    with lock.hold():
        assert lock.state is LockState.LOCKED


def test_waiter_gets_lock_once_holder_releases(resource):
    holder = _lock(resource)
    waiter = _lock(resource, timeout=5.0)
    holder.wait_until_free(True)

    acquired = threading.Event()

    def _wait():
        with waiter.hold():
            acquired.set()

    t = threading.Thread(target=_wait)
    t.start()
    time.sleep(0.05)
    assert not acquired.is_set()

    holder.release()
    t.join(timeout=5.0)
    assert acquired.is_set()


def test_registry_returns_same_lock_per_path(tmp_path):
    reg = PathLockRegistry()
    (tmp_path / "x").mkdir()
    a = reg.lock_for(tmp_path / "x" / ".." / "a.cab")
    b = reg.lock_for(tmp_path / "a.cab")
    c = reg.lock_for(tmp_path / "b.cab")
    assert a is b
    assert a is not c
