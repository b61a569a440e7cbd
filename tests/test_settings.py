from __future__ import annotations

from cabstore.settings import Settings, get_settings


def test_defaults_with_empty_environment():
    assert get_settings(environ={}) == Settings()


def test_environment_overrides():
    s = get_settings(
        environ={
            "CABSTORE_LOCK_TIMEOUT": "2.5",
            "CABSTORE_LOCK_INITIAL_BACKOFF": "0.002",
            "CABSTORE_LOCK_MAX_BACKOFF": "0.2",
            "CABSTORE_WRITE_RETRIES": "5",
            "CABSTORE_WRITE_RETRY_BACKOFF": "0.1",
            "CABSTORE_QUARANTINE_CORRUPT": "off",
        }
    )
    assert s == Settings(
        lock_timeout=2.5,
        lock_initial_backoff=0.002,
        lock_max_backoff=0.2,
        write_retries=5,
        write_retry_backoff=0.1,
        quarantine_corrupt=False,
    )


def test_invalid_values_fall_back_to_defaults(caplog):
    s = get_settings(
        environ={
            "CABSTORE_LOCK_TIMEOUT": "soon",
            "CABSTORE_WRITE_RETRIES": "0",
            "CABSTORE_LOCK_MAX_BACKOFF": "-1",
        }
    )
    assert s.lock_timeout == Settings.lock_timeout
    assert s.write_retries == Settings.write_retries
    assert s.lock_max_backoff == Settings.lock_max_backoff
    assert "CABSTORE_LOCK_TIMEOUT" in caplog.text


def test_env_file_is_layered_under_environment(tmp_path):
    env_file = tmp_path / "local.env"
    env_file.write_text("CABSTORE_LOCK_TIMEOUT=3\nCABSTORE_WRITE_RETRIES=7\n", encoding="utf-8")

    s = get_settings(env_file=env_file, environ={"CABSTORE_WRITE_RETRIES": "2"})
    assert s.lock_timeout == 3.0
    assert s.write_retries == 2


def test_missing_env_file_is_ignored(tmp_path):
    assert get_settings(env_file=tmp_path / "nope.env", environ={}) == Settings()
