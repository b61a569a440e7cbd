from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Mapping

from dotenv import dotenv_values

logger = logging.getLogger(__name__)

ENV_PREFIX = "CABSTORE_"


def _env_bool(env: Mapping[str, str | None], name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_float(env: Mapping[str, str | None], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("SETTINGS: %s=%r is not a number, using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("SETTINGS: %s=%r is negative, using %s", name, raw, default)
        return default
    return value


def _env_int(env: Mapping[str, str | None], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("SETTINGS: %s=%r is not an integer, using %s", name, raw, default)
        return default
    if value < 1:
        logger.warning("SETTINGS: %s=%r must be at least 1, using %s", name, raw, default)
        return default
    return value


@dataclass(frozen=True)
class Settings:
    # Locking
    lock_timeout: float = 10.0
    lock_initial_backoff: float = 0.001
    lock_max_backoff: float = 0.05

    # Persisting
    write_retries: int = 3
    write_retry_backoff: float = 0.01

    # Move undecodable snapshots aside instead of overwriting them
    quarantine_corrupt: bool = True


def get_settings(
    env_file: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Settings:
    """
    Build Settings from the environment.

    When ``env_file`` is given its values are read with python-dotenv and layered
    underneath the real environment; ``os.environ`` itself is never modified.
    """
    env: dict[str, str | None] = {}
    if env_file is not None:
        env.update(dotenv_values(env_file))
    env.update(os.environ if environ is None else environ)

    defaults = Settings()
    return Settings(
        lock_timeout=_env_float(env, f"{ENV_PREFIX}LOCK_TIMEOUT", defaults.lock_timeout),
        lock_initial_backoff=_env_float(
            env, f"{ENV_PREFIX}LOCK_INITIAL_BACKOFF", defaults.lock_initial_backoff
        ),
        lock_max_backoff=_env_float(env, f"{ENV_PREFIX}LOCK_MAX_BACKOFF", defaults.lock_max_backoff),
        write_retries=_env_int(env, f"{ENV_PREFIX}WRITE_RETRIES", defaults.write_retries),
        write_retry_backoff=_env_float(
            env, f"{ENV_PREFIX}WRITE_RETRY_BACKOFF", defaults.write_retry_backoff
        ),
        quarantine_corrupt=_env_bool(env, f"{ENV_PREFIX}QUARANTINE_CORRUPT", defaults.quarantine_corrupt),
    )
