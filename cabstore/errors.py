from __future__ import annotations


class CabError(Exception):
    """Base class for every failure raised by cabstore."""


class ResourceUnavailable(CabError):
    """The backing file is missing or cannot be read."""


class DecodeFailure(CabError):
    """A snapshot payload is corrupt or does not match the value model."""


class EncodeFailure(CabError):
    """A mapping could not be serialized."""


class WriteFailure(CabError):
    """Creating or rewriting the backing file failed after all retries."""


class LockTimeout(CabError):
    """The file lock was not obtained before the configured timeout."""
