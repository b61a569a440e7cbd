from __future__ import annotations

from .codec import decode, encode
from .errors import CabError, DecodeFailure, EncodeFailure, LockTimeout, ResourceUnavailable, WriteFailure
from .locks import FileLock, LockState
from .repositories import AsyncCabStore
from .settings import Settings, get_settings
from .store import CabStore, OpenOutcome, OpResult
from .values import Entries, FloatValue, IntValue, MapValue, StringValue, Value, to_value

__all__ = [
    "CabStore",
    "AsyncCabStore",
    "OpenOutcome",
    "OpResult",
    "FileLock",
    "LockState",
    "encode",
    "decode",
    "Value",
    "Entries",
    "StringValue",
    "IntValue",
    "FloatValue",
    "MapValue",
    "to_value",
    "Settings",
    "get_settings",
    "CabError",
    "ResourceUnavailable",
    "DecodeFailure",
    "EncodeFailure",
    "WriteFailure",
    "LockTimeout",
]
