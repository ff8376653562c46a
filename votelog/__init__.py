"""Append-only per-user vote logs with incremental sync.

A vote (4-bit action, 28-bit target) is packed into one integer and
appended to its user's list in an ordered-list store. Clients read the
list back with an integer cursor that only moves forward.
"""

from .codec import ENCODING_VERSION, Vote, decode, encode
from .errors import (
    IncompatibleEncoding,
    InvalidEvent,
    MalformedImportRow,
    StoreUnavailable,
    VoteLogError,
)
from .log import UserLog
from .sync import SyncPage, normalize_cursor, read_since

__all__ = [
    "ENCODING_VERSION",
    "IncompatibleEncoding",
    "InvalidEvent",
    "MalformedImportRow",
    "StoreUnavailable",
    "SyncPage",
    "UserLog",
    "Vote",
    "VoteLogError",
    "decode",
    "encode",
    "normalize_cursor",
    "read_since",
]
