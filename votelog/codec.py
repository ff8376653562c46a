"""Packing of votes into single integer log entries.

Layout of an encoded entry (``bitpacked-v2``)::

    bits 0-3    action (0-15)
    bits 4-31   target (0 - 2**28-1)

Entries are stored in the list store as decimal strings. The layout is
fixed for the lifetime of a store; the encoding marker written by
:meth:`votelog.log.UserLog.ensure_encoding` guards against mixing layouts.
"""

import re
from dataclasses import dataclass
from typing import Iterable

from .errors import InvalidEvent

ENCODING_VERSION = "bitpacked-v2"

ACTION_BITS = 4
ACTION_MASK = (1 << ACTION_BITS) - 1
TARGET_BITS = 28
MAX_TARGET = (1 << TARGET_BITS) - 1

# Largest value a signed 64-bit decimal field can hold
MAX_INT64 = (1 << 63) - 1

_DECIMAL_RE = re.compile(r"[+-]?[0-9]+", re.ASCII)


@dataclass(frozen=True)
class Vote:
    """A single user action against a single target."""

    action: int
    target: int

    def encode(self) -> int:
        return encode(self.action, self.target)

    def to_pair(self) -> tuple[int, int]:
        return (self.action, self.target)


def _is_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def encode(action: int, target: int) -> int:
    """Pack an action and target into one non-negative integer.

    Raises:
        InvalidEvent: If the action does not fit in 4 bits or the target
            does not fit in the remaining 28 bits.
    """
    if not _is_int(action) or not _is_int(target):
        raise InvalidEvent(
            f"action and target must be integers, got {action!r}, {target!r}"
        )
    if action & ACTION_MASK != action:
        raise InvalidEvent(f"action {action} does not fit in {ACTION_BITS} bits")
    if target < 0 or target > MAX_TARGET:
        raise InvalidEvent(f"target {target} does not fit in {TARGET_BITS} bits")

    return (target << ACTION_BITS) | action


def decode(value: int) -> Vote:
    """Unpack an encoded entry. Only masks, never validates."""
    return Vote(action=value & ACTION_MASK, target=value >> ACTION_BITS)


def parse_decimal(raw: str) -> int:
    """Parse a signed 64-bit decimal integer.

    Only ASCII digits with an optional sign are accepted, and the value
    must fit in an int64.

    Raises:
        ValueError: If ``raw`` is not such a number.
    """
    if not _DECIMAL_RE.fullmatch(raw):
        raise ValueError(f"not a decimal integer: {raw!r}")
    value = int(raw)
    if value > MAX_INT64 or value < -MAX_INT64 - 1:
        raise ValueError(f"{raw} is out of the 64-bit range")
    return value


def parse_entry(raw: str | bytes) -> int:
    """Parse the decimal string form an entry is stored as."""
    if isinstance(raw, bytes):
        raw = raw.decode("ascii")
    return int(raw)


def flatten(votes: Iterable[Vote]) -> list[int]:
    """Flatten votes into ``[action0, target0, action1, target1, ...]``."""
    flat: list[int] = []
    for vote in votes:
        flat.append(vote.action)
        flat.append(vote.target)
    return flat


def unflatten(flat: list[int]) -> list[Vote]:
    """Inverse of :func:`flatten`."""
    if len(flat) % 2:
        raise ValueError(f"flattened votes must have even length, got {len(flat)}")
    return [Vote(action=flat[i], target=flat[i + 1]) for i in range(0, len(flat), 2)]
