"""Per-user append-only vote logs on top of a list store."""

import logging

from .codec import ENCODING_VERSION, MAX_INT64, Vote, encode, parse_entry
from .errors import IncompatibleEncoding, InvalidEvent
from .store.base import ListStore

logger = logging.getLogger(__name__)

ENCODING_KEY = "votelog:encoding"


class UserLog:
    """Append-only vote log per user, one store list per user id.

    Ordering of concurrent appends for one user is whatever the store's
    own append gives; this class holds no locks.
    """

    def __init__(self, store: ListStore):
        """Initialize the log.

        Args:
            store: The list store holding every user's entries.
        """
        self.store = store

    @staticmethod
    def key_for(user_id: str) -> str:
        """Name of the store list holding ``user_id``'s log."""
        if not isinstance(user_id, str) or not user_id:
            raise InvalidEvent(f"user id must be a non-empty string, got {user_id!r}")
        return f"user:{user_id}:votes"

    def ensure_encoding(self) -> str:
        """Record this build's entry encoding in the store, or check it.

        Returns:
            The encoding version stored.

        Raises:
            IncompatibleEncoding: If the store was written with another
                encoding.
        """
        found = self.store.set_if_absent(ENCODING_KEY, ENCODING_VERSION)
        if found != ENCODING_VERSION:
            raise IncompatibleEncoding(ENCODING_VERSION, found)
        return found

    def append(self, user_id: str, vote: Vote) -> int:
        """Append a vote to the user's log.

        Returns:
            The log length after the append.

        Raises:
            InvalidEvent: If the vote cannot be encoded. Nothing is written.
            StoreUnavailable: If the store append failed.
        """
        key = self.key_for(user_id)
        value = encode(vote.action, vote.target)
        length = self.store.rpush(key, str(value))
        logger.debug(f"{key} += {value} (action={vote.action}, target={vote.target})")
        return length

    def append_event(self, user_id: str, action: int, target: int) -> int:
        """Validate and append a raw ``(action, target)`` pair."""
        return self.append(user_id, Vote(action=action, target=target))

    def read_from(self, user_id: str, start: int = 0) -> list[int]:
        """Encoded entries at positions ``[start, length)``, in append order."""
        key = self.key_for(user_id)
        if start < 0:
            raise ValueError(f"start must be non-negative, got {start}")
        if start > MAX_INT64:
            return []
        raw = self.store.lrange(key, start)
        return [parse_entry(value) for value in raw]

    def length(self, user_id: str) -> int:
        """Number of entries currently in the user's log."""
        return self.store.llen(self.key_for(user_id))
