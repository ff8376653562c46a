"""Abstract ordered-list store the vote log is written to."""

from abc import ABC, abstractmethod


class ListStore(ABC):
    """An external store of named, ordered, append-only lists of strings.

    Implementations must make ``rpush`` a single atomic append per key and
    translate their driver errors into
    :class:`votelog.errors.StoreUnavailable`.
    """

    name: str = "abstract"

    @abstractmethod
    def rpush(self, key: str, value: str) -> int:
        """Append ``value`` to the list at ``key``.

        Returns:
            The length of the list after the append.
        """
        pass

    @abstractmethod
    def lrange(self, key: str, start: int) -> list[str]:
        """Return the entries at positions ``[start, len)``.

        A missing key or a ``start`` past the end yields an empty list.
        """
        pass

    @abstractmethod
    def llen(self, key: str) -> int:
        """Number of entries in the list at ``key`` (0 if missing)."""
        pass

    @abstractmethod
    def set_if_absent(self, key: str, value: str) -> str:
        """Store a scalar under ``key`` unless one exists.

        Returns:
            The value stored under ``key`` after the call.
        """
        pass

    @abstractmethod
    def ping(self) -> bool:
        """Check the store is reachable."""
        pass

    def close(self) -> None:
        """Release any connection held by the store."""
