"""Incremental reads of a user log with an integer sync cursor.

A cursor is the number of entries the caller has already seen. Reading
with cursor ``c`` returns entries ``[c, length)`` and hands back
``nextSyncId = c + len(entries)`` for the next poll. Replaying a cursor is
always safe, so a cursor that cannot be understood is read as 0.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Iterator

from .codec import MAX_INT64, Vote, decode, flatten, parse_decimal
from .log import UserLog

logger = logging.getLogger(__name__)


@dataclass
class SyncPage:
    """Votes returned by one read, with the cursor to continue from."""

    cursor: int
    next_sync_id: int
    votes: list[Vote] = field(default_factory=list)
    duration_ms: int = 0

    def to_response(self) -> dict[str, Any]:
        """Wire form used by ``GET /votes/{userId}``."""
        return {
            "votes": flatten(self.votes),
            "nextSyncId": self.next_sync_id,
            "duration": self.duration_ms,
        }


def normalize_cursor(raw: Any) -> int:
    """Turn a client-supplied cursor into a non-negative offset.

    Missing, unparsable or negative cursors become 0, as do cursors
    beyond the int64 range.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        cursor = raw if raw <= MAX_INT64 else 0
    else:
        try:
            cursor = parse_decimal(str(raw).strip())
        except ValueError:
            logger.debug(f"Unparsable sync cursor {raw!r}, reading from 0")
            return 0
    return cursor if cursor >= 0 else 0


def read_since(log: UserLog, user_id: str, cursor: Any = None) -> SyncPage:
    """Read every vote appended to ``user_id``'s log since ``cursor``."""
    started = time.monotonic()

    start = normalize_cursor(cursor)
    entries = log.read_from(user_id, start)
    votes = [decode(value) for value in entries]

    return SyncPage(
        cursor=start,
        next_sync_id=start + len(entries),
        votes=votes,
        duration_ms=int((time.monotonic() - started) * 1000),
    )


def iter_pages(
    log: UserLog,
    user_id: str,
    cursor: Any = None,
    page_size: int | None = None,
) -> Iterator[SyncPage]:
    """Read a log in pages until caught up with its current end.

    Args:
        log: The user log to read.
        user_id: Whose log.
        cursor: Where to start.
        page_size: Maximum votes per page. None yields one page.

    Yields:
        Non-empty SyncPage objects, each continuing from the last.
    """
    if page_size is not None and page_size < 1:
        raise ValueError("page_size must be at least 1")

    page = read_since(log, user_id, cursor)
    if page_size is None:
        if page.votes:
            yield page
        return

    start = page.cursor
    for offset in range(0, len(page.votes), page_size):
        chunk = page.votes[offset:offset + page_size]
        yield SyncPage(
            cursor=start + offset,
            next_sync_id=start + offset + len(chunk),
            votes=chunk,
            duration_ms=page.duration_ms,
        )
