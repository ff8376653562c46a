"""HTTP client for a votelog server.

Follows users' logs with the sync cursor protocol: each poll sends the
``nextSyncId`` the previous one returned, so every vote is seen once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable

import httpx

from .codec import Vote, unflatten

logger = logging.getLogger(__name__)


class FetchStatus(Enum):
    """Status of a client request."""

    SUCCESS = "success"
    FAILED = "failed"
    OFFLINE = "offline"  # Server unreachable


@dataclass
class FetchResult:
    """Result of a client request."""

    status: FetchStatus
    votes: list[Vote] = field(default_factory=list)
    next_sync_id: int | None = None
    error: str | None = None
    timestamp: datetime | None = None


class VoteClient:
    """Client for reading and writing votes on a votelog server.

    Reads are retried with exponential backoff since replaying a cursor is
    harmless. Writes are sent once: a retried append could store the vote
    twice.
    """

    def __init__(
        self,
        base_url: str,
        max_retries: int = 3,
        timeout: float = 30.0,
        backoff_seconds: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL of the server (e.g., "http://localhost:8080").
            max_retries: Maximum attempts for reads.
            timeout: Request timeout in seconds.
            backoff_seconds: First delay between read attempts.
            transport: Optional httpx transport, for tests.
        """
        self.base_url = base_url.rstrip("/")
        self.max_retries = max_retries
        self.timeout = timeout
        self.backoff_seconds = backoff_seconds
        self._transport = transport
        self._sync_ids: dict[str, int] = {}
        self._consecutive_failures = 0

    def sync_id(self, user_id: str) -> int:
        """Cursor the next :meth:`poll` for ``user_id`` will send."""
        return self._sync_ids.get(user_id, 0)

    def seek(self, user_id: str, sync_id: int) -> None:
        """Set the cursor the next :meth:`poll` for ``user_id`` will send."""
        self._sync_ids[user_id] = max(sync_id, 0)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get_with_retry(
        self, path: str, params: dict[str, Any]
    ) -> tuple[Any, str | None]:
        """GET with exponential backoff retry.

        Returns:
            Tuple of (response_data, error_message).
        """
        url = f"{self.base_url}{path}"
        backoff = self.backoff_seconds
        last_error = "no attempts made"

        async with self._client() as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.get(url, params=params)

                    if response.status_code == 200:
                        self._consecutive_failures = 0
                        return response.json(), None

                    elif response.status_code >= 500:
                        # Server or store error, retry
                        last_error = f"HTTP {response.status_code}"
                        logger.warning(
                            f"Server error {response.status_code}, "
                            f"attempt {attempt + 1}/{self.max_retries}"
                        )
                    else:
                        # Client error, don't retry
                        return None, f"HTTP {response.status_code}: {response.text}"

                except httpx.ConnectError:
                    last_error = "Connection failed"
                    logger.warning(
                        f"Connection failed, attempt {attempt + 1}/{self.max_retries}"
                    )
                except httpx.TimeoutException:
                    last_error = "Request timeout"
                    logger.warning(
                        f"Request timeout, attempt {attempt + 1}/{self.max_retries}"
                    )

                if attempt < self.max_retries - 1:
                    await asyncio.sleep(backoff)
                    backoff *= 2

        self._consecutive_failures += 1
        return None, f"{last_error} (after {self.max_retries} attempts)"

    async def push(self, user_id: str, action: int, target: int) -> FetchResult:
        """Append one vote. Sent exactly once."""
        url = f"{self.base_url}/votes/{user_id}"
        try:
            async with self._client() as client:
                response = await client.post(
                    url, json={"action": action, "target": target}
                )
        except httpx.ConnectError as e:
            return FetchResult(status=FetchStatus.OFFLINE, error=f"Connection failed: {e}")
        except httpx.TimeoutException as e:
            return FetchResult(status=FetchStatus.FAILED, error=f"Request timeout: {e}")

        if response.status_code not in (200, 204):
            return FetchResult(
                status=FetchStatus.FAILED,
                error=f"HTTP {response.status_code}: {response.text}",
            )

        return FetchResult(status=FetchStatus.SUCCESS, timestamp=datetime.now())

    async def fetch(self, user_id: str, sync_id: int = 0) -> FetchResult:
        """Read the votes appended to ``user_id``'s log since ``sync_id``."""
        data, error = await self._get_with_retry(
            f"/votes/{user_id}", {"syncId": sync_id}
        )

        if error:
            return FetchResult(
                status=FetchStatus.OFFLINE if "Connection" in error else FetchStatus.FAILED,
                error=error,
            )

        return FetchResult(
            status=FetchStatus.SUCCESS,
            votes=unflatten(data.get("votes", [])),
            next_sync_id=data["nextSyncId"],
            timestamp=datetime.now(),
        )

    async def poll(self, user_id: str) -> FetchResult:
        """Fetch new votes for ``user_id`` and advance its cursor."""
        result = await self.fetch(user_id, self.sync_id(user_id))
        if result.status == FetchStatus.SUCCESS:
            self._sync_ids[user_id] = result.next_sync_id
        return result

    async def follow(
        self,
        user_id: str,
        on_votes: Callable[[list[Vote], int], Awaitable[None] | None],
        interval_seconds: float = 5.0,
        stop_event: asyncio.Event | None = None,
    ) -> None:
        """Poll a user's log until ``stop_event`` is set.

        Args:
            user_id: Whose log to follow.
            on_votes: Called with each non-empty batch and its nextSyncId.
            interval_seconds: Seconds between polls.
            stop_event: Event to signal the loop should stop.
        """
        logger.info(
            f"Following {user_id} from syncId={self.sync_id(user_id)} "
            f"every {interval_seconds}s"
        )

        while True:
            if stop_event and stop_event.is_set():
                break

            result = await self.poll(user_id)
            if result.status == FetchStatus.SUCCESS:
                if result.votes:
                    outcome = on_votes(result.votes, result.next_sync_id)
                    if asyncio.iscoroutine(outcome):
                        await outcome
            else:
                logger.warning(f"Poll for {user_id}: {result.status.value}: {result.error}")

            # Back off while the server keeps failing
            wait_time = interval_seconds
            if self._consecutive_failures > 0:
                wait_time = min(
                    interval_seconds * (2 ** self._consecutive_failures),
                    300,
                )

            if stop_event:
                try:
                    await asyncio.wait_for(stop_event.wait(), timeout=wait_time)
                    break  # Stop event was set
                except asyncio.TimeoutError:
                    pass
            else:
                await asyncio.sleep(wait_time)

        logger.info(f"Stopped following {user_id}")
