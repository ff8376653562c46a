"""Redis-backed list store (RPUSH / LRANGE / LLEN)."""

import logging

from redis import Redis
from redis.exceptions import RedisError

from ..errors import StoreUnavailable
from .base import ListStore

logger = logging.getLogger(__name__)


class RedisListStore(ListStore):
    """List store on a Redis server.

    Redis serializes RPUSH per key, which gives the append ordering the
    vote log relies on. Connection errors are never retried here.
    """

    name = "redis"

    def __init__(self, client: Redis):
        """Initialize the store.

        Args:
            client: A ``redis.Redis`` client. It must be created with
                ``decode_responses=True``; :meth:`from_url` does that.
        """
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float | None = None) -> "RedisListStore":
        """Create a store from a ``redis://`` URL."""
        client = Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        logger.info(f"Using Redis list store at {url}")
        return cls(client)

    def rpush(self, key: str, value: str) -> int:
        try:
            return int(self._client.rpush(key, value))
        except RedisError as e:
            logger.error(f"RPUSH {key} failed: {e}")
            raise StoreUnavailable(f"Redis RPUSH failed: {e}") from e

    def lrange(self, key: str, start: int) -> list[str]:
        try:
            return list(self._client.lrange(key, start, -1))
        except RedisError as e:
            logger.error(f"LRANGE {key} failed: {e}")
            raise StoreUnavailable(f"Redis LRANGE failed: {e}") from e

    def llen(self, key: str) -> int:
        try:
            return int(self._client.llen(key))
        except RedisError as e:
            raise StoreUnavailable(f"Redis LLEN failed: {e}") from e

    def set_if_absent(self, key: str, value: str) -> str:
        try:
            self._client.set(key, value, nx=True)
            return self._client.get(key)
        except RedisError as e:
            raise StoreUnavailable(f"Redis SET NX failed: {e}") from e

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except RedisError as e:
            logger.warning(f"Redis ping failed: {e}")
            return False

    def close(self) -> None:
        self._client.close()
