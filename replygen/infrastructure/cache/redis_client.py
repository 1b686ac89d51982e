#!/usr/bin/env python3
"""
Redis Client with Connection Pooling

Async Redis client shared by the coordination store, the broadcast publisher
and the job queue.

Architectural Decision: Connection pooling
- Reuse connections instead of creating new ones per run
- Health checks on an interval
- decode_responses=True so every read is a str
"""

import time
from typing import Any

import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool
from redis.exceptions import ConnectionError, RedisError, TimeoutError

from replygen.core.config.settings import Settings, get_settings
from replygen.core.exceptions import CoordinationStoreError
from replygen.core.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """
    Async Redis client with connection pooling and health checks.

    STAGE-REDIS: Redis client initialization and operations

    Implements the CoordinationStore protocol (get/set) and exposes the list
    and Pub/Sub commands the job queue and broadcast publisher need.

    Usage:
        client = RedisClient()
        await client.connect()

        await client.set("message-cancelled-id", "42")
        value = await client.get("message-cancelled-id")

        await client.disconnect()
    """

    def __init__(self, settings: Settings | None = None):
        """
        Initialize Redis client.

        STAGE-REDIS.1: Client initialization
        """
        self.settings = settings or get_settings()
        self.pool: ConnectionPool | None = None
        self.client: redis.Redis | None = None
        self._is_connected = False

        logger.info(
            "Redis client initialized",
            stage="REDIS.1",
            host=self.settings.redis.REDIS_HOST,
            port=self.settings.redis.REDIS_PORT
        )

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    async def connect(self) -> None:
        """
        Establish connection to Redis with connection pooling.

        STAGE-REDIS.2: Connection establishment

        Raises:
            CoordinationStoreError: If connection fails
        """
        if self._is_connected:
            return

        redis_settings = self.settings.redis
        try:
            self.pool = ConnectionPool(
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                db=redis_settings.REDIS_DB,
                password=redis_settings.REDIS_PASSWORD,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS,
                socket_connect_timeout=redis_settings.REDIS_SOCKET_CONNECT_TIMEOUT,
                socket_timeout=redis_settings.REDIS_SOCKET_TIMEOUT,
                retry_on_timeout=True,
                health_check_interval=redis_settings.REDIS_HEALTH_CHECK_INTERVAL,
                decode_responses=True
            )
            self.client = redis.Redis(connection_pool=self.pool)
            await self.client.ping()
            self._is_connected = True

            logger.info(
                "Redis connected successfully",
                stage="REDIS.2",
                host=redis_settings.REDIS_HOST,
                port=redis_settings.REDIS_PORT,
                max_connections=redis_settings.REDIS_MAX_CONNECTIONS
            )

        except (ConnectionError, TimeoutError) as e:
            logger.error("Failed to connect to Redis", stage="REDIS.2", error=str(e))
            raise CoordinationStoreError(
                message=f"Failed to connect to Redis: {e}",
                details={"host": redis_settings.REDIS_HOST, "port": redis_settings.REDIS_PORT}
            ) from e

    async def disconnect(self) -> None:
        """
        Close Redis connection and pool.

        STAGE-REDIS.3: Connection cleanup
        """
        if self.client:
            await self.client.aclose()

        if self.pool:
            await self.pool.disconnect()

        self._is_connected = False

        logger.info("Redis disconnected", stage="REDIS.3")

    async def ping(self) -> bool:
        """Check Redis connection health."""
        try:
            if self.client and self._is_connected:
                await self.client.ping()
                return True
        except (ConnectionError, TimeoutError):
            pass
        return False

    def _require_client(self) -> redis.Redis:
        if self.client is None:
            raise CoordinationStoreError(
                message="Redis client is not connected",
                details={"hint": "await RedisClient.connect() first"}
            )
        return self.client

    # =========================================================================
    # Coordination store operations
    # =========================================================================

    async def get(self, key: str) -> str | None:
        """
        Get value from Redis.

        STAGE-REDIS.GET: Redis GET operation
        """
        client = self._require_client()
        try:
            return await client.get(key)
        except RedisError as e:
            logger.error("Redis GET failed", stage="REDIS.GET", key=key, error=str(e))
            raise CoordinationStoreError.from_exception(e, message=f"Redis GET failed: {e}", key=key) from e

    async def set(self, key: str, value: str) -> None:
        """
        Set value in Redis (no TTL, last write wins).

        STAGE-REDIS.SET: Redis SET operation
        """
        client = self._require_client()
        try:
            await client.set(key, value)
        except RedisError as e:
            logger.error("Redis SET failed", stage="REDIS.SET", key=key, error=str(e))
            raise CoordinationStoreError.from_exception(e, message=f"Redis SET failed: {e}", key=key) from e

    async def delete(self, *keys: str) -> int:
        client = self._require_client()
        try:
            return await client.delete(*keys)
        except RedisError as e:
            logger.error("Redis DELETE failed", stage="REDIS.DEL", keys=keys, error=str(e))
            raise CoordinationStoreError.from_exception(e, message=f"Redis DELETE failed: {e}") from e

    # =========================================================================
    # List operations (job queue)
    # =========================================================================

    async def lpush(self, key: str, *values: str) -> int:
        client = self._require_client()
        try:
            return await client.lpush(key, *values)
        except RedisError as e:
            logger.error("Redis LPUSH failed", stage="REDIS.LPUSH", key=key, error=str(e))
            raise CoordinationStoreError.from_exception(e, message=f"Redis LPUSH failed: {e}", key=key) from e

    async def rpop(self, key: str) -> str | None:
        client = self._require_client()
        try:
            return await client.rpop(key)
        except RedisError as e:
            logger.error("Redis RPOP failed", stage="REDIS.RPOP", key=key, error=str(e))
            raise CoordinationStoreError.from_exception(e, message=f"Redis RPOP failed: {e}", key=key) from e

    async def llen(self, key: str) -> int:
        client = self._require_client()
        try:
            return await client.llen(key)
        except RedisError as e:
            raise CoordinationStoreError.from_exception(e, message=f"Redis LLEN failed: {e}", key=key) from e

    # =========================================================================
    # Pub/Sub
    # =========================================================================

    async def publish(self, channel: str, message: str | bytes) -> int:
        """
        Publish a message to a channel.

        Returns:
            Number of subscribers that received the message
        """
        client = self._require_client()
        try:
            return await client.publish(channel, message)
        except RedisError as e:
            logger.error("Redis PUBLISH failed", stage="REDIS.PUB", channel=channel, error=str(e))
            raise CoordinationStoreError.from_exception(
                e, message=f"Redis PUBLISH failed: {e}", channel=channel
            ) from e

    async def health_check(self) -> dict[str, Any]:
        """
        Report connection health and round-trip latency.

        STAGE-REDIS.H: Redis health check
        """
        start = time.perf_counter()
        healthy = await self.ping()
        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        return {
            "status": "healthy" if healthy else "unhealthy",
            "latency_ms": latency_ms,
            "host": self.settings.redis.REDIS_HOST,
            "port": self.settings.redis.REDIS_PORT,
        }


# Global Redis client instance
_redis_client: RedisClient | None = None


def get_redis_client() -> RedisClient:
    """Get the global Redis client (call connect() before use)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = RedisClient()
    return _redis_client
