"""
Unit Tests for RedisClient

The underlying redis.asyncio client is replaced with an AsyncMock; tests
check that Redis failures surface as CoordinationStoreError.
"""

from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from replygen.core.exceptions import CoordinationStoreError
from replygen.infrastructure.cache.redis_client import RedisClient


@pytest.fixture
def client():
    redis_client = RedisClient()
    redis_client.client = AsyncMock()
    redis_client._is_connected = True
    return redis_client


@pytest.mark.unit
class TestRedisClient:
    async def test_get_and_set(self, client):
        client.client.get.return_value = "42"

        await client.set("message-cancelled-id", "42")

        assert await client.get("message-cancelled-id") == "42"
        client.client.set.assert_awaited_once_with("message-cancelled-id", "42")

    @pytest.mark.parametrize("command, args", [("get", ("k",)), ("set", ("k", "v")), ("rpop", ("q",))])
    async def test_redis_errors_become_coordination_errors(self, client, command, args):
        getattr(client.client, command).side_effect = RedisConnectionError("Connection refused")

        with pytest.raises(CoordinationStoreError) as exc_info:
            await getattr(client, command)(*args)

        assert "Connection refused" in exc_info.value.message
        assert isinstance(exc_info.value.__cause__, RedisConnectionError)

    async def test_publish_error(self, client):
        client.client.publish.side_effect = ResponseError("WRONGTYPE")

        with pytest.raises(CoordinationStoreError) as exc_info:
            await client.publish("conversation:1", "{}")

        assert exc_info.value.details["channel"] == "conversation:1"

    async def test_commands_require_connection(self):
        with pytest.raises(CoordinationStoreError):
            await RedisClient().get("k")

    async def test_ping_failure_reports_unhealthy(self, client):
        client.client.ping.side_effect = RedisConnectionError("down")

        health = await client.health_check()

        assert health["status"] == "unhealthy"
