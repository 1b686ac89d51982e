"""
Redis Broadcast Publisher

Publishes message snapshots to a per-conversation Redis Pub/Sub channel. The
web tier subscribes and re-renders the message for everyone viewing the
conversation.

Channel Format:
    {BROADCAST_CHANNEL_PREFIX}{conversation_id}     e.g. conversation:17

Payload (JSON):
    {"message": {...snapshot...}, "thinking": true,
     "only_scroll_down_if_was_bottom": true, "timestamp": 1700000000000,
     "streamed": true}
"""

from typing import Any

import orjson

from replygen.core.config.settings import get_settings
from replygen.core.exceptions import CoordinationStoreError
from replygen.core.logging import get_logger
from replygen.domain.models import BroadcastHints
from replygen.infrastructure.cache.redis_client import RedisClient

logger = get_logger(__name__)


class RedisBroadcastPublisher:
    """
    Best-effort broadcast of message snapshots.

    Publish failures are logged and dropped: subscribers reconcile from the
    final broadcast or from the durable record.
    """

    def __init__(self, redis_client: RedisClient, channel_prefix: str | None = None):
        self._redis = redis_client
        self._channel_prefix = channel_prefix or get_settings().generation.BROADCAST_CHANNEL_PREFIX

    def get_channel_name(self, conversation_id: int | str) -> str:
        return f"{self._channel_prefix}{conversation_id}"

    async def publish(self, snapshot: dict[str, Any], hints: BroadcastHints) -> None:
        channel = self.get_channel_name(snapshot["conversation_id"])
        payload = orjson.dumps({"message": snapshot, **hints.as_locals()})

        try:
            receivers = await self._redis.publish(channel, payload)
        except CoordinationStoreError as e:
            logger.warning(
                "Failed to publish message snapshot",
                stage="B.1",
                channel=channel,
                message_id=snapshot.get("id"),
                error=str(e),
            )
            return

        logger.debug(
            "Published message snapshot",
            stage="B.1",
            channel=channel,
            message_id=snapshot.get("id"),
            thinking=hints.thinking,
            receivers=receivers,
        )
