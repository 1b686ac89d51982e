import orjson
import pytest

from replygen.core.exceptions import CoordinationStoreError
from replygen.domain.models import BroadcastHints
from replygen.infrastructure.broadcast.redis_publisher import RedisBroadcastPublisher

SNAPSHOT = {"id": 1001, "conversation_id": 100, "content_text": "Paris"}


@pytest.mark.unit
class TestRedisBroadcastPublisher:
    @pytest.fixture
    def publisher(self, mock_redis_client):
        return RedisBroadcastPublisher(mock_redis_client, channel_prefix="conversation:")

    def test_channel_name(self, publisher):
        assert publisher.get_channel_name(17) == "conversation:17"

    async def test_publish_payload(self, publisher, mock_redis_client):
        hints = BroadcastHints(thinking=True, timestamp_ms=1700000000000)

        await publisher.publish(SNAPSHOT, hints)

        channel, payload = mock_redis_client.publish.call_args.args
        assert channel == "conversation:100"
        assert orjson.loads(payload) == {
            "message": SNAPSHOT,
            "thinking": True,
            "only_scroll_down_if_was_bottom": True,
            "timestamp": 1700000000000,
            "streamed": True,
        }

    async def test_publish_failure_is_dropped(self, publisher, mock_redis_client):
        mock_redis_client.publish.side_effect = CoordinationStoreError("Redis PUBLISH failed")

        await publisher.publish(SNAPSHOT, BroadcastHints(thinking=False))

        mock_redis_client.publish.assert_awaited_once()
