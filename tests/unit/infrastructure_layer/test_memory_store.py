"""
Unit Tests for InMemoryMessageStore

Focus on the atomic claim and on copies never leaking stored state.
"""

from datetime import timedelta

import pytest

from replygen.core.exceptions import MessageStoreError
from replygen.domain.models import Role
from tests.test_fixtures.scenario_factory import CONVERSATION_ID, EPOCH

LATER = EPOCH + timedelta(minutes=5)
TIMEOUT = timedelta(minutes=10)


@pytest.mark.unit
class TestClaimMessage:
    async def test_claim_sets_processed_at(self, scenario):
        claimed = await scenario.store.claim_message(scenario.target.id, LATER, TIMEOUT)

        assert claimed.processed_at == LATER
        assert (await scenario.reload(scenario.target)).processed_at == LATER

    async def test_fresh_claim_blocks_second_claim(self, scenario):
        await scenario.store.claim_message(scenario.target.id, EPOCH, TIMEOUT)

        assert await scenario.store.claim_message(scenario.target.id, LATER, TIMEOUT) is None
        assert (await scenario.reload(scenario.target)).processed_at == EPOCH

    async def test_expired_claim_is_taken_over(self, scenario):
        await scenario.store.claim_message(scenario.target.id, EPOCH, TIMEOUT)
        takeover = EPOCH + TIMEOUT

        claimed = await scenario.store.claim_message(scenario.target.id, takeover, TIMEOUT)

        assert claimed.processed_at == takeover
        assert claimed.content_text == ""

    async def test_cancelled_message_cannot_be_claimed(self, scenario):
        await scenario.store.mark_cancelled(scenario.target.id, EPOCH)

        assert await scenario.store.claim_message(scenario.target.id, LATER, TIMEOUT) is None

    async def test_populated_message_cannot_be_claimed(self, scenario):
        message = scenario.add(Role.ASSISTANT, "Already answered")

        assert await scenario.store.claim_message(message.id, LATER, TIMEOUT) is None

    async def test_unknown_message(self, scenario):
        assert await scenario.store.claim_message(999999, LATER, TIMEOUT) is None


@pytest.mark.unit
class TestMessageStoreWrites:
    async def test_reads_return_copies(self, scenario):
        message = await scenario.store.get_message(scenario.target.id)
        message.content_text = "changed locally"

        assert (await scenario.reload(scenario.target)).content_text == ""

    async def test_save_message(self, scenario):
        message = await scenario.reload(scenario.target)
        message.content_text = "Paris."
        message.processed_at = EPOCH

        await scenario.store.save_message(message)

        stored = await scenario.reload(scenario.target)
        assert stored.content_text == "Paris."
        assert stored.processed_at == EPOCH

    async def test_save_never_clears_cancellation(self, scenario):
        message = await scenario.reload(scenario.target)
        await scenario.store.mark_cancelled(scenario.target.id, EPOCH)

        await scenario.store.save_message(message)

        assert (await scenario.reload(scenario.target)).cancelled_at == EPOCH

    async def test_save_keeps_first_cancellation_time(self, scenario):
        await scenario.store.mark_cancelled(scenario.target.id, EPOCH)
        message = await scenario.reload(scenario.target)
        message.cancelled_at = LATER

        await scenario.store.save_message(message)

        assert (await scenario.reload(scenario.target)).cancelled_at == EPOCH

    async def test_save_unknown_message_raises(self, scenario):
        message = (await scenario.reload(scenario.target)).model_copy(update={"id": 555})

        with pytest.raises(MessageStoreError):
            await scenario.store.save_message(message)

    async def test_touch_conversation(self, scenario):
        await scenario.store.touch_conversation(CONVERSATION_ID, LATER)

        assert (await scenario.store.get_conversation(CONVERSATION_ID)).updated_at == LATER

    async def test_touch_unknown_conversation_raises(self, scenario):
        with pytest.raises(MessageStoreError):
            await scenario.store.touch_conversation(4242, LATER)

    def test_duplicate_index_rejected(self, scenario):
        with pytest.raises(MessageStoreError):
            scenario.add(Role.USER, "clash", index=0)


@pytest.mark.unit
class TestMessageStoreReads:
    async def test_find_message_filters_role(self, scenario):
        assert (await scenario.store.find_message(CONVERSATION_ID, 1, 0)).id == scenario.question.id
        assert await scenario.store.find_message(CONVERSATION_ID, 1, 0, role=Role.ASSISTANT) is None

    async def test_list_messages_sorted_by_index(self, scenario):
        scenario.add(Role.USER, "second version", version=2, index=0)

        messages = await scenario.store.list_messages(CONVERSATION_ID, 1)

        assert [m.index for m in messages] == [0, 1]

    async def test_latest_message_for_version(self, scenario):
        assert (await scenario.store.latest_message_for_version(CONVERSATION_ID, 1)).id == scenario.target.id
        assert await scenario.store.latest_message_for_version(CONVERSATION_ID, 9) is None
