"""
Staleness Checker
=================

Answers one question for a streaming run: has this message become moot?

A message is STALE when it was cancelled, or when a newer message has been
created for the same conversation version (so nobody is waiting for this
reply any more).

TWO SOURCES, ONE INTERFACE:
---------------------------
- Durable store (MessageStore): authoritative but comparatively slow.
- Coordination store (Redis): fast advisory pointers, possibly stale.

    check #1              -> durable store
    check #2, #3, ...     -> coordination store hints
    every Nth check       -> coordination hints AND durable store

N is STALENESS_DURABLE_REFRESH_INTERVAL. The checker is run-local state: one
instance per orchestration run, never shared between runs.
"""

from datetime import datetime

from replygen.core.config.constants import (
    CANCELLED_MESSAGE_KEY,
    Stage,
    latest_assistant_message_key,
)
from replygen.core.exceptions import CoordinationStoreError
from replygen.core.interfaces import CoordinationStore, MessageStore
from replygen.core.logging.logger import get_logger, log_stage
from replygen.domain.models import Message

logger = get_logger(__name__)


class StalenessChecker:
    def __init__(
        self,
        message_store: MessageStore,
        coordination_store: CoordinationStore,
        durable_refresh_interval: int = 10,
    ):
        if durable_refresh_interval < 1:
            raise ValueError("durable_refresh_interval must be >= 1")
        self._messages = message_store
        self._coordination = coordination_store
        self._refresh_interval = durable_refresh_interval
        self._check_count = 0
        self.durable_cancelled_at: datetime | None = None

    @property
    def check_count(self) -> int:
        return self._check_count

    async def is_stale(self, message: Message) -> bool:
        """
        Check whether ``message`` was cancelled or superseded.

        Coordination store failures are logged and treated as "no hint";
        durable store failures propagate.
        """
        self._check_count += 1

        if self._check_count == 1:
            return await self._durable_check(message)

        if await self._hint_check(message):
            return True

        if self._check_count % self._refresh_interval == 0:
            return await self._durable_check(message)

        return False

    async def _durable_check(self, message: Message) -> bool:
        stored = await self._messages.get_message(message.id)
        if stored is not None and stored.is_cancelled:
            self.durable_cancelled_at = stored.cancelled_at
            log_stage(logger, Stage.STALENESS.value, "Message cancelled in durable store", message_id=message.id)
            return True

        latest = await self._messages.latest_message_for_version(message.conversation_id, message.version)
        if latest is not None and latest.id != message.id:
            log_stage(
                logger,
                Stage.STALENESS.value,
                "Newer message exists for conversation version",
                message_id=message.id,
                latest_message_id=latest.id,
            )
            return True

        return False

    async def _hint_check(self, message: Message) -> bool:
        cancelled_id = await self._read_hint(CANCELLED_MESSAGE_KEY)
        if cancelled_id is not None and cancelled_id == str(message.id):
            log_stage(logger, Stage.STALENESS.value, "Cancellation hint matches message", message_id=message.id)
            return True

        latest_id = await self._read_hint(latest_assistant_message_key(message.conversation_id))
        if latest_id is not None and latest_id != str(message.id):
            log_stage(
                logger,
                Stage.STALENESS.value,
                "Latest assistant message hint names another message",
                message_id=message.id,
                latest_message_id=latest_id,
            )
            return True

        return False

    async def _read_hint(self, key: str) -> str | None:
        try:
            value = await self._coordination.get(key)
        except CoordinationStoreError as e:
            logger.warning(
                "Coordination store read failed, ignoring hint",
                stage=Stage.STALENESS.value,
                key=key,
                error=str(e),
            )
            return None

        if value is None:
            return None
        if isinstance(value, bytes):
            value = value.decode()
        return str(value).strip()
