"""
Redis Job Queue

List-backed FIFO of generation jobs: LPUSH to enqueue, RPOP to dequeue.
One job is enqueued per (assistant message, assistant) pair when the
assistant message is created empty.
"""

import orjson
from pydantic import ValidationError

from replygen.core.config.settings import get_settings
from replygen.core.exceptions import CoordinationStoreError, QueueError
from replygen.core.logging import get_logger
from replygen.infrastructure.cache.redis_client import RedisClient
from replygen.worker.jobs import GenerationJob

logger = get_logger(__name__)


class RedisJobQueue:
    def __init__(self, redis_client: RedisClient, queue_key: str | None = None):
        self._redis = redis_client
        self._queue_key = queue_key or get_settings().worker.JOB_QUEUE_KEY

    @property
    def queue_key(self) -> str:
        return self._queue_key

    async def enqueue(self, job: GenerationJob) -> None:
        """
        Add a job to the tail of the queue.

        Raises:
            QueueError: If Redis rejects the write
        """
        try:
            await self._redis.lpush(self._queue_key, orjson.dumps(job.model_dump(mode="json")).decode())
        except CoordinationStoreError as e:
            raise QueueError.from_exception(e, message="Failed to enqueue generation job", job_id=job.job_id) from e

        logger.info(
            "Generation job enqueued",
            stage="Q.1",
            job_id=job.job_id,
            message_id=job.message_id,
            assistant_id=job.assistant_id,
        )

    async def dequeue(self) -> GenerationJob | None:
        """
        Pop the oldest job.

        Malformed payloads are logged and dropped.

        Returns:
            The job, or None when the queue is empty
        """
        try:
            raw = await self._redis.rpop(self._queue_key)
        except CoordinationStoreError as e:
            raise QueueError.from_exception(e, message="Failed to dequeue generation job") from e

        if raw is None:
            return None

        try:
            return GenerationJob.model_validate(orjson.loads(raw))
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.error("Dropping malformed generation job", stage="Q.2", payload=raw[:200], error=str(e))
            return None

    async def size(self) -> int:
        try:
            return await self._redis.llen(self._queue_key)
        except CoordinationStoreError as e:
            raise QueueError.from_exception(e, message="Failed to read queue length") from e
