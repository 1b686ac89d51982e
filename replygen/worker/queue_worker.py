"""
Generation Worker

Background worker that consumes generation jobs from the Redis job queue and
runs each through the job runner.

Flow:
    1. Dequeue the oldest job (sleep JOB_POLL_INTERVAL_SECONDS when empty)
    2. Run it with the ordering retry policy
    3. Record the JobResult; fatal errors are logged and recorded, and the
       worker moves on to the next job

Lifecycle:
    worker = GenerationWorker(queue, runner)
    task = asyncio.create_task(worker.run())   # blocks until stop()
    worker.stop()
    await task
"""

import asyncio
import socket
from collections import Counter

from replygen.core.config.constants import Stage
from replygen.core.config.settings import get_settings
from replygen.core.exceptions import ReplyGenError
from replygen.core.logging.logger import get_logger
from replygen.infrastructure.message_queue.redis_queue import RedisJobQueue
from replygen.worker.job_runner import GenerationJobRunner
from replygen.worker.jobs import GenerationJob, JobResult

logger = get_logger(__name__)

ERROR_BACKOFF_SECONDS = 5.0


class GenerationWorker:
    def __init__(
        self,
        queue: RedisJobQueue,
        runner: GenerationJobRunner,
        poll_interval: float | None = None,
        error_backoff: float = ERROR_BACKOFF_SECONDS,
    ):
        self._queue = queue
        self._runner = runner
        self._poll_interval = (
            poll_interval if poll_interval is not None else get_settings().worker.JOB_POLL_INTERVAL_SECONDS
        )
        self._error_backoff = error_backoff
        self._running = False
        self._stop_event = asyncio.Event()
        self.consumer_name = f"worker-{socket.gethostname()}-{id(self)}"
        self.results: Counter[JobResult] = Counter()

    @property
    def is_running(self) -> bool:
        return self._running

    async def process_job(self, job: GenerationJob) -> JobResult:
        """
        Run one job. Any exception is logged and recorded as FATAL_FAILURE
        so the dequeued job is always accounted for.
        """
        try:
            result = await self._runner.perform_job(job)
        except ReplyGenError as e:
            logger.error(
                "Generation job failed",
                stage=Stage.QUEUE.value,
                job_id=job.job_id,
                message_id=job.message_id,
                **e.to_dict(),
            )
            result = JobResult.FATAL_FAILURE
        except Exception as e:
            logger.error(
                "Generation job crashed",
                stage=Stage.QUEUE.value,
                job_id=job.job_id,
                message_id=job.message_id,
                error_type=type(e).__name__,
                error=str(e),
                exc_info=True,
            )
            result = JobResult.FATAL_FAILURE

        self.results[result] += 1
        return result

    async def run_once(self) -> JobResult | None:
        """
        Process at most one job.

        Returns:
            The job's result, or None when the queue was empty
        """
        job = await self._queue.dequeue()
        if job is None:
            return None
        return await self.process_job(job)

    async def run(self) -> None:
        """Consume jobs until stop() is called."""
        self._running = True
        self._stop_event.clear()
        logger.info("Worker started", stage=Stage.QUEUE.value, consumer=self.consumer_name)

        try:
            while not self._stop_event.is_set():
                try:
                    result = await self.run_once()
                except Exception as e:
                    logger.error(
                        "Consumer loop error",
                        stage=Stage.QUEUE.value,
                        consumer=self.consumer_name,
                        error=str(e),
                        error_type=type(e).__name__,
                        exc_info=True,
                    )
                    await self._wait(self._error_backoff)
                    continue

                if result is None:
                    await self._wait(self._poll_interval)
        finally:
            self._running = False
            logger.info(
                "Worker stopped",
                stage=Stage.QUEUE.value,
                consumer=self.consumer_name,
                results={result.value: count for result, count in self.results.items()},
            )

    async def _wait(self, seconds: float) -> None:
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    def stop(self) -> None:
        """
        Signal the worker to stop gracefully.

        The job in progress finishes first. Does not block.
        """
        self._stop_event.set()
