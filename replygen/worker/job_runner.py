"""
Generation Job Runner

Scheduler-side wrapper around the orchestrator. Owns the ordering retry
policy: a run that must wait for the previous assistant reply is retried
with backoff, every other outcome is reported once.

Retry Strategy:
- tenacity AsyncRetrying, retrying only WaitForPreviousError
- JOB_MAX_ATTEMPTS attempts in total
- Wait after attempt n: (2**n - 1) * JOB_RETRY_TIME_UNIT_SECONDS
  (1 and 3 units for the default 3 attempts)
- Exhaustion raises RetriesExhaustedError, never a silent drop
"""

import asyncio
from collections.abc import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
)

from replygen.core.config.constants import Stage
from replygen.core.config.settings import Settings, get_settings
from replygen.core.exceptions import RetriesExhaustedError, WaitForPreviousError
from replygen.core.logging.logger import get_logger
from replygen.domain.models import GenerationOutcome
from replygen.llm_stream.services.generation_orchestrator import GenerationOrchestrator
from replygen.worker.jobs import GenerationJob, JobResult

logger = get_logger(__name__)


class GenerationJobRunner:
    """
    Usage:
        runner = GenerationJobRunner(orchestrator)
        result = await runner.perform(message_id=42, assistant_id=7)
    """

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        settings: Settings | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._orchestrator = orchestrator
        settings = settings or get_settings()
        self.max_attempts = settings.worker.JOB_MAX_ATTEMPTS
        self.time_unit = settings.worker.JOB_RETRY_TIME_UNIT_SECONDS
        self._sleep = sleep

    def backoff_seconds(self, retry_state: RetryCallState) -> float:
        return (2 ** retry_state.attempt_number - 1) * self.time_unit

    def _log_retry(self, retry_state: RetryCallState) -> None:
        logger.info(
            "Waiting for previous message before retrying",
            stage=Stage.RETRY.value,
            attempt=retry_state.attempt_number,
            max_attempts=self.max_attempts,
            delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        )

    async def perform(self, message_id: int, assistant_id: int) -> JobResult:
        """
        Run the orchestrator with the ordering retry policy.

        Returns:
            JobResult: SUCCESS, SUCCESS_NO_OP or FATAL_FAILURE (unclassified
            failure that was finalized with a generic error text)

        Raises:
            RetriesExhaustedError: Every attempt had to wait for the previous message
            FinalizationError: The finished message could not be persisted
            MessageNotFoundError, AssistantNotFoundError: Nothing to generate
        """
        outcome: GenerationOutcome | None = None
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(WaitForPreviousError),
            stop=stop_after_attempt(self.max_attempts),
            wait=self.backoff_seconds,
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    outcome = await self._orchestrator.run(message_id, assistant_id)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            logger.error(
                "Ordering retries exhausted",
                stage=Stage.RETRY.value,
                message_id=message_id,
                attempts=self.max_attempts,
            )
            raise RetriesExhaustedError(
                f"Message {message_id} still waiting for its previous message after {self.max_attempts} attempts",
                correlation_id=f"message-{message_id}",
                details={"message_id": message_id, "assistant_id": assistant_id, "attempts": self.max_attempts},
            ) from last_error

        result = JobResult.from_outcome(outcome)
        logger.info(
            "Generation job finished",
            stage=Stage.RETRY.value,
            message_id=message_id,
            outcome=outcome.value,
            result=result.value,
        )
        return result

    async def perform_job(self, job: GenerationJob) -> JobResult:
        return await self.perform(job.message_id, job.assistant_id)
