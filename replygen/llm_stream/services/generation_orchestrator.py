"""
Generation Orchestrator
=======================

The GenerationOrchestrator drives ONE assistant reply from "empty message
row" to "finalized message". Every reply generation goes through it; it
coordinates the stores, the backend adapter and the broadcast publisher but
implements none of them.

THE RUN LIFECYCLE:
------------------

┌─────────────────────────────────────────────────────────────────┐
│ STAGE 0: LOAD                                                   │
│ - Message, conversation, assistant and the conversation's user  │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 1: READINESS                                              │
│ - Cancelled or already populated -> SKIPPED (no writes)         │
│ - Previous assistant message claimed but empty                  │
│   -> WaitForPreviousError (scheduler retries with backoff)      │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 2: CLAIM                                                  │
│ - Atomic claim of processed_at; held by another run -> SKIPPED  │
│ - "thinking" broadcast so subscribers see the claim             │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 3: BACKEND SELECTION                                      │
│ - Adapter by assistant override or model name, user's key,      │
│   conversation history                                          │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 4: LLM STREAMING                                          │
│ - Per chunk: append, throttled broadcast, staleness check       │
│ - Stale -> stop the stream, keep partial text, CANCELLED        │
│ - Failures -> classified into user-readable text                │
└─────────────────────────────────────────────────────────────────┘
                            ↓
┌─────────────────────────────────────────────────────────────────┐
│ STAGE 5: FINALIZATION (exactly once)                            │
│ - Final non-thinking broadcast, save message, touch conversation│
│ - Persistence failure -> FinalizationError (fatal)              │
└─────────────────────────────────────────────────────────────────┘

ERRORS THAT ESCAPE run():
-------------------------
- WaitForPreviousError: retryable ordering violation
- MessageNotFoundError / AssistantNotFoundError: nothing to generate
- FinalizationError: the finished reply could not be persisted

Everything raised by the backend is converted to a disposition and
finalized; unclassified failures finalize with a generic error text and the
run reports GenerationOutcome.FAILED.

DEPENDENCY INJECTION:
---------------------
All collaborators are passed in, so tests drive the orchestrator with an
in-memory store, a dict-backed coordination store and a scripted provider.
"""

import time
from collections.abc import Callable
from datetime import datetime, timedelta

from replygen.core.config.constants import Backend, Stage
from replygen.core.config.settings import Settings, get_settings
from replygen.core.exceptions import (
    AssistantNotFoundError,
    FinalizationError,
    MessageNotFoundError,
    ProviderResponseError,
    ResponseCancelledError,
    WaitForPreviousError,
)
from replygen.core.interfaces import BroadcastPublisher, CoordinationStore, MessageStore
from replygen.core.logging.logger import (
    clear_correlation_id,
    get_logger,
    log_stage,
    set_correlation_id,
)
from replygen.core.observability.execution_tracker import ExecutionTracker, get_tracker
from replygen.domain.models import (
    Assistant,
    BroadcastHints,
    Disposition,
    GenerationOutcome,
    HistoryEntry,
    Message,
    Role,
    User,
    utc_now,
)
from replygen.llm_stream.providers.base_provider import (
    ChatCompletionStream,
    ProviderFactory,
    resolve_credentials,
)
from replygen.llm_stream.services.failure_classifier import classify, disposition_text
from replygen.llm_stream.services.staleness import StalenessChecker
from replygen.llm_stream.services.throttle import BroadcastThrottle

logger = get_logger(__name__)


class GenerationOrchestrator:
    """
    Runs the generation lifecycle for one (message, assistant) pair.

    The orchestrator itself is stateless between runs; every piece of
    run-local state (staleness counter, throttle, accumulated text) is
    created inside run(). One instance can serve many concurrent runs.

    Usage:
        orchestrator = GenerationOrchestrator(
            message_store=store,
            coordination_store=redis_client,
            publisher=RedisBroadcastPublisher(redis_client),
            provider_factory=register_providers(),
        )
        outcome = await orchestrator.run(message_id=42, assistant_id=7)
    """

    def __init__(
        self,
        message_store: MessageStore,
        coordination_store: CoordinationStore,
        publisher: BroadcastPublisher,
        provider_factory: ProviderFactory,
        execution_tracker: ExecutionTracker | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self._messages = message_store
        self._coordination = coordination_store
        self._publisher = publisher
        self._provider_factory = provider_factory
        self._tracker = execution_tracker or get_tracker()
        self.settings = settings or get_settings()
        self._clock = clock
        self._monotonic = monotonic

    # ========================================================================
    # MAIN ENTRY POINT
    # ========================================================================

    async def run(self, message_id: int, assistant_id: int) -> GenerationOutcome:
        """
        Generate the reply for ``message_id`` with ``assistant_id``.

        Safe to call more than once for the same message: a cancelled,
        populated or already-claimed message is a no-op (SKIPPED). A claim
        older than CLAIM_TIMEOUT_SECONDS belongs to a dead run and is taken over.

        Returns:
            GenerationOutcome: COMPLETED, SKIPPED, CANCELLED, FAILED_HANDLED or FAILED

        Raises:
            WaitForPreviousError: The previous assistant message is still generating
            MessageNotFoundError: The message or its conversation does not exist
            AssistantNotFoundError: The assistant or the conversation's user does not exist
            FinalizationError: The finished message could not be persisted
        """
        correlation_id = f"message-{message_id}"
        set_correlation_id(correlation_id)
        log_stage(logger, "0", "Generation run started", message_id=message_id, assistant_id=assistant_id)

        try:
            # STAGE 0: LOAD
            with self._tracker.track_stage(Stage.LOAD, "Load records", correlation_id):
                message, assistant, user = await self._load(message_id, assistant_id, correlation_id)

            # STAGE 1: READINESS
            with self._tracker.track_stage(Stage.READINESS, "Readiness check", correlation_id):
                if self._is_already_done(message):
                    log_stage(
                        logger,
                        "1.1",
                        "Message already cancelled or populated, skipping",
                        cancelled=message.is_cancelled,
                        populated=message.is_populated,
                    )
                    return GenerationOutcome.SKIPPED

                await self._ensure_previous_ready(message, correlation_id)

            # STAGE 2: CLAIM
            with self._tracker.track_stage(Stage.CLAIM, "Claim message", correlation_id):
                claim_timeout = timedelta(seconds=self.settings.generation.CLAIM_TIMEOUT_SECONDS)
                claimed = await self._messages.claim_message(message.id, self._clock(), claim_timeout)
                if claimed is None:
                    log_stage(logger, "2.1", "Message claimed by another run, skipping")
                    return GenerationOutcome.SKIPPED

            throttle = BroadcastThrottle(
                self.settings.generation.BROADCAST_THROTTLE_SECONDS, clock=self._monotonic
            )
            throttle.mark()
            await self._broadcast(claimed, thinking=True)
            log_stage(logger, "2.2", "Message claimed")

            outcome = await self._generate(claimed, assistant, user, throttle, correlation_id)

            # STAGE 5: FINALIZATION
            with self._tracker.track_stage(Stage.FINALIZATION, "Finalize message", correlation_id):
                await self._finalize(claimed, correlation_id)

            summary = self._tracker.get_execution_summary(correlation_id)
            log_stage(
                logger,
                "5.1",
                "Generation run finished",
                outcome=outcome.value,
                content_length=len(claimed.content_text),
                total_duration_ms=summary["total_duration_ms"],
            )
            return outcome

        finally:
            self._tracker.clear(correlation_id)
            clear_correlation_id()

    # ========================================================================
    # STAGE 0 / 1: LOAD AND READINESS
    # ========================================================================

    async def _load(
        self, message_id: int, assistant_id: int, correlation_id: str
    ) -> tuple[Message, Assistant, User]:
        message = await self._messages.get_message(message_id)
        if message is None:
            raise MessageNotFoundError(
                f"Message {message_id} not found",
                correlation_id=correlation_id,
                details={"message_id": message_id},
            )

        conversation = await self._messages.get_conversation(message.conversation_id)
        if conversation is None:
            raise MessageNotFoundError(
                f"Conversation {message.conversation_id} of message {message_id} not found",
                correlation_id=correlation_id,
                details={"message_id": message_id, "conversation_id": message.conversation_id},
            )

        assistant = await self._messages.get_assistant(assistant_id)
        if assistant is None:
            raise AssistantNotFoundError(
                f"Assistant {assistant_id} not found",
                correlation_id=correlation_id,
                details={"assistant_id": assistant_id},
            )

        user = await self._messages.get_user(conversation.user_id)
        if user is None:
            raise AssistantNotFoundError(
                f"User {conversation.user_id} of conversation {conversation.id} not found",
                correlation_id=correlation_id,
                details={"user_id": conversation.user_id},
            )

        return message, assistant, user

    @staticmethod
    def _is_already_done(message: Message) -> bool:
        return message.is_cancelled or message.is_populated

    async def _ensure_previous_ready(self, message: Message, correlation_id: str) -> None:
        """
        Raise WaitForPreviousError while the previous assistant reply of the
        same conversation version is claimed but has produced no text yet.
        """
        if message.index == 0:
            return

        previous = await self._messages.find_message(
            message.conversation_id, message.version, message.index - 1, role=Role.ASSISTANT
        )
        if previous is not None and previous.is_processed and not previous.is_populated:
            log_stage(
                logger,
                "1.2",
                "Previous assistant message still generating",
                level="warning",
                previous_message_id=previous.id,
            )
            raise WaitForPreviousError(
                f"Message {previous.id} must finish before message {message.id}",
                correlation_id=correlation_id,
                details={"message_id": message.id, "previous_message_id": previous.id},
            )

    # ========================================================================
    # STAGE 3 / 4: BACKEND SELECTION AND STREAMING
    # ========================================================================

    async def _generate(
        self,
        message: Message,
        assistant: Assistant,
        user: User,
        throttle: BroadcastThrottle,
        correlation_id: str,
    ) -> GenerationOutcome:
        """
        Stream the reply into ``message`` and settle its final text.

        Never raises for backend failures: they become the message text.
        """
        backend = ProviderFactory.select_backend(assistant)
        checker = StalenessChecker(
            self._messages,
            self._coordination,
            self.settings.generation.STALENESS_DURABLE_REFRESH_INTERVAL,
        )

        try:
            with self._tracker.track_stage(
                Stage.BACKEND_SELECTION, "Backend selection", correlation_id, backend=backend.value
            ):
                provider = self._provider_factory.get(backend)
                credentials = resolve_credentials(user, backend)
                history = await self._build_history(message, assistant)
                stream = provider.stream(credentials, assistant, history)

            log_stage(logger, "3.1", "Backend selected", backend=backend.value, model=assistant.model)

            with self._tracker.track_stage(Stage.LLM_STREAMING, "LLM streaming", correlation_id):
                await self._consume(stream, message, throttle, checker)

                if not message.is_populated:
                    if stream.final_text:
                        message.content_text = stream.final_text
                    else:
                        raise ProviderResponseError(
                            "Backend returned no text",
                            correlation_id=correlation_id,
                            details={"backend": backend.value},
                        )

            return GenerationOutcome.COMPLETED

        except ResponseCancelledError:
            # Keep the user's cancellation time when there is one
            message.cancelled_at = message.cancelled_at or checker.durable_cancelled_at or self._clock()
            log_stage(
                logger,
                "4.3",
                "Generation cancelled, keeping partial text",
                cancelled_by_user=checker.durable_cancelled_at is not None,
                partial_length=len(message.content_text),
                checks=checker.check_count,
            )
            return GenerationOutcome.CANCELLED

        except Exception as e:
            return self._apply_failure(message, backend, e)

    async def _build_history(self, message: Message, assistant: Assistant) -> list[HistoryEntry]:
        """Instructions, then every earlier non-empty message of the same version."""
        history = []
        if assistant.instructions:
            history.append(HistoryEntry(role="system", content=assistant.instructions))

        for earlier in await self._messages.list_messages(message.conversation_id, message.version):
            if earlier.index >= message.index or not earlier.is_populated:
                continue
            history.append(HistoryEntry(role=earlier.role.value, content=earlier.content_text))

        return history

    async def _consume(
        self,
        stream: ChatCompletionStream,
        message: Message,
        throttle: BroadcastThrottle,
        checker: StalenessChecker,
    ) -> None:
        """
        Chunk callback loop: chunks are handled one at a time in arrival order.
        The stream is stopped however the loop ends, so the backend response
        is closed before finalization.

        Raises:
            ResponseCancelledError: The message became stale
        """
        try:
            async for chunk in stream:
                if chunk.content:
                    message.content_text += chunk.content

                if throttle.should_publish():
                    await self._broadcast(message, thinking=True)
                    throttle.mark()

                if await checker.is_stale(message):
                    raise ResponseCancelledError(
                        f"Message {message.id} was cancelled or superseded",
                        details={"message_id": message.id, "check": checker.check_count},
                    )
        finally:
            await stream.stop()

    def _apply_failure(self, message: Message, backend: Backend, exc: Exception) -> GenerationOutcome:
        disposition = classify(exc)
        message.content_text = disposition_text(disposition, backend, exc)

        if disposition == Disposition.UNCLASSIFIED:
            logger.exception(
                "Unclassified generation failure",
                stage=Stage.LLM_STREAMING.value,
                backend=backend.value,
                error_type=type(exc).__name__,
            )
            return GenerationOutcome.FAILED

        logger.warning(
            "Generation failed, finalizing with explanation",
            stage=Stage.LLM_STREAMING.value,
            backend=backend.value,
            disposition=disposition.value,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return GenerationOutcome.FAILED_HANDLED

    # ========================================================================
    # BROADCASTS AND FINALIZATION
    # ========================================================================

    async def _broadcast(self, message: Message, thinking: bool) -> None:
        """Best-effort publish; a failing publisher never aborts a run."""
        try:
            await self._publisher.publish(message.snapshot(), BroadcastHints(thinking=thinking))
        except Exception as e:
            logger.warning(
                "Broadcast failed",
                stage=Stage.BROADCAST.value,
                thinking=thinking,
                error_type=type(e).__name__,
                error=str(e),
            )

    async def _finalize(self, message: Message, correlation_id: str) -> None:
        await self._broadcast(message, thinking=False)

        try:
            await self._messages.save_message(message)
            await self._messages.touch_conversation(message.conversation_id, self._clock())
        except Exception as e:
            logger.error(
                "Failed to persist finished message",
                stage=Stage.FINALIZATION.value,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise FinalizationError.from_exception(
                e,
                message=f"Could not persist message {message.id}",
                correlation_id=correlation_id,
                message_id=message.id,
            ) from e
