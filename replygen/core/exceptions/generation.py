"""
Generation Lifecycle Exceptions

Exceptions raised by the orchestrator and the job runner around it.
"""

from replygen.core.exceptions.base import ReplyGenError


class GenerationError(ReplyGenError):
    """Base exception for orchestration errors."""
    pass


class WaitForPreviousError(GenerationError):
    """
    Raised when the previous assistant message of the same conversation
    version has been claimed but has not produced any text yet.

    Retryable: the scheduler re-runs the job with backoff.
    """
    pass


class ResponseCancelledError(GenerationError):
    """
    Raised inside a run when the message was cancelled or superseded
    mid-stream. Never escapes the orchestrator.
    """
    pass


class FinalizationError(GenerationError):
    """
    Raised when the finished message cannot be persisted.

    Fatal: propagated to the scheduler, never swallowed.
    """
    pass


class RetriesExhaustedError(GenerationError):
    """
    Raised by the job runner once every ordering retry has been spent.
    """
    pass


class MessageNotFoundError(GenerationError):
    """Raised when the target message does not exist."""
    pass


class AssistantNotFoundError(GenerationError):
    """Raised when the assistant (or its owner) does not exist."""
    pass
