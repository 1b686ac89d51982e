"""
Store Exceptions

Exceptions for the coordination store, the message store and the job queue.
"""

from replygen.core.exceptions.base import ReplyGenError


class CoordinationStoreError(ReplyGenError):
    """
    Raised when the coordination store (Redis) cannot be reached or a
    command fails.
    """
    pass


class MessageStoreError(ReplyGenError):
    """Raised when the durable message store rejects a read or write."""
    pass


class QueueError(ReplyGenError):
    """Raised when a job cannot be enqueued or dequeued."""
    pass
