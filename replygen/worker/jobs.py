import uuid
from enum import Enum

from pydantic import BaseModel, Field

from replygen.domain.models import GenerationOutcome


class GenerationJob(BaseModel):
    """
    One orchestration unit: generate ``message_id`` with ``assistant_id``.

    Safe to enqueue more than once; duplicate runs are no-ops.
    """

    model_config = {"frozen": True}

    message_id: int
    assistant_id: int
    job_id: str = Field(default_factory=lambda: str(uuid.uuid4()))


class JobResult(str, Enum):
    """What the scheduler records for a finished job."""

    SUCCESS = "success"
    SUCCESS_NO_OP = "success_no_op"
    RETRYABLE_FAILURE = "retryable_failure"
    FATAL_FAILURE = "fatal_failure"

    @classmethod
    def from_outcome(cls, outcome: GenerationOutcome) -> "JobResult":
        if outcome == GenerationOutcome.SKIPPED:
            return cls.SUCCESS_NO_OP
        if outcome == GenerationOutcome.FAILED:
            return cls.FATAL_FAILURE
        return cls.SUCCESS
