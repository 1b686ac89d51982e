"""
Execution Time Tracking Module

Tracks the duration and success of every stage of an orchestration run,
correlated by the run's correlation id ("message-{id}"). Lets operators see
which stage a slow or failed run spent its time in.

Architectural Decision: Context manager pattern for automatic timing
- Automatic start/end time capture
- Exception tracking (which stage failed)
- Structured log output with timing data
"""

import time
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any

from replygen.core.config.settings import get_settings
from replygen.core.logging import get_logger, log_stage

logger = get_logger(__name__)


def _utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


@dataclass
class StageExecution:
    """
    Represents a single stage execution with timing information.

    Attributes:
        stage_id: Stage identifier (e.g., "1.0_READINESS_CHECK")
        stage_name: Human-readable stage name
        correlation_id: Run correlation id
        started_at: Start timestamp (ISO format)
        ended_at: End timestamp (ISO format)
        duration_ms: Duration in milliseconds
        success: Whether stage completed successfully
        error_type: Error type if failed
        error_message: Error message if failed
        metadata: Additional metadata
    """

    stage_id: str
    stage_name: str
    correlation_id: str
    started_at: str
    ended_at: str | None = None
    duration_ms: float | None = None
    success: bool = True
    error_type: str | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return asdict(self)


class ExecutionTracker:
    """
    Execution time tracker for orchestration stages.

    Usage:
        tracker = ExecutionTracker()

        with tracker.track_stage(Stage.CLAIM, "Claim message", correlation_id):
            ...

        summary = tracker.get_execution_summary(correlation_id)
        tracker.clear(correlation_id)
    """

    def __init__(self, enabled: bool | None = None):
        self._executions: dict[str, list[StageExecution]] = {}
        if enabled is None:
            enabled = get_settings().app.EXECUTION_TRACKING_ENABLED
        self._tracking_enabled = enabled

        logger.debug(
            "Execution tracker initialized",
            stage="ET.1",
            tracking_enabled=self._tracking_enabled,
        )

    @contextmanager
    def track_stage(self, stage_id: str, stage_name: str, correlation_id: str, **metadata):
        """
        Context manager for tracking a stage execution.

        ET.2: Track stage execution with automatic timing

        Exceptions are recorded on the stage and re-raised unchanged.

        Yields:
            StageExecution | None: the execution record, or None when disabled
        """
        if not self._tracking_enabled:
            yield None
            return

        stage_id = getattr(stage_id, "value", stage_id)
        execution = StageExecution(
            stage_id=stage_id,
            stage_name=stage_name,
            correlation_id=correlation_id,
            started_at=_utc_now_iso(),
            metadata=metadata,
        )
        start_time = time.perf_counter()

        try:
            yield execution
            execution.success = True

        except Exception as e:
            execution.success = False
            execution.error_type = type(e).__name__
            execution.error_message = str(e)
            raise

        finally:
            duration_ms = (time.perf_counter() - start_time) * 1000
            execution.ended_at = _utc_now_iso()
            execution.duration_ms = round(duration_ms, 2)
            self._executions.setdefault(correlation_id, []).append(execution)

            log_stage(
                logger,
                stage_id,
                f"Stage completed: {stage_name}",
                level="debug" if execution.success else "warning",
                duration_ms=execution.duration_ms,
                success=execution.success,
                error_type=execution.error_type,
            )

    def get_execution_summary(self, correlation_id: str) -> dict[str, Any]:
        """
        Get execution summary for a run.

        ET.4: Execution summary retrieval

        Returns:
            Dict containing total_duration_ms, stage_count, stages, success
            and failed_stages.
        """
        executions = self._executions.get(correlation_id, [])
        total_duration = sum(e.duration_ms for e in executions if e.duration_ms is not None)
        failed_stages = [
            {
                "stage_id": e.stage_id,
                "stage_name": e.stage_name,
                "error_type": e.error_type,
                "error_message": e.error_message,
            }
            for e in executions
            if not e.success
        ]

        return {
            "correlation_id": correlation_id,
            "total_duration_ms": round(total_duration, 2),
            "stage_count": len(executions),
            "stages": [e.to_dict() for e in executions],
            "success": len(failed_stages) == 0,
            "failed_stages": failed_stages,
        }

    def clear(self, correlation_id: str) -> None:
        """
        Drop execution data for a finished run.

        ET.6: Run data cleanup
        """
        self._executions.pop(correlation_id, None)


# Global execution tracker instance (singleton)
_tracker: ExecutionTracker | None = None


def get_tracker() -> ExecutionTracker:
    """Get the global execution tracker instance."""
    global _tracker

    if _tracker is None:
        _tracker = ExecutionTracker()

    return _tracker
