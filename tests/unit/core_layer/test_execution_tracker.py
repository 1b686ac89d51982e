"""
Unit Tests for ExecutionTracker

Tests stage timing, failure recording and per-run cleanup.
"""

import pytest

from replygen.core.config.constants import Stage
from replygen.core.observability.execution_tracker import ExecutionTracker

RUN = "message-42"


@pytest.mark.unit
class TestExecutionTracker:
    def test_successful_stage_is_recorded(self, tracker):
        with tracker.track_stage(Stage.CLAIM, "Claim message", RUN, message_id=42) as execution:
            pass

        assert execution.success is True
        assert execution.stage_id == Stage.CLAIM.value
        assert execution.duration_ms is not None
        assert execution.metadata == {"message_id": 42}

        summary = tracker.get_execution_summary(RUN)
        assert summary["stage_count"] == 1
        assert summary["success"] is True

    def test_failed_stage_is_recorded_and_reraised(self, tracker):
        with pytest.raises(ValueError):
            with tracker.track_stage(Stage.LLM_STREAMING, "Stream", RUN):
                raise ValueError("bad chunk")

        summary = tracker.get_execution_summary(RUN)
        assert summary["success"] is False
        assert summary["failed_stages"] == [
            {
                "stage_id": Stage.LLM_STREAMING.value,
                "stage_name": "Stream",
                "error_type": "ValueError",
                "error_message": "bad chunk",
            }
        ]

    def test_runs_are_kept_apart(self, tracker):
        with tracker.track_stage(Stage.LOAD, "Load", RUN):
            pass
        with tracker.track_stage(Stage.LOAD, "Load", "message-43"):
            pass

        assert tracker.get_execution_summary(RUN)["stage_count"] == 1

    def test_clear_drops_run(self, tracker):
        with tracker.track_stage(Stage.LOAD, "Load", RUN):
            pass

        tracker.clear(RUN)

        assert tracker.get_execution_summary(RUN)["stage_count"] == 0

    def test_disabled_tracker_yields_none(self):
        tracker = ExecutionTracker(enabled=False)

        with tracker.track_stage(Stage.LOAD, "Load", RUN) as execution:
            assert execution is None

        assert tracker.get_execution_summary(RUN)["stage_count"] == 0

    def test_enabled_flag_defaults_to_settings(self, test_settings):
        tracker = ExecutionTracker()

        with tracker.track_stage(Stage.LOAD, "Load", RUN) as execution:
            pass

        assert (execution is not None) == test_settings.app.EXECUTION_TRACKING_ENABLED
