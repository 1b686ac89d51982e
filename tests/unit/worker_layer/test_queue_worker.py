from unittest.mock import AsyncMock

import pytest

from replygen.core.exceptions import QueueError, RetriesExhaustedError
from replygen.worker.jobs import GenerationJob, JobResult
from replygen.worker.queue_worker import GenerationWorker

JOB = GenerationJob(message_id=1001, assistant_id=10, job_id="job-1")


@pytest.fixture
def queue():
    queue = AsyncMock()
    queue.dequeue.return_value = None
    return queue


@pytest.fixture
def runner():
    runner = AsyncMock()
    runner.perform_job.return_value = JobResult.SUCCESS
    return runner


@pytest.fixture
def worker(queue, runner):
    return GenerationWorker(queue, runner, poll_interval=0.0, error_backoff=0.0)


@pytest.mark.unit
class TestGenerationWorker:
    async def test_run_once_empty_queue(self, worker, runner):
        assert await worker.run_once() is None
        runner.perform_job.assert_not_awaited()

    async def test_run_once_processes_job(self, worker, queue, runner):
        queue.dequeue.return_value = JOB

        assert await worker.run_once() == JobResult.SUCCESS
        runner.perform_job.assert_awaited_once_with(JOB)
        assert worker.results[JobResult.SUCCESS] == 1

    async def test_fatal_error_is_recorded(self, worker, runner):
        runner.perform_job.side_effect = RetriesExhaustedError("still waiting")

        assert await worker.process_job(JOB) == JobResult.FATAL_FAILURE
        assert worker.results[JobResult.FATAL_FAILURE] == 1

    async def test_unexpected_error_is_recorded(self, worker, queue, runner):
        queue.dequeue.return_value = JOB
        runner.perform_job.side_effect = RuntimeError("store driver bug")

        assert await worker.run_once() == JobResult.FATAL_FAILURE
        assert worker.results[JobResult.FATAL_FAILURE] == 1

    async def test_loop_counts_unexpected_errors(self, worker, queue, runner):
        jobs = [JOB]

        async def dequeue():
            if jobs:
                return jobs.pop(0)
            worker.stop()
            return None

        queue.dequeue.side_effect = dequeue
        runner.perform_job.side_effect = KeyError("assistant")

        await worker.run()

        assert worker.results[JobResult.FATAL_FAILURE] == 1

    async def test_run_until_stopped(self, worker, queue):
        jobs = [JOB, GenerationJob(message_id=1002, assistant_id=10)]

        async def dequeue():
            if jobs:
                return jobs.pop(0)
            worker.stop()
            return None

        queue.dequeue.side_effect = dequeue

        await worker.run()

        assert worker.results[JobResult.SUCCESS] == 2
        assert worker.is_running is False

    async def test_loop_survives_queue_errors(self, worker, queue):
        calls = []

        async def dequeue():
            calls.append(1)
            if len(calls) == 1:
                raise QueueError("Failed to dequeue generation job")
            worker.stop()
            return None

        queue.dequeue.side_effect = dequeue

        await worker.run()

        assert len(calls) == 2

    def test_poll_interval_defaults_to_settings(self, queue, runner, test_settings):
        worker = GenerationWorker(queue, runner)

        assert worker._poll_interval == test_settings.worker.JOB_POLL_INTERVAL_SECONDS
