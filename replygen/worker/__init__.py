"""
Scheduler side of reply generation.

- jobs.py: job payload and scheduler-facing result enum
- job_runner.py: runs one job with the ordering retry policy
- queue_worker.py: consumes the Redis job queue
"""
