#!/usr/bin/env python3
"""
Worker Startup Script

Connects Redis, registers the language-model backends and consumes
generation jobs until interrupted.

The durable message store is named by MESSAGE_STORE_FACTORY; the worker
refuses to start without one.

Usage:
    MESSAGE_STORE_FACTORY=myapp.storage:build_store python start_worker.py
    USE_FAKE_LLM=true LOG_FORMAT=console MESSAGE_STORE_FACTORY=myapp.storage:build_store python start_worker.py
"""

import asyncio
import signal
import sys

from replygen.core.config.settings import get_settings
from replygen.core.exceptions import ConfigurationError
from replygen.core.interfaces import MessageStore
from replygen.core.logging import get_logger, setup_logging
from replygen.infrastructure.broadcast import RedisBroadcastPublisher
from replygen.infrastructure.cache import RedisClient, get_redis_client
from replygen.infrastructure.message_queue import RedisJobQueue
from replygen.infrastructure.storage import load_message_store
from replygen.llm_stream.providers import ProviderFactory, register_providers
from replygen.llm_stream.services import GenerationOrchestrator
from replygen.worker.job_runner import GenerationJobRunner
from replygen.worker.queue_worker import GenerationWorker

logger = get_logger("start_worker")


def build_worker(
    redis_client: RedisClient,
    message_store: MessageStore,
    provider_factory: ProviderFactory,
) -> GenerationWorker:
    orchestrator = GenerationOrchestrator(
        message_store=message_store,
        coordination_store=redis_client,
        publisher=RedisBroadcastPublisher(redis_client),
        provider_factory=provider_factory,
    )
    return GenerationWorker(RedisJobQueue(redis_client), GenerationJobRunner(orchestrator))


async def main() -> int:
    settings = get_settings()
    setup_logging()

    logger.info(
        "Starting worker",
        stage="0",
        app=settings.app.APP_NAME,
        version=settings.app.APP_VERSION,
        environment=settings.app.ENVIRONMENT,
    )

    try:
        message_store = load_message_store(settings.worker.MESSAGE_STORE_FACTORY)
    except ConfigurationError as e:
        logger.error("Worker configuration invalid", stage="0", **e.to_dict())
        return 1

    redis_client = get_redis_client()
    await redis_client.connect()

    provider_factory = register_providers()
    worker = build_worker(redis_client, message_store, provider_factory)

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, worker.stop)

    try:
        await worker.run()
    finally:
        await provider_factory.close_all()
        await redis_client.disconnect()

    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
