"""
Infrastructure layer: Redis-backed coordination store, broadcast publisher and
job queue, plus the in-memory message store.
"""
