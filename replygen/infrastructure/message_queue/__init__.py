from .redis_queue import RedisJobQueue

__all__ = ["RedisJobQueue"]
