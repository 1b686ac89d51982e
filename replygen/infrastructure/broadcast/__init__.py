from .redis_publisher import RedisBroadcastPublisher

__all__ = ["RedisBroadcastPublisher"]
