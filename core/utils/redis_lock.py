import logging

from django.conf import settings
import redis

logger = logging.getLogger(__name__)


def get_redis_client():
    url = getattr(settings, 'REDIS_URL', None) or getattr(settings, 'CELERY_BROKER_URL', None) or 'redis://localhost:6379/0'
    return redis.from_url(url)


class RedisLock:
    """Simple context-manager for a redis lock (non-blocking acquire).

    Usage:
        with RedisLock(f'auto-rest-day:{day}', ttl=600) as acquired:
            if not acquired:
                return
            # do work
    """
    def __init__(self, key, ttl=60):
        self.key = f'lock:{key}'
        self.ttl = ttl
        self._client = None
        self.acquired = False

    def __enter__(self):
        self._client = get_redis_client()
        try:
            self.acquired = bool(self._client.set(self.key, '1', nx=True, ex=self.ttl))
        except redis.RedisError as exc:
            logger.warning(f"Could not acquire lock {self.key}: {exc}")
            self.acquired = False
        return self.acquired

    def __exit__(self, exc_type, exc, tb):
        if not self.acquired:
            return
        try:
            self._client.delete(self.key)
        except redis.RedisError as exc:
            # The key expires on its own after ttl seconds
            logger.warning(f"Could not release lock {self.key}: {exc}")
