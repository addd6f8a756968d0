import logging
from contextlib import contextmanager
from typing import Optional
from app.core.config import settings
from app.core.redis_cache import RedisCache

logger = logging.getLogger(__name__)

ACCOUNT_WORKFLOW_LOCK = "workflow_lock:accounts"

# Global cache instance
_cache_instance: Optional[RedisCache] = None


def get_cache() -> RedisCache:
    """Get global Redis cache instance"""
    global _cache_instance
    if _cache_instance is None:
        _cache_instance = RedisCache()
    return _cache_instance


@contextmanager
def workflow_lock(lock_key: str = ACCOUNT_WORKFLOW_LOCK):
    """
    Serialize account workflow transactions across workers.
    Without Redis the operation still runs (single-admin deployments).
    """
    cache = get_cache()
    acquired = cache.acquire_lock(
        lock_key,
        timeout_seconds=settings.workflow_lock_timeout_seconds,
        block_seconds=settings.workflow_lock_block_seconds,
    )
    if not acquired:
        logger.warning(f"workflow_lock: Could not acquire lock - {lock_key}")
    try:
        yield acquired
    finally:
        if acquired:
            cache.release_lock(lock_key)
