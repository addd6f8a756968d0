import logging
import time
import uuid
from typing import Optional, Dict
import redis
from redis.exceptions import RedisError
from app.core.config import settings

logger = logging.getLogger(__name__)


class RedisCache:
    """Redis-backed store for rate-limit counters and workflow locks"""

    def __init__(self):
        """Initialize Redis cache (lazy connection)"""
        self._client: Optional[redis.Redis] = None
        self._connected = False
        self._lock_tokens: Dict[str, str] = {}

    def _connect(self):
        """Connect to Redis server"""
        client_kwargs = {
            'decode_responses': False,
            'socket_connect_timeout': 2,
            'socket_timeout': 2,
            'retry_on_timeout': False,
            'health_check_interval': 0,
        }
        # settings.redis_password takes precedence over a password in the URL
        if settings.redis_password:
            client_kwargs['password'] = settings.redis_password

        try:
            self._client = redis.from_url(settings.redis_url, **client_kwargs)
            self._client.ping()
            self._connected = True
            logger.info("RedisCache: Connected to Redis")
        except (RedisError, ValueError) as e:
            # Don't raise - allow graceful degradation
            logger.warning(f"RedisCache: Connection failed - {e}")
            self._connected = False
            self._client = None

    def _ensure_connected(self) -> bool:
        """Ensure Redis connection is established (lazy connection)"""
        if self._connected and self._client is not None:
            return True
        self._connect()
        return self._client is not None

    def _reset(self):
        self._connected = False
        self._client = None

    def get_int(self, key: str) -> Optional[int]:
        """Get cached integer value (for rate limiting)"""
        if not self._ensure_connected():
            logger.warning(f"RedisCache: Cannot get integer key {key} - Redis not available")
            return None

        try:
            data = self._client.get(key)
            if data is None:
                return None
            return int(data.decode('utf-8'))
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"RedisCache: Failed to decode integer for key {key}: {e}")
            return None
        except RedisError as e:
            logger.error(f"RedisCache: Error getting integer key {key}: {e}")
            self._reset()
            return None

    def set(self, key: str, value: int, ttl_minutes: int):
        """Set integer counter with TTL in minutes"""
        if not self._ensure_connected():
            logger.warning(f"RedisCache: Cannot set key {key} - Redis not available")
            return

        try:
            self._client.setex(key, ttl_minutes * 60, str(value).encode('utf-8'))
            logger.debug(f"Cache set: {key}, TTL: {ttl_minutes} minutes")
        except RedisError as e:
            logger.error(f"RedisCache: Error setting key {key}: {e}")
            self._reset()

    def ping(self) -> bool:
        """Check if Redis connection is alive"""
        if not self._ensure_connected():
            return False
        try:
            self._client.ping()
            return True
        except RedisError:
            self._reset()
            return False

    def acquire_lock(self, lock_key: str, timeout_seconds: int = 10, block_seconds: int = 5) -> bool:
        """
        Acquire a distributed lock using Redis.

        Args:
            lock_key: Unique key for the lock
            timeout_seconds: How long the lock will be held (auto-release)
            block_seconds: How long to wait trying to acquire the lock

        Returns:
            True if lock acquired, False otherwise
        """
        if not self._ensure_connected():
            logger.warning(f"RedisCache: Cannot acquire lock {lock_key} - Redis not available")
            return False

        try:
            end_time = time.monotonic() + block_seconds
            lock_value = str(uuid.uuid4())

            while True:
                # SET key value NX EX timeout - atomic operation
                if self._client.set(lock_key, lock_value, nx=True, ex=timeout_seconds):
                    self._lock_tokens[lock_key] = lock_value
                    logger.debug(f"RedisCache: Lock acquired - {lock_key}")
                    return True
                if time.monotonic() >= end_time:
                    break
                time.sleep(0.05)

            logger.debug(f"RedisCache: Failed to acquire lock - {lock_key}")
            return False
        except RedisError as e:
            logger.error(f"RedisCache: Error acquiring lock {lock_key}: {e}")
            self._reset()
            return False

    def release_lock(self, lock_key: str):
        """Release a lock previously acquired by this instance"""
        token = self._lock_tokens.pop(lock_key, None)
        if token is None or not self._ensure_connected():
            return

        try:
            # Only delete our own lock; an expired lock may have been re-acquired
            current = self._client.get(lock_key)
            if current is not None and current.decode('utf-8') == token:
                self._client.delete(lock_key)
            logger.debug(f"RedisCache: Lock released - {lock_key}")
        except RedisError as e:
            logger.error(f"RedisCache: Error releasing lock {lock_key}: {e}")
            self._reset()
