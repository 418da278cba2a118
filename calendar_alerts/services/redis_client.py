# calendar_alerts/services/redis_client.py
import redis.asyncio as redis
from redis.asyncio.connection import ConnectionPool

from calendar_alerts.config import settings
from calendar_alerts.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RedisClient:
    """Pooled async Redis client shared by the preference store and notification sink"""

    def __init__(self, url: str | None = None):
        self.url = url or settings.REDIS_URL
        self.pool = None
        self.client = None
        self._initialized = False

    async def initialize(self):
        """Initialize connection pool on startup"""
        if self._initialized:
            return

        try:
            logger.info("Attempting Redis connection", url_preview=self.url[:30] + "...")

            self.pool = ConnectionPool.from_url(
                self.url,
                max_connections=settings.REDIS_MAX_CONNECTIONS,
                retry_on_timeout=True,
                socket_connect_timeout=5,
                socket_timeout=5,
                health_check_interval=30,
                decode_responses=True,
            )

            self.client = redis.Redis(connection_pool=self.pool)

            result = await self.client.ping()
            logger.info("Redis ping successful", result=result)

            self._initialized = True
            logger.info(
                "Redis client initialized successfully",
                max_connections=settings.REDIS_MAX_CONNECTIONS,
            )

        except Exception as e:
            logger.error("Failed to initialize Redis client", error=str(e))
            self._initialized = False
            raise RuntimeError("Redis initialization failed") from e

    async def close(self):
        """Clean shutdown"""
        try:
            if self.client:
                await self.client.aclose()
            if self.pool:
                await self.pool.disconnect()
            self._initialized = False
            logger.info("Redis client closed")
        except Exception as e:
            logger.error("Error closing Redis client", error=str(e))

    async def ensure_client(self) -> redis.Redis:
        """Return the live client, initializing lazily if startup skipped it"""
        if not self._initialized:
            logger.warning("Redis not initialized, attempting to initialize")
            await self.initialize()
        return self.client

    async def ping(self) -> bool:
        """Test Redis connection"""
        try:
            client = await self.ensure_client()
            return bool(await client.ping())
        except Exception as e:
            logger.error("Redis ping failed", error=str(e))
            return False


redis_client = RedisClient()
