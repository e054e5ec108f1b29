# laravel_session/stores/redis_store.py
"""
Redis session store for Laravel's ``redis`` session driver.

Session payloads are read from Redis by prefixed key. Users, roles and
permissions never live in Redis; those lookups go to a DatabaseStore.
"""
import time
from typing import Any, Dict, Optional

import redis.asyncio as redis

from laravel_session.core.config import DEFAULT_REDIS_PREFIX, RedisConfig
from laravel_session.core.exceptions import config_error, redis_error
from laravel_session.core.security import sanitize_error, sanitize_session_id
from laravel_session.models.session import LaravelUser, SessionRecord
from laravel_session.stores.base import SessionStore
from laravel_session.stores.database_store import DatabaseStore


class RedisStore(SessionStore[RedisConfig]):
    """Session lookups against Redis, user data against the database"""

    def __init__(
        self,
        config: Optional[RedisConfig],
        database_store: DatabaseStore,
        prefix: str = DEFAULT_REDIS_PREFIX
    ):
        """
        Args:
            config: Redis connection settings
            database_store: Store used for user, role and permission queries
            prefix: Key prefix Laravel writes sessions under
        """
        if config is None:
            raise config_error("Redis configuration is required", component="RedisStore")

        super().__init__(config)
        self.prefix = prefix
        self.database_store = database_store

    async def _initialize_client(self) -> redis.Redis:
        options = {
            "decode_responses": True,
            "socket_timeout": self.config.socket_timeout,
            "max_connections": self.config.max_connections,
        }
        if self.config.url:
            return redis.from_url(self.config.url, **options)

        return redis.Redis(
            host=self.config.host,
            port=self.config.port,
            password=self.config.password,
            db=self.config.db,
            **options
        )

    def _key(self, session_id: str) -> str:
        return f"{self.prefix}{session_id}"

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """
        Read a session payload from Redis.

        Redis expires sessions itself, so a hit counts as active now; the
        user id is only known after decoding the payload.
        """
        await self.initialize()
        key = self._key(session_id)
        self.logger.debug(f"Fetching session {sanitize_session_id(session_id)} from Redis")

        try:
            payload = await self.client.get(key)
        except (redis.RedisError, OSError) as e:
            self.logger.error(f"Failed to get session from Redis: {sanitize_error(e)}")
            raise redis_error(
                f"Failed to get session from Redis: {sanitize_error(e)}",
                operation="get",
                key=self.prefix
            ) from e

        if not payload:
            self.logger.debug("Session not found in Redis")
            return None

        if isinstance(payload, bytes):
            payload = payload.decode("utf-8")

        return SessionRecord(
            id=session_id,
            user_id=None,
            payload=payload,
            last_activity=int(time.time()),
        )

    async def get_user(self, user_id: int) -> Optional[LaravelUser]:
        return await self.database_store.get_user(user_id)

    async def get_user_role(self, user_id: int) -> Optional[str]:
        return await self.database_store.get_user_role(user_id)

    async def get_user_permissions(self, user_id: int) -> Any:
        return await self.database_store.get_user_permissions(user_id)

    async def health_check(self) -> Dict[str, Any]:
        database = await self.database_store.health_check()
        try:
            await self.initialize()
            await self.client.ping()
            info = await self.client.info()
            return {
                "healthy": database.get("healthy", False),
                "status": "connected",
                "details": {
                    "redis_version": info.get("redis_version", "unknown"),
                    "connected_clients": info.get("connected_clients", 0),
                    "database": database,
                }
            }
        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {
                    "error": sanitize_error(e),
                    "database": database,
                }
            }

    async def _cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()

    async def close(self) -> None:
        await self.shutdown()
        await self.database_store.close()
