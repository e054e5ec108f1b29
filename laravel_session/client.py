# laravel_session/client.py
"""
LaravelSessionClient - entry point for validating Laravel session cookies.

Wires decoder, store and validator together from one configuration object.
"""

import logging
from typing import Any, Dict, Optional

from laravel_session.core.config import LaravelSessionConfig, Settings
from laravel_session.core.exceptions import DecryptionError, config_error
from laravel_session.core.logging_config import set_debug
from laravel_session.core.security import (
    sanitize_error,
    sanitize_session_id,
    set_log_level,
)
from laravel_session.decoders.php_serializer import ClassRegistry
from laravel_session.decoders.session_decoder import SessionDecoder
from laravel_session.models.session import ValidationResult
from laravel_session.stores.base import SessionStore
from laravel_session.stores.database_store import DatabaseStore
from laravel_session.stores.redis_store import RedisStore
from laravel_session.validators.session_validator import SessionValidator

logger = logging.getLogger(__name__)


class LaravelSessionClient:
    """
    Validates Laravel session cookies against Laravel's own storage.

    Usage:
        async with LaravelSessionClient(config) as client:
            result = await client.validate_session(cookie_value)
    """

    def __init__(
        self,
        config: LaravelSessionConfig,
        store: Optional[SessionStore] = None,
        registry: Optional[ClassRegistry] = None
    ):
        """
        Args:
            config: Client configuration
            store: Pre-built store, bypassing driver selection
            registry: Class registry shared with other decoders
        """
        self.config = config
        set_debug(config.debug)
        set_log_level(config.log_level)

        self.decoder = SessionDecoder(config.app_key, config.permissions_key, registry)
        self.store = store or self._create_store()
        self.validator = SessionValidator(self.decoder, self.store, config)

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, **kwargs) -> "LaravelSessionClient":
        """Build a client from environment variables / .env"""
        settings = settings or Settings()
        return cls(settings.to_config(), **kwargs)

    def _create_store(self) -> SessionStore:
        driver = self.config.session.driver

        if driver == "database":
            return self._create_database_store()

        if driver == "redis":
            return RedisStore(
                self.config.redis,
                self._create_database_store(),
                prefix=self.config.session.prefix
            )

        raise config_error(
            f"Unsupported session driver: {driver}. Use 'database' or 'redis'.",
            component="client"
        )

    def _create_database_store(self) -> DatabaseStore:
        if self.config.database is None:
            raise config_error(
                f"Database configuration is required for the {self.config.session.driver} session driver",
                component="client"
            )
        return DatabaseStore(
            self.config.database,
            session_table=self.config.session.table,
            decoder=self.decoder,
            tables=self.config.tables
        )

    def resolve_session_id(self, cookie_value: str) -> str:
        """
        Session id for a raw cookie value.

        Without an APP_KEY the cookie is taken as the id. With one the cookie
        is decrypted; if that fails the raw value is used, so unencrypted
        cookies keep working.
        """
        if self.decoder.decryptor is None:
            logger.debug("No APP_KEY configured, using cookie value as session id")
            return cookie_value

        try:
            return self.decoder.decrypt(cookie_value)
        except DecryptionError as e:
            logger.warning(f"Session cookie decryption failed, using raw value: {sanitize_error(e)}")
            return cookie_value

    async def validate_session(self, cookie_value: Optional[str]) -> ValidationResult:
        if not cookie_value:
            return await self.validator.validate(cookie_value)

        session_id = self.resolve_session_id(cookie_value)
        logger.debug(f"Session id to validate: {sanitize_session_id(session_id)}")
        return await self.validator.validate(session_id)

    def get_session_cookie_name(self) -> str:
        return self.config.session.cookie_name

    async def health_check(self) -> Dict[str, Any]:
        return await self.store.health_check()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> "LaravelSessionClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
