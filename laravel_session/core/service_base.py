# laravel_session/core/service_base.py
"""
Lifecycle shared by the session stores.

A store opens its engine or connection pool on first use, not when it is
constructed, so building a client never touches the network. Concurrent
first calls wait for one shared initialization.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, Optional, TypeVar

from laravel_session.core.exceptions import ConfigurationError, StoreError, config_error
from laravel_session.core.security import sanitize_error

ConfigType = TypeVar("ConfigType")


class BaseService(ABC, Generic[ConfigType]):
    """Owns one backend client (engine, pool, connection) and its lifecycle"""

    def __init__(
        self,
        config: Optional[ConfigType] = None,
        logger: Optional[logging.Logger] = None
    ):
        self.config = config
        self.logger = logger or logging.getLogger(self.__class__.__module__)
        self.service_name = self.__class__.__name__
        self._client: Any = None
        self._init_lock: Optional[asyncio.Lock] = None

    @abstractmethod
    async def _initialize_client(self) -> Any:
        """Build the backend client from ``self.config``"""

    @abstractmethod
    async def health_check(self) -> Dict[str, Any]:
        """``{"healthy": bool, "status": str, "details": {...}}``"""

    async def _cleanup(self) -> None:
        """Release whatever ``_initialize_client`` built"""

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    @property
    def client(self) -> Any:
        if self._client is None:
            raise StoreError(
                f"{self.service_name} is not initialized. Call initialize() first.",
                service_name=self.service_name
            )
        return self._client

    async def initialize(self) -> None:
        """
        Open the backend client. Calls after the first are no-ops.

        Raises:
            ConfigurationError: no configuration was given
            StoreError: the client could not be created
        """
        if self._client is not None:
            return
        if self._init_lock is None:
            self._init_lock = asyncio.Lock()

        async with self._init_lock:
            if self._client is not None:
                return

            if self.config is None:
                raise config_error(
                    f"{self.service_name} requires a configuration",
                    component=self.service_name
                )

            self.logger.info(f"Connecting {self.service_name}")
            try:
                client = await self._initialize_client()
            except (ConfigurationError, StoreError):
                raise
            except Exception as e:
                self.logger.error(f"{self.service_name} could not connect: {sanitize_error(e)}")
                raise StoreError(
                    f"Failed to initialize {self.service_name}",
                    service_name=self.service_name,
                    operation="initialize",
                    details={"error_type": type(e).__name__}
                ) from e

            self._client = client

    async def shutdown(self) -> None:
        """Release the client; cleanup errors are logged, never raised"""
        if self._client is None:
            return

        try:
            await self._cleanup()
        except Exception as e:
            self.logger.warning(f"Error while closing {self.service_name}: {sanitize_error(e)}")
        finally:
            self._client = None
        self.logger.info(f"{self.service_name} closed")
