# laravel_session/stores/base.py
"""Interface shared by the session store backends"""

from abc import abstractmethod
from typing import Any, Optional

from laravel_session.core.service_base import BaseService, ConfigType
from laravel_session.models.session import LaravelUser, SessionRecord


class SessionStore(BaseService[ConfigType]):
    """
    Read-only access to Laravel's session storage and user tables.

    A missing row is ``None``; backend failures raise a ``StoreError``.
    Connections are opened lazily on first use and released by ``close()``.
    """

    @abstractmethod
    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        """Fetch the raw session record"""

    @abstractmethod
    async def get_user(self, user_id: int) -> Optional[LaravelUser]:
        """Fetch a non-deleted user"""

    @abstractmethod
    async def get_user_role(self, user_id: int) -> Optional[str]:
        """Primary role name of the user"""

    @abstractmethod
    async def get_user_permissions(self, user_id: int) -> Any:
        """Permissions from the user's latest session, else from the role tables"""

    async def close(self) -> None:
        await self.shutdown()
