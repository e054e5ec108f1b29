# laravel_session/stores/database_store.py
"""
SQL session store for Laravel's ``database`` session driver.

Runs on SQLAlchemy's asyncio engine:
- ``mysql`` via aiomysql, ``postgres`` via asyncpg
- any other async URL (e.g. ``sqlite+aiosqlite``) through ``DatabaseConfig.url``

Every lookup is a single parameterized query. Table names come from
configuration and are checked to be plain identifiers before they are
interpolated into SQL.
"""
import re
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.engine import URL
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from laravel_session.core.config import DatabaseConfig, PermissionTables
from laravel_session.core.exceptions import (
    SessionDecodeError,
    config_error,
    database_error,
)
from laravel_session.core.security import sanitize_error
from laravel_session.decoders.session_decoder import SessionDecoder, resolve_path
from laravel_session.models.session import LaravelUser, PermissionSet, SessionRecord
from laravel_session.stores.base import SessionStore

DRIVERS = {
    "mysql": "mysql+aiomysql",
    "postgres": "postgresql+asyncpg",
}

DEFAULT_PORTS = {
    "mysql": 3306,
    "postgres": 5432,
}

# Never copied onto LaravelUser, same as the User model's $hidden
HIDDEN_USER_COLUMNS = frozenset({"password", "remember_token", "google2fa_secret"})

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _identifier(name: str) -> str:
    if not isinstance(name, str) or not _IDENTIFIER_RE.match(name):
        raise config_error(f"Invalid table name {name!r}", component="DatabaseStore")
    return name


def _unique(values: List[Any]) -> List[Any]:
    return list(dict.fromkeys(v for v in values if v is not None))


class DatabaseStore(SessionStore[DatabaseConfig]):
    """Reads sessions, users, roles and permissions from Laravel's database"""

    def __init__(
        self,
        config: Optional[DatabaseConfig],
        session_table: str = "sessions",
        decoder: Optional[SessionDecoder] = None,
        tables: Optional[PermissionTables] = None,
        engine: Optional[AsyncEngine] = None
    ):
        """
        Args:
            config: Connection settings
            session_table: Laravel's session table (``SESSION_TABLE``)
            decoder: Decoder for the permission lookup in stored payloads
            tables: Role and permission table names for the fallback queries
            engine: Pre-built engine; the caller keeps ownership of it
        """
        if config is None:
            raise config_error("Database configuration is required", component="DatabaseStore")

        super().__init__(config)
        self.session_table = _identifier(session_table)
        self.tables = tables or PermissionTables()
        for table in self.tables.model_dump().values():
            _identifier(table)

        self.decoder = decoder or SessionDecoder()
        self._external_engine = engine

    def _build_url(self):
        if self.config.url:
            return self.config.url

        return URL.create(
            drivername=DRIVERS[self.config.type],
            username=self.config.user,
            password=self.config.password or None,
            host=self.config.host,
            port=self.config.port or DEFAULT_PORTS[self.config.type],
            database=self.config.database,
        )

    async def _initialize_client(self) -> AsyncEngine:
        if self._external_engine is not None:
            return self._external_engine

        options: Dict[str, Any] = {"pool_pre_ping": True}
        if not self.config.url:
            timeout_arg = "connect_timeout" if self.config.type == "mysql" else "timeout"
            options.update(
                pool_size=self.config.connection_limit,
                max_overflow=0,
                pool_timeout=self.config.connect_timeout,
                connect_args={timeout_arg: self.config.connect_timeout},
            )

        return create_async_engine(self._build_url(), **options)

    async def _fetch_all(self, query: str, params: Dict[str, Any], operation: str) -> List[Dict[str, Any]]:
        await self.initialize()
        try:
            async with self.client.connect() as conn:
                result = await conn.execute(text(query), params)
                return [dict(row) for row in result.mappings().all()]
        except (SQLAlchemyError, OSError) as e:
            self.logger.error(f"Database query failed ({operation}): {sanitize_error(e)}")
            raise database_error(
                f"Failed to {operation}: {sanitize_error(e)}",
                operation=operation
            ) from e

    async def _fetch_one(self, query: str, params: Dict[str, Any], operation: str) -> Optional[Dict[str, Any]]:
        rows = await self._fetch_all(query, params, operation)
        return rows[0] if rows else None

    async def get_session(self, session_id: str) -> Optional[SessionRecord]:
        row = await self._fetch_one(
            f"SELECT id, user_id, ip_address, user_agent, payload, last_activity "
            f"FROM {self.session_table} WHERE id = :id LIMIT 1",
            {"id": session_id},
            "get session"
        )
        if row is None:
            return None

        if isinstance(row.get("payload"), (bytes, bytearray)):
            row["payload"] = row["payload"].decode("utf-8")
        return SessionRecord(**row)

    async def get_user(self, user_id: int) -> Optional[LaravelUser]:
        row = await self._fetch_one(
            f"SELECT * FROM {self.tables.users} WHERE id = :id AND deleted_at IS NULL LIMIT 1",
            {"id": user_id},
            "get user"
        )
        if row is None:
            return None

        for column in HIDDEN_USER_COLUMNS:
            row.pop(column, None)

        if not row.get("name"):
            parts = [row.get("first_name"), row.get("middle_name"), row.get("last_name")]
            row["name"] = " ".join(str(p) for p in parts if p) or None

        return LaravelUser(**row)

    async def get_user_role(self, user_id: int) -> Optional[str]:
        permissions = await self.get_user_permissions(user_id)
        if isinstance(permissions, PermissionSet):
            return permissions.role

        role = resolve_path(permissions, "role") if permissions is not None else None
        return role if isinstance(role, str) else None

    async def get_user_permissions(self, user_id: int) -> Any:
        """
        Permissions for a user.

        The user's most recently active session is decoded first; if its
        payload carries permissions they are returned unchanged. Otherwise
        roles, modules and links are read from the role tables.
        """
        row = await self._fetch_one(
            f"SELECT payload FROM {self.session_table} "
            f"WHERE user_id = :user_id ORDER BY last_activity DESC LIMIT 1",
            {"user_id": user_id},
            "get latest session"
        )

        if row and row.get("payload"):
            payload = row["payload"]
            if isinstance(payload, (bytes, bytearray)):
                payload = payload.decode("utf-8")
            try:
                permissions = self.decoder.get_permissions(self.decoder.decode(payload))
            except SessionDecodeError as e:
                self.logger.warning(f"Latest session of user could not be decoded: {sanitize_error(e)}")
                permissions = None

            if permissions is not None:
                self.logger.debug("Permissions taken from latest session payload")
                return permissions

        self.logger.debug("Permissions not in session payload, querying role tables")
        return await self._query_permissions(user_id)

    async def _query_permissions(self, user_id: int) -> PermissionSet:
        t = self.tables
        params = {"user_id": user_id}

        roles = await self._fetch_all(
            f"SELECT r.role_name FROM {t.user_roles} ur "
            f"JOIN {t.roles} r ON r.id = ur.role_id "
            f"WHERE ur.user_id = :user_id AND ur.deleted_at IS NULL AND r.deleted_at IS NULL "
            f"ORDER BY ur.id",
            params,
            "get user roles"
        )
        modules = await self._fetch_all(
            f"SELECT m.module_name FROM {t.user_roles} ur "
            f"JOIN {t.role_modules} rm ON rm.role_id = ur.role_id "
            f"JOIN {t.modules} m ON m.id = rm.module_id "
            f"WHERE ur.user_id = :user_id AND ur.deleted_at IS NULL "
            f"AND rm.deleted_at IS NULL AND m.deleted_at IS NULL "
            f"ORDER BY m.id",
            params,
            "get module permissions"
        )
        links = await self._fetch_all(
            f"SELECT l.link_name FROM {t.user_roles} ur "
            f"JOIN {t.role_links} rl ON rl.role_id = ur.role_id "
            f"JOIN {t.links} l ON l.id = rl.link_id "
            f"WHERE ur.user_id = :user_id AND ur.deleted_at IS NULL "
            f"AND rl.deleted_at IS NULL AND l.deleted_at IS NULL "
            f"ORDER BY l.id",
            params,
            "get link permissions"
        )

        role_names = _unique([r["role_name"] for r in roles])
        return PermissionSet(
            role=role_names[0] if role_names else None,
            role_arr=role_names,
            modules=_unique([m["module_name"] for m in modules]),
            links=_unique([link["link_name"] for link in links]),
        )

    async def health_check(self) -> Dict[str, Any]:
        try:
            await self._fetch_one("SELECT 1 AS ok", {}, "health check")
            return {
                "healthy": True,
                "status": "connected",
                "details": {"session_table": self.session_table}
            }
        except Exception as e:
            return {
                "healthy": False,
                "status": "error",
                "details": {"error": sanitize_error(e)}
            }

    async def _cleanup(self) -> None:
        if self._client is not None and self._client is not self._external_engine:
            await self._client.dispose()
