# laravel_session/core/config.py
from typing import List, Literal, Optional, Union
import logging

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from laravel_session.core.security import LogLevel

logger = logging.getLogger(__name__)

DEFAULT_SESSION_LIFETIME = 1000  # minutes
DEFAULT_COOKIE_NAME = "laravel_session"
DEFAULT_REDIS_PREFIX = "laravel_session:"


class DatabaseConfig(BaseModel):
    """Connection settings for the SQL database Laravel writes sessions to"""
    type: Literal["mysql", "postgres"] = "mysql"
    host: str = "localhost"
    port: Optional[int] = None
    user: str = "root"
    password: str = ""
    database: str = "laravel"
    connection_limit: int = 10
    connect_timeout: float = 10.0
    # Full SQLAlchemy async URL, overrides the fields above
    url: Optional[str] = None


class RedisConfig(BaseModel):
    """Connection settings for the Redis session keyspace"""
    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    db: int = 0
    url: Optional[str] = None
    socket_timeout: float = 5.0
    max_connections: int = 10


class PermissionTables(BaseModel):
    """Tables queried by the database permission fallback"""
    users: str = "users"
    roles: str = "roles"
    user_roles: str = "user_roles"
    modules: str = "modules"
    role_modules: str = "role_module_permissions"
    links: str = "links"
    role_links: str = "role_link_permissions"


class SessionSettings(BaseModel):
    driver: Literal["database", "redis", "file"] = "database"
    table: str = "sessions"
    lifetime: int = DEFAULT_SESSION_LIFETIME
    cookie_name: str = DEFAULT_COOKIE_NAME
    prefix: str = DEFAULT_REDIS_PREFIX


class LaravelSessionConfig(BaseModel):
    """Everything a LaravelSessionClient needs"""
    database: Optional[DatabaseConfig] = None
    redis: Optional[RedisConfig] = None
    session: SessionSettings = Field(default_factory=SessionSettings)
    tables: PermissionTables = Field(default_factory=PermissionTables)
    # Laravel APP_KEY, optionally prefixed with "base64:"
    app_key: Optional[str] = None
    # Dotted path(s) of the permissions structure inside the session payload
    permissions_key: Optional[Union[str, List[str]]] = None
    debug: bool = False
    log_level: LogLevel = LogLevel.SECURE

    @field_validator("permissions_key")
    @classmethod
    def _strip_empty_keys(cls, value):
        if isinstance(value, list):
            value = [k for k in value if k]
            return value or None
        return value or None


class Settings(BaseSettings):
    """Environment-driven settings, named after Laravel's own .env keys"""
    DB_CONNECTION: Literal["mysql", "pgsql", "postgres"] = "mysql"
    DB_HOST: str = "localhost"
    DB_PORT: Optional[int] = None
    DB_DATABASE: str = "laravel"
    DB_USERNAME: str = "root"
    DB_PASSWORD: str = ""
    DB_URL: Optional[str] = None
    DB_POOL_SIZE: int = 10

    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_DB: int = 0
    REDIS_URL: Optional[str] = None

    SESSION_DRIVER: Literal["database", "redis", "file"] = "database"
    SESSION_TABLE: str = "sessions"
    SESSION_LIFETIME: int = DEFAULT_SESSION_LIFETIME
    SESSION_COOKIE: str = DEFAULT_COOKIE_NAME
    SESSION_PREFIX: str = DEFAULT_REDIS_PREFIX
    SESSION_PERMISSIONS_KEY: Optional[str] = None
    SESSION_DEBUG: bool = False
    SESSION_LOG_LEVEL: LogLevel = LogLevel.SECURE

    APP_KEY: Optional[str] = None

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }

    def to_config(self) -> LaravelSessionConfig:
        """Build the client configuration from the environment"""
        permissions_key = None
        if self.SESSION_PERMISSIONS_KEY:
            keys = [k.strip() for k in self.SESSION_PERMISSIONS_KEY.split(",") if k.strip()]
            permissions_key = keys[0] if len(keys) == 1 else keys

        redis_config = None
        if self.SESSION_DRIVER == "redis":
            redis_config = RedisConfig(
                host=self.REDIS_HOST,
                port=self.REDIS_PORT,
                password=self.REDIS_PASSWORD,
                db=self.REDIS_DB,
                url=self.REDIS_URL,
            )

        return LaravelSessionConfig(
            database=DatabaseConfig(
                type="mysql" if self.DB_CONNECTION == "mysql" else "postgres",
                host=self.DB_HOST,
                port=self.DB_PORT,
                user=self.DB_USERNAME,
                password=self.DB_PASSWORD,
                database=self.DB_DATABASE,
                connection_limit=self.DB_POOL_SIZE,
                url=self.DB_URL,
            ),
            redis=redis_config,
            session=SessionSettings(
                driver=self.SESSION_DRIVER,
                table=self.SESSION_TABLE,
                lifetime=self.SESSION_LIFETIME,
                cookie_name=self.SESSION_COOKIE,
                prefix=self.SESSION_PREFIX,
            ),
            app_key=self.APP_KEY,
            permissions_key=permissions_key,
            debug=self.SESSION_DEBUG,
            log_level=self.SESSION_LOG_LEVEL,
        )


def validate_required_settings(settings: Settings) -> bool:
    """Warn about settings a working deployment is very likely to need"""
    missing = []

    if not settings.DB_URL and not settings.DB_PASSWORD:
        missing.append("DB_PASSWORD/DB_URL")

    if not settings.APP_KEY:
        missing.append("APP_KEY")

    if settings.SESSION_DRIVER == "redis" and not (settings.REDIS_URL or settings.REDIS_HOST):
        missing.append("REDIS_URL/REDIS_HOST")

    if missing:
        logger.warning(f"Missing environment variables: {', '.join(missing)}")
        logger.warning("Encrypted cookies or store lookups may fail.")
        return False

    return True
