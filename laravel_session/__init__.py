"""
laravel-session: validate Laravel session cookies from Python.

Reads Laravel's session storage (database or Redis), decrypts the session
cookie with the APP_KEY, parses PHP-serialized payloads and returns the
authenticated user, role and permissions.
"""

from .client import LaravelSessionClient
from .core.config import (
    DatabaseConfig,
    LaravelSessionConfig,
    PermissionTables,
    RedisConfig,
    SessionSettings,
    Settings,
)
from .core.exceptions import (
    ConfigurationError,
    DatabaseStoreError,
    DecryptionError,
    LaravelSessionError,
    MalformedSerializationError,
    RedisStoreError,
    SessionDecodeError,
    StoreError,
)
from .decoders.encrypter import CookieDecryptor
from .decoders.php_serializer import (
    ClassRegistry,
    ObjectShape,
    PhpObject,
    PhpUnserializer,
    serialize,
    unserialize,
)
from .decoders.session_decoder import SessionDecoder
from .models.session import LaravelUser, PermissionSet, SessionRecord, ValidationResult
from .stores.database_store import DatabaseStore
from .stores.redis_store import RedisStore
from .validators.session_validator import SessionValidator

__version__ = "1.0.0"

__all__ = [
    "LaravelSessionClient",
    "SessionValidator",
    "SessionDecoder",
    "CookieDecryptor",
    "PhpUnserializer",
    "ClassRegistry",
    "ObjectShape",
    "PhpObject",
    "serialize",
    "unserialize",
    "DatabaseStore",
    "RedisStore",
    "LaravelSessionConfig",
    "DatabaseConfig",
    "RedisConfig",
    "SessionSettings",
    "PermissionTables",
    "Settings",
    "SessionRecord",
    "LaravelUser",
    "PermissionSet",
    "ValidationResult",
    "LaravelSessionError",
    "ConfigurationError",
    "MalformedSerializationError",
    "DecryptionError",
    "SessionDecodeError",
    "StoreError",
    "DatabaseStoreError",
    "RedisStoreError",
]
