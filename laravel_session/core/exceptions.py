# laravel_session/core/exceptions.py
"""
Core exceptions for laravel-session.

Parse, crypto and store failures are exceptions. Validation gate failures
(expired session, unknown user, ...) are not: they come back as
``ValidationResult(valid=False, ...)``.
"""

from typing import Optional, Dict, Any


class LaravelSessionError(Exception):
    """Base exception for all laravel-session errors"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize base exception.

        Args:
            message: Human-readable error message
            details: Optional additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(LaravelSessionError):
    """Errors in client configuration (drivers, keys, table names)"""

    def __init__(
        self,
        message: str,
        component: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.component = component

        if component:
            self.details['component'] = component


class MalformedSerializationError(LaravelSessionError):
    """PHP serialize() data could not be parsed"""

    def __init__(
        self,
        message: str,
        offset: Optional[int] = None,
        class_name: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize serialization error.

        Args:
            message: Error description
            offset: Byte offset where parsing failed
            class_name: Unregistered class name, if that was the cause
            details: Additional parser context
        """
        super().__init__(message, details)
        self.offset = offset
        self.class_name = class_name

        if offset is not None:
            self.details['offset'] = offset
        if class_name:
            self.details['class_name'] = class_name


class DecryptionError(LaravelSessionError):
    """Cookie envelope could not be verified or decrypted"""

    def __init__(
        self,
        message: str,
        stage: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize decryption error.

        Args:
            message: Error description
            stage: Pipeline stage that failed (envelope, mac, cipher)
            details: Additional context, never key material
        """
        super().__init__(message, details)
        self.stage = stage

        if stage:
            self.details['stage'] = stage


class SessionDecodeError(LaravelSessionError):
    """Session payload could not be decoded"""

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, details)
        self.session_id = session_id

        if session_id:
            self.details['session_id'] = session_id


class StoreError(LaravelSessionError):
    """Errors talking to a session store backend"""

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize store error.

        Args:
            message: Error description
            service_name: Name of the failing backend
            operation: Operation that failed
            details: Additional backend context
        """
        super().__init__(message, details)
        self.service_name = service_name
        self.operation = operation

        if service_name:
            self.details['service'] = service_name
        if operation:
            self.details['operation'] = operation


class DatabaseStoreError(StoreError):
    """Specific errors for the SQL session store"""

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        table: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="Database", operation=operation, details=details)
        self.table = table

        if table:
            self.details['table'] = table


class RedisStoreError(StoreError):
    """Specific errors for the Redis session store"""

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        operation: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, service_name="Redis", operation=operation, details=details)
        self.key = key

        if key:
            self.details['key'] = key


# Convenience functions for creating common errors

def config_error(message: str, component: str) -> ConfigurationError:
    """Create a configuration error with component context."""
    return ConfigurationError(message, component=component)


def serialization_error(message: str, offset: int = None, class_name: str = None) -> MalformedSerializationError:
    """Create a serialization error with parser position."""
    return MalformedSerializationError(message, offset=offset, class_name=class_name)


def decryption_error(message: str, stage: str) -> DecryptionError:
    """Create a decryption error with stage context."""
    return DecryptionError(message, stage=stage)


def database_error(message: str, operation: str = None, table: str = None) -> DatabaseStoreError:
    """Create a database store error with operation context."""
    return DatabaseStoreError(message, operation=operation, table=table)


def redis_error(message: str, key: str = None, operation: str = None) -> RedisStoreError:
    """Create a Redis store error with key context."""
    return RedisStoreError(message, key=key, operation=operation)
