# laravel_session/decoders/session_decoder.py
"""
Decoding of Laravel session payloads and typed lookups on the result.

A stored payload is ``base64(serialize($attributes))``; decoding yields the
session attribute array as a ``dict``.
"""

import base64
import binascii
import logging
from typing import Any, Dict, List, Optional, Union

from laravel_session.core.exceptions import (
    MalformedSerializationError,
    SessionDecodeError,
    config_error,
)
from laravel_session.decoders.encrypter import CookieDecryptor
from laravel_session.decoders.php_serializer import ClassRegistry, PhpObject, PhpUnserializer

logger = logging.getLogger(__name__)

DecodedSession = Dict[Any, Any]

# Laravel's SessionGuard stores the user id under login_<guard>_<sha1 of class>
AUTH_KEY_PREFIX = "login_web_"
CSRF_TOKEN_KEY = "_token"
TWO_FACTOR_VERIFIED_KEY = "2faVerify"

# Tried in order when no permissions key is configured
DEFAULT_PERMISSION_KEYS = (
    "permissions",
    "user_permissions",
    "userPermissions",
    "abilities",
    "user.permissions",
    "auth.permissions",
)

_MISSING = object()


def _lookup(container: Any, segment: str) -> Any:
    if isinstance(container, PhpObject):
        return container.get(segment, _MISSING)
    if isinstance(container, dict):
        if segment in container:
            return container[segment]
        # PHP turns numeric string keys into ints
        if segment.lstrip("-").isdigit() and int(segment) in container:
            return container[int(segment)]
    return _MISSING


def resolve_path(data: Any, path: str) -> Any:
    """Dotted-path lookup; a missing segment at any depth gives None"""
    if isinstance(data, dict) and path in data:
        return data[path]

    current = data
    for segment in path.split("."):
        current = _lookup(current, segment)
        if current is _MISSING:
            return None
    return current


class SessionDecoder:
    """Decodes session payloads and extracts auth data from them"""

    def __init__(
        self,
        app_key: Optional[str] = None,
        permissions_key: Optional[Union[str, List[str]]] = None,
        registry: Optional[ClassRegistry] = None
    ):
        self.unserializer = PhpUnserializer(registry)
        self.decryptor = CookieDecryptor(app_key, self.unserializer) if app_key else None

        if isinstance(permissions_key, str):
            permissions_key = [permissions_key]
        self.permissions_keys: List[str] = [k for k in (permissions_key or []) if k]

    @property
    def registry(self) -> ClassRegistry:
        return self.unserializer.registry

    def decode(self, payload: str) -> DecodedSession:
        """
        Base64-decode and unserialize a stored session payload.

        Raises:
            SessionDecodeError: wrapping base64 or serialization failures
        """
        if not payload:
            raise SessionDecodeError("Session payload is empty")

        try:
            raw = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SessionDecodeError("Session payload is not valid base64") from e

        try:
            data = self.unserializer.unserialize(raw)
        except MalformedSerializationError as e:
            raise SessionDecodeError(
                f"Session decode failed: {e.message}",
                details=dict(e.details)
            ) from e

        if not isinstance(data, dict):
            raise SessionDecodeError(
                f"Session payload is a {type(data).__name__}, expected an array"
            )
        return data

    def decrypt(self, cookie_value: str) -> str:
        """Decrypt a session cookie into the bare session id"""
        if self.decryptor is None:
            raise config_error("APP_KEY is required for encrypted sessions", component="decoder")
        return self.decryptor.decrypt_session_id(cookie_value)

    def get_user_id(self, data: DecodedSession) -> Optional[int]:
        """Id stored under the first ``login_web_*`` key, in payload order"""
        for key, value in data.items():
            if isinstance(key, str) and key.startswith(AUTH_KEY_PREFIX):
                if isinstance(value, bool):
                    return None
                if isinstance(value, int):
                    return value
                if isinstance(value, str) and value.isdigit():
                    return int(value)
                return None
        return None

    def get_csrf_token(self, data: DecodedSession) -> Optional[str]:
        token = data.get(CSRF_TOKEN_KEY)
        return token if isinstance(token, str) else None

    def get_session_value(self, data: DecodedSession, key: str) -> Any:
        return resolve_path(data, key)

    def get_permissions(self, data: DecodedSession) -> Any:
        """
        Permissions stored in the session, or None.

        With one configured key the resolved value is returned; with several
        a ``{key: value}`` map (None when nothing resolved). Without
        configuration the conventional keys are tried in order.
        """
        if self.permissions_keys:
            if len(self.permissions_keys) == 1:
                return resolve_path(data, self.permissions_keys[0])

            resolved = {key: resolve_path(data, key) for key in self.permissions_keys}
            if all(value is None for value in resolved.values()):
                return None
            return resolved

        for key in DEFAULT_PERMISSION_KEYS:
            value = resolve_path(data, key)
            if value is not None:
                logger.debug(f"Permissions found in session under '{key}'")
                return value
        return None

    def get_flag(self, data: DecodedSession, key: str) -> bool:
        # Laravel apps store these flags as the string "true", not a bool
        return data.get(key) == "true"

    def is_2fa_verified(self, data: DecodedSession) -> bool:
        return self.get_flag(data, TWO_FACTOR_VERIFIED_KEY)
