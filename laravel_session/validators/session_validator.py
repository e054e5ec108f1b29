# laravel_session/validators/session_validator.py
"""
Session validation pipeline.

Validation is a fixed sequence of gates. The first gate that fails ends the
call with ``ValidationResult(valid=False, error=..., reason=...)``; nothing is
retried. Store errors from the session, user and role lookups propagate to
the caller. Permissions are best effort: if the fallback lookup fails the
session is still valid, with ``permissions=None``.
"""

import json
import logging
import time
from typing import Any, Callable, Optional

from laravel_session.core.config import DEFAULT_SESSION_LIFETIME, LaravelSessionConfig
from laravel_session.core.exceptions import SessionDecodeError
from laravel_session.core.security import (
    sanitize_error,
    sanitize_object,
    sanitize_session_id,
    should_sanitize,
)
from laravel_session.decoders.php_serializer import to_builtin
from laravel_session.decoders.session_decoder import DecodedSession, SessionDecoder
from laravel_session.models.session import LaravelUser, ValidationResult
from laravel_session.stores.base import SessionStore

logger = logging.getLogger(__name__)

ERROR_NO_SESSION_ID = "No session ID provided"
ERROR_NOT_FOUND = "Session not found"
ERROR_EXPIRED = "Session expired"
ERROR_DECODE = "Failed to decode session"
ERROR_NOT_AUTHENTICATED = "User not authenticated"
ERROR_USER_NOT_FOUND = "User not found or deleted"
ERROR_LOGGED_IN_ELSEWHERE = "Session invalidated. You were logged in elsewhere."
ERROR_2FA_REQUIRED = "2FA verification required"

REASON_SINGLE_SESSION = "shooter_single_session"
REASON_2FA_REQUIRED = "2fa_required"

# Only users with this role are limited to one active session
SINGLE_SESSION_ROLE = "Shooter"


def _two_factor_enabled(user: LaravelUser) -> bool:
    flag = user.google2fa_enable
    # exactly 1 or "1"; True, "yes", 2 ... do not count
    return not isinstance(flag, bool) and flag in (1, "1")


class SessionValidator:
    """Turns a session id into a ValidationResult"""

    def __init__(
        self,
        decoder: SessionDecoder,
        store: SessionStore,
        config: LaravelSessionConfig,
        clock: Callable[[], float] = time.time
    ):
        self.decoder = decoder
        self.store = store
        self.session_lifetime = config.session.lifetime or DEFAULT_SESSION_LIFETIME
        self.clock = clock

    def is_expired(self, last_activity: int) -> bool:
        # exactly at the limit is still valid
        return int(self.clock()) - last_activity > self.session_lifetime * 60

    async def validate(self, session_id: Optional[str]) -> ValidationResult:
        if not session_id:
            return ValidationResult.invalid(ERROR_NO_SESSION_ID)

        logger.debug(f"Validating session {sanitize_session_id(session_id)}")

        session = await self.store.get_session(session_id)
        if session is None:
            logger.debug("Session not found in store")
            return ValidationResult.invalid(ERROR_NOT_FOUND)

        if self.is_expired(session.last_activity):
            logger.debug("Session expired")
            return ValidationResult.invalid(ERROR_EXPIRED)

        try:
            data = self.decoder.decode(session.payload)
        except SessionDecodeError as e:
            logger.debug(f"Failed to decode session: {sanitize_error(e)}")
            return ValidationResult.invalid(ERROR_DECODE)

        self._log_payload(data)

        user_id = self.decoder.get_user_id(data)
        if user_id is None:
            logger.debug("User not authenticated")
            return ValidationResult.invalid(ERROR_NOT_AUTHENTICATED)

        user = await self.store.get_user(user_id)
        if user is None:
            logger.debug("User not found or deleted")
            return ValidationResult.invalid(ERROR_USER_NOT_FOUND)

        role = await self.store.get_user_role(user_id)
        logger.debug(f"User role: {role}")

        if role == SINGLE_SESSION_ROLE and user.session_id is not None:
            if user.session_id != session_id:
                logger.info("Single session check failed, user logged in elsewhere")
                return ValidationResult.invalid(ERROR_LOGGED_IN_ELSEWHERE, REASON_SINGLE_SESSION)

        if _two_factor_enabled(user) and not self.decoder.is_2fa_verified(data):
            logger.debug("2FA verification required")
            return ValidationResult.invalid(ERROR_2FA_REQUIRED, REASON_2FA_REQUIRED)

        permissions = await self._resolve_permissions(data, user_id)

        logger.debug("Session validation successful")
        return ValidationResult(
            valid=True,
            user=user,
            role=role,
            permissions=permissions,
            session_id=session_id,
            csrf_token=self.decoder.get_csrf_token(data),
        )

    async def _resolve_permissions(self, data: DecodedSession, user_id: int) -> Optional[Any]:
        """Session payload first, then the store; a store failure gives None"""
        permissions = self.decoder.get_permissions(data)
        if permissions is not None:
            logger.debug("Permissions found in session payload")
            return permissions

        logger.debug("Permissions not in session payload, asking the store")
        try:
            return await self.store.get_user_permissions(user_id)
        except Exception as e:
            logger.warning(f"Failed to fetch permissions, continuing without: {sanitize_error(e)}")
            return None

    def _log_payload(self, data: DecodedSession) -> None:
        if not logger.isEnabledFor(logging.DEBUG):
            return

        if should_sanitize():
            logger.debug(f"Session payload decoded ({len(data)} keys)")
        else:
            logger.debug(
                "Session payload decoded: "
                + json.dumps(sanitize_object(to_builtin(data)), default=str, indent=2)
            )
