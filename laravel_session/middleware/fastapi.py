"""
FastAPI integration: protect routes with a Laravel session cookie.

    auth = LaravelSessionAuth(client)

    @app.get("/api/user")
    async def user(session: ValidationResult = Depends(auth)):
        return session.to_dict()
"""

import logging
from typing import Optional

from fastapi import HTTPException, Request

from laravel_session.client import LaravelSessionClient
from laravel_session.core.exceptions import StoreError
from laravel_session.core.security import sanitize_error
from laravel_session.models.session import ValidationResult

logger = logging.getLogger(__name__)


class LaravelSessionAuth:
    """Dependency that validates the session cookie or answers 401"""

    def __init__(self, client: LaravelSessionClient, auto_error: bool = True):
        self.client = client
        self.auto_error = auto_error

    async def __call__(self, request: Request) -> Optional[ValidationResult]:
        cookie_value = request.cookies.get(self.client.get_session_cookie_name())

        if not cookie_value:
            if not self.auto_error:
                return None
            raise HTTPException(
                status_code=401,
                detail={"error": "Unauthorized", "message": "No session cookie found"},
            )

        try:
            result = await self.client.validate_session(cookie_value)
        except StoreError as e:
            logger.error(f"Session store unavailable: {sanitize_error(e)}")
            raise HTTPException(
                status_code=500,
                detail={"error": "Internal Server Error", "message": "Session store unavailable"},
            )

        if not result.valid:
            if not self.auto_error:
                return None
            detail = {"error": "Unauthorized", "message": result.error}
            if result.reason:
                detail["reason"] = result.reason
            raise HTTPException(status_code=401, detail=detail)

        request.state.laravel_session = result
        return result
