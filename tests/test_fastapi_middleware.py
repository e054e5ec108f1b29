# tests/test_fastapi_middleware.py
"""
Tests for the FastAPI session dependency.
"""
from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.testclient import TestClient

from laravel_session.core.exceptions import DatabaseStoreError
from laravel_session.middleware.fastapi import LaravelSessionAuth
from laravel_session.models.session import LaravelUser, ValidationResult


@pytest.fixture
def session_client():
    client = Mock()
    client.get_session_cookie_name.return_value = "laravel_session"
    client.validate_session = AsyncMock(return_value=ValidationResult(
        valid=True, user=LaravelUser(id=42), session_id="abc123", csrf_token="tok123"
    ))
    return client


@pytest.fixture
def app(session_client):
    app = FastAPI()
    auth = LaravelSessionAuth(session_client)
    optional_auth = LaravelSessionAuth(session_client, auto_error=False)

    @app.get("/api/user")
    async def user(request: Request, session: ValidationResult = Depends(auth)):
        assert request.state.laravel_session is session
        return session.to_dict()

    @app.get("/api/optional")
    async def optional(session: Optional[ValidationResult] = Depends(optional_auth)):
        return {"authenticated": session is not None}

    return app


def test_valid_session(app, session_client):
    client = TestClient(app, cookies={"laravel_session": "encrypted-cookie"})

    response = client.get("/api/user")

    assert response.status_code == 200
    assert response.json()["csrfToken"] == "tok123"
    assert response.json()["user"]["id"] == 42
    session_client.validate_session.assert_awaited_once_with("encrypted-cookie")


def test_missing_cookie(app):
    response = TestClient(app).get("/api/user")

    assert response.status_code == 401
    assert response.json()["detail"] == {"error": "Unauthorized", "message": "No session cookie found"}


def test_invalid_session_with_reason(app, session_client):
    session_client.validate_session.return_value = ValidationResult.invalid(
        "Session invalidated. You were logged in elsewhere.", "shooter_single_session"
    )
    client = TestClient(app, cookies={"laravel_session": "encrypted-cookie"})

    response = client.get("/api/user")

    assert response.status_code == 401
    assert response.json()["detail"] == {
        "error": "Unauthorized",
        "message": "Session invalidated. You were logged in elsewhere.",
        "reason": "shooter_single_session",
    }


def test_store_unavailable(app, session_client):
    session_client.validate_session.side_effect = DatabaseStoreError("connection refused")
    client = TestClient(app, cookies={"laravel_session": "encrypted-cookie"})

    response = client.get("/api/user")

    assert response.status_code == 500
    assert response.json()["detail"]["message"] == "Session store unavailable"


def test_optional_auth(app, session_client):
    session_client.validate_session.return_value = ValidationResult.invalid("Session expired")

    assert TestClient(app).get("/api/optional").json() == {"authenticated": False}

    client = TestClient(app, cookies={"laravel_session": "encrypted-cookie"})
    assert client.get("/api/optional").json() == {"authenticated": False}
