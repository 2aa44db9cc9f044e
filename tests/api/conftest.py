from typing import Any

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from shieldforge.application.facade import ShieldForge
from shieldforge.presentation.dependencies import (
    get_session_claims,
    get_session_cookie_name,
    get_shieldforge,
    require_session_claims,
)


@pytest.fixture()
def shieldforge() -> ShieldForge:
    return ShieldForge(jwt_secret="api-secret", jwt_expires_in="1h", jwt_issuer="svc")


@pytest.fixture()
def app(shieldforge):
    app = FastAPI()

    @app.get("/me")
    async def me(claims: dict[str, Any] = Depends(require_session_claims)):
        return {"user_id": claims["userId"]}

    @app.get("/optional")
    async def optional(claims: dict[str, Any] | None = Depends(get_session_claims)):
        return {"authenticated": claims is not None}

    app.dependency_overrides[get_shieldforge] = lambda: shieldforge
    app.dependency_overrides[get_session_cookie_name] = lambda: "sf_session"
    try:
        yield app
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app):
    return TestClient(app, raise_server_exceptions=False)


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
