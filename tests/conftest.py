from __future__ import annotations

import os
import secrets
import sys
from pathlib import Path
from typing import Any
from urllib.parse import urlencode

# app.main loads settings at import; give it provider credentials first.
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("CLIENT_ID", "test-client-id")
os.environ.setdefault("CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("REDIRECT_URI", "http://testserver/callback")
os.environ.setdefault("SESSION_SECRET", "test-session-secret")

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from starlette.requests import Request  # noqa: E402

from app.core.config import Settings  # noqa: E402
from app.core.errors import ExchangeError  # noqa: E402
from app.main import create_app  # noqa: E402
from app.models.identity import TokenSet  # noqa: E402
from app.repos.user_repo import InMemoryUserRepo  # noqa: E402

TEST_SETTINGS = Settings(  # type: ignore[arg-type]
    app_env="test",
    log_level="info",
    log_json=False,
    port=5000,
    client_id="test-client-id",
    client_secret="test-client-secret",
    redirect_uri="http://testserver/callback",
    session_secret="test-session-secret",
    database_url=None,
)

FAKE_AUTHORIZE_URL = "https://login.xero.test/identity/connect/authorize"
# HS256 needs a reasonably long key or PyJWT complains
_FAKE_ID_TOKEN_KEY = "fake-id-token-signing-key-for-tests-0123456789"


class FakeIdentityClient:
    """Stands in for Xero: authorization codes map to canned identity claims."""

    def __init__(self) -> None:
        self._claims_by_code: dict[str, dict[str, Any]] = {}
        self.tenant: dict[str, Any] | None = None
        self.exchanged_codes: list[str] = []

    def register_code(
        self,
        code: str,
        *,
        email: str,
        given_name: str = "",
        family_name: str = "",
        xero_userid: str | None = None,
    ) -> None:
        self._claims_by_code[code] = {
            "sub": f"sub-{code}",
            "email": email,
            "given_name": given_name,
            "family_name": family_name,
            "xero_userid": xero_userid or f"xero-{email}",
        }

    async def build_authorization_url(self, request: Request) -> str:
        params = {
            "client_id": TEST_SETTINGS.client_id,
            "scope": "openid profile email",
            "response_type": "code",
            "redirect_uri": TEST_SETTINGS.redirect_uri,
            "state": secrets.token_urlsafe(8),
        }
        return f"{FAKE_AUTHORIZE_URL}?{urlencode(params)}"

    async def exchange_callback(self, request: Request) -> TokenSet:
        code = request.query_params.get("code", "")
        claims = self._claims_by_code.get(code)
        if claims is None:
            raise ExchangeError("invalid_grant: authorization code is invalid or expired")
        self.exchanged_codes.append(code)
        return {
            "access_token": f"access-{code}",
            "refresh_token": f"refresh-{code}",
            "id_token": jwt.encode(claims, _FAKE_ID_TOKEN_KEY, algorithm="HS256"),
            "token_type": "Bearer",
            "expires_in": 1800,
        }

    async def fetch_active_tenant(self, token_set: TokenSet) -> dict[str, Any] | None:
        return self.tenant


@pytest.fixture
def identity() -> FakeIdentityClient:
    return FakeIdentityClient()


@pytest.fixture
def user_repo() -> InMemoryUserRepo:
    return InMemoryUserRepo()


@pytest.fixture
def signup_app(identity: FakeIdentityClient, user_repo: InMemoryUserRepo) -> FastAPI:
    return create_app(TEST_SETTINGS, identity_client=identity, user_repo=user_repo)


@pytest.fixture
def client(signup_app: FastAPI) -> TestClient:
    return TestClient(signup_app, follow_redirects=False)


def sign_in(
    client: TestClient,
    identity: FakeIdentityClient,
    *,
    code: str = "alice-code",
    email: str = "alice@example.com",
    given_name: str = "alice",
    family_name: str = "liddell",
):
    """Complete the callback leg for a user and return the response."""
    identity.register_code(
        code, email=email, given_name=given_name, family_name=family_name
    )
    return client.get("/callback", params={"code": code, "state": "test-state"})
