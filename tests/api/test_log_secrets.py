"""Tokens, session ids and the client secret must never reach the logs.

Runs the whole handshake with every logger at DEBUG and scans the captured
records for the sensitive values.
"""

from __future__ import annotations

import logging

import pytest
from fastapi.testclient import TestClient

from app.repos.user_repo import InMemoryUserRepo
from app.services.session_cookie import COOKIE_NAME
from tests.conftest import TEST_SETTINGS, FakeIdentityClient, sign_in


def _logged_text(caplog: pytest.LogCaptureFixture) -> str:
    # our loggers only: the test client itself logs full request URLs via httpx
    parts: list[str] = []
    for record in caplog.records:
        if record.name.startswith("app."):
            parts.append(record.getMessage())
            parts.extend(str(v) for v in vars(record).values())
    return "\n".join(parts)


def test_handshake_logs_no_tokens_or_session(
    client: TestClient,
    identity: FakeIdentityClient,
    user_repo: InMemoryUserRepo,
    caplog: pytest.LogCaptureFixture,
) -> None:
    caplog.set_level(logging.DEBUG)

    resp = sign_in(client, identity, code="secret-code-123")
    client.post("/sign-up", data={"moreInfo": "hello"})
    client.get("/logout")

    cookie = resp.cookies.get(COOKIE_NAME)
    user = user_repo._by_email["alice@example.com"]
    logged = _logged_text(caplog)

    assert "CREATED user email=alice@example.com" in logged
    assert "secret-code-123" not in logged
    assert user.token_set["access_token"] not in logged
    assert user.token_set["refresh_token"] not in logged
    assert user.token_set["id_token"] not in logged
    assert user.session not in logged
    assert cookie not in logged
    assert TEST_SETTINGS.client_secret not in logged


def test_rejected_cookie_is_not_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.DEBUG)
    forged = "forged-session-value.AAAAAA.bad-signature"
    client.cookies.set(COOKIE_NAME, forged)

    resp = client.get("/sign-up")

    assert resp.status_code == 401
    assert forged not in _logged_text(caplog)


def test_request_log_omits_callback_query(
    client: TestClient, identity: FakeIdentityClient, caplog: pytest.LogCaptureFixture
) -> None:
    caplog.set_level(logging.INFO, logger="app.middleware.request_context")
    sign_in(client, identity, code="query-code-456")

    lines = [
        r.getMessage()
        for r in caplog.records
        if r.name == "app.middleware.request_context"
    ]
    assert any("/callback" in line for line in lines)
    assert not any("query-code-456" in line for line in lines)
