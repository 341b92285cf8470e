from __future__ import annotations

import asyncio
from uuid import UUID

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY
from starlette.requests import Request

from app.core.errors import DatastoreError, ExchangeError, SessionLookupError
from app.main import create_app
from app.models.user import User, UserFields
from app.repos.user_repo import InMemoryUserRepo
from app.services import signup_service
from app.services.session_cookie import COOKIE_NAME
from tests.conftest import TEST_SETTINGS, FakeIdentityClient


def _callback_request(code: str) -> Request:
    return Request(
        {
            "type": "http",
            "method": "GET",
            "path": "/callback",
            "query_string": f"code={code}&state=s".encode(),
            "headers": [],
        }
    )


def _callback(code: str, identity: FakeIdentityClient, repo: InMemoryUserRepo) -> str:
    return asyncio.run(
        signup_service.complete_callback(_callback_request(code), identity, repo)
    )


def _outcomes(outcome: str) -> float:
    value = REGISTRY.get_sample_value("signup_callbacks_total", {"outcome": outcome})
    return value if value is not None else 0.0


class FailingUpsertRepo(InMemoryUserRepo):
    async def upsert(self, fields: UserFields) -> User:
        raise DatastoreError("could not save user: OperationalError")


class FailingUpdateRepo(InMemoryUserRepo):
    async def update_more_info(self, user_id: UUID, more_info: str) -> User | None:
        raise DatastoreError("could not update user: OperationalError")


# ---- complete_callback ----


def test_complete_callback_returns_stored_session() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="bob@example.com", given_name="Bob")
    repo = InMemoryUserRepo()

    session_id = _callback("c1", identity, repo)

    user = asyncio.run(repo.get_by_session(session_id))
    assert user is not None
    assert user.email == "bob@example.com"
    assert user.first_name == "Bob"


def test_complete_callback_new_session_each_time() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="bob@example.com")
    identity.register_code("c2", email="bob@example.com")
    repo = InMemoryUserRepo()

    s1 = _callback("c1", identity, repo)
    s2 = _callback("c2", identity, repo)

    assert s1 != s2
    assert asyncio.run(repo.get_by_session(s1)) is None
    assert asyncio.run(repo.get_by_session(s2)) is not None
    assert len(repo) == 1


def test_complete_callback_counts_created_then_updated() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="carol@example.com")
    identity.register_code("c2", email="carol@example.com")
    repo = InMemoryUserRepo()

    created_before = _outcomes("created")
    updated_before = _outcomes("updated")
    _callback("c1", identity, repo)
    _callback("c2", identity, repo)

    assert _outcomes("created") - created_before == 1
    assert _outcomes("updated") - updated_before == 1


def test_complete_callback_exchange_error_propagates() -> None:
    repo = InMemoryUserRepo()
    before = _outcomes("exchange_error")

    with pytest.raises(ExchangeError):
        _callback("unknown", FakeIdentityClient(), repo)

    assert len(repo) == 0
    assert _outcomes("exchange_error") - before == 1


def test_complete_callback_datastore_error_propagates() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="dave@example.com")
    before = _outcomes("datastore_error")

    with pytest.raises(DatastoreError):
        _callback("c1", identity, FailingUpsertRepo())

    assert _outcomes("datastore_error") - before == 1


# ---- load_session_user / more_info ----


def test_load_session_user_miss_raises() -> None:
    with pytest.raises(SessionLookupError):
        asyncio.run(signup_service.load_session_user(InMemoryUserRepo(), "nope"))


def test_clean_more_info_limits() -> None:
    assert signup_service.clean_more_info("  hi  ") == "hi"
    assert signup_service.clean_more_info("x" * 2000) == "x" * 2000
    with pytest.raises(signup_service.MoreInfoValidationError):
        signup_service.clean_more_info("x" * 2001)


# ---- datastore failures at the route boundary ----


def _app_with(repo: InMemoryUserRepo, identity: FakeIdentityClient) -> FastAPI:
    return create_app(TEST_SETTINGS, identity_client=identity, user_repo=repo)


def test_callback_upsert_failure_renders_error_and_no_cookie() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="erin@example.com")
    client = TestClient(_app_with(FailingUpsertRepo(), identity), follow_redirects=False)

    resp = client.get("/callback", params={"code": "c1", "state": "s"})

    assert resp.status_code == 503
    assert "Could not save your details" in resp.text
    assert resp.cookies.get(COOKIE_NAME) is None
    assert COOKIE_NAME not in resp.headers.get("set-cookie", "")


def test_form_save_failure_renders_error() -> None:
    identity = FakeIdentityClient()
    identity.register_code("c1", email="frank@example.com")
    client = TestClient(_app_with(FailingUpdateRepo(), identity), follow_redirects=False)
    client.get("/callback", params={"code": "c1", "state": "s"})

    resp = client.post("/sign-up", data={"moreInfo": "hello"})

    assert resp.status_code == 503
    assert "could not update user" in resp.text
