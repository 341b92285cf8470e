from __future__ import annotations

import uuid

from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "lb-trace-42"})
    assert resp.headers["x-request-id"] == "lb-trace-42"


def test_request_id_on_redirects_and_error_pages(client: TestClient) -> None:
    assert client.get("/sign-up").headers.get("x-request-id")  # 302
    assert client.get("/callback").headers.get("x-request-id")  # error page
