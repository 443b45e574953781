from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient

from tests.conftest import Backends, add_user, auth, create_test_org, mint_token


def test_response_has_request_id_header(client: TestClient) -> None:
    resp = client.get("/health")
    assert "X-Request-ID" in resp.headers
    uuid.UUID(resp.headers["X-Request-ID"])


def test_client_request_id_is_echoed(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "my-trace-123"})
    assert resp.headers["X-Request-ID"] == "my-trace-123"


def test_each_request_gets_unique_id(client: TestClient) -> None:
    ids = {client.get("/health").headers["X-Request-ID"] for _ in range(5)}
    assert len(ids) == 5


def test_completion_log_carries_tenant(
    client: TestClient, backends: Backends, caplog: pytest.LogCaptureFixture
) -> None:
    org = create_test_org(backends)
    token = mint_token(add_user(backends, org, "admin"), org)

    with caplog.at_level(logging.INFO, logger="lms.middleware.request_context"):
        client.get("/admin/users", headers={**auth(token), "X-Request-ID": "req-42"})

    records = [r for r in caplog.records if r.name == "lms.middleware.request_context"]
    assert records
    assert records[-1].tenant == "acme_tenant"
    assert records[-1].request_id == "req-42"
    assert records[-1].status_code == 200


def test_completion_log_without_tenant(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="lms.middleware.request_context"):
        client.get("/health")

    records = [r for r in caplog.records if r.name == "lms.middleware.request_context"]
    assert records[-1].tenant == "-"
