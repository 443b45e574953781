"""Batch and enrollment endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import Backends, add_sub_org, add_user, auth, create_test_org, mint_token


@pytest.fixture
def acme(backends: Backends):
    org = create_test_org(backends, "acme")
    admin = add_user(backends, org, "admin")
    educator = add_user(backends, org, "educator", verification_status="approved")
    return org, admin, educator


def _create_batch(client: TestClient, token: str, educator_id, **fields) -> dict:
    body = {"name": "Morning", "courseId": "course-1", "educatorId": str(educator_id), **fields}
    resp = client.post("/admin/batches", json=body, headers=auth(token))
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _publish(client: TestClient, token: str, batch_id: str) -> None:
    resp = client.patch(
        f"/admin/batches/{batch_id}/status", json={"status": "published"}, headers=auth(token)
    )
    assert resp.status_code == 200


def test_create_batch_defaults(client: TestClient, acme) -> None:
    org, admin, educator = acme

    batch = _create_batch(client, mint_token(admin, org), educator.id)

    assert batch["status"] == "draft"
    assert batch["mode"] == "online"
    assert batch["capacity"] == 0
    assert batch["enrollmentCount"] == 0
    assert batch["educatorId"] == str(educator.id)


def test_unverified_educator_cannot_be_assigned(
    client: TestClient, backends: Backends, acme
) -> None:
    org, admin, _ = acme
    pending = add_user(backends, org, "educator", verification_status="pending")

    resp = client.post(
        "/admin/batches",
        json={"name": "B", "courseId": "c1", "educatorId": str(pending.id)},
        headers=auth(mint_token(admin, org)),
    )

    assert resp.status_code == 400
    assert "not verified" in resp.json()["message"]


def test_status_endpoint_returns_id_and_status(client: TestClient, acme) -> None:
    org, admin, educator = acme
    token = mint_token(admin, org)
    batch = _create_batch(client, token, educator.id)

    resp = client.patch(
        f"/admin/batches/{batch['id']}/status", json={"status": "ongoing"}, headers=auth(token)
    )

    assert resp.json()["data"] == {"id": batch["id"], "status": "ongoing"}


def test_duplicate_enrollment_is_409(client: TestClient, backends: Backends, acme) -> None:
    org, admin, educator = acme
    token = mint_token(admin, org)
    learner = add_user(backends, org, "learner")
    batch = _create_batch(client, token, educator.id)
    _publish(client, token, batch["id"])
    url = f"/admin/batches/{batch['id']}/enrollments"

    first = client.post(url, json={"learnerId": str(learner.id)}, headers=auth(token))
    second = client.post(url, json={"learnerId": str(learner.id)}, headers=auth(token))

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["message"] == "Learner is already enrolled in this batch"
    fetched = client.get(f"/admin/batches/{batch['id']}", headers=auth(token))
    assert fetched.json()["data"]["enrollmentCount"] == 1


def test_full_batch_is_400_batch_full(client: TestClient, backends: Backends, acme) -> None:
    org, admin, educator = acme
    token = mint_token(admin, org)
    batch = _create_batch(client, token, educator.id, capacity=1)
    _publish(client, token, batch["id"])
    url = f"/admin/batches/{batch['id']}/enrollments"
    l1, l2 = add_user(backends, org, "learner"), add_user(backends, org, "learner")

    client.post(url, json={"learnerId": str(l1.id)}, headers=auth(token))
    resp = client.post(url, json={"learnerId": str(l2.id)}, headers=auth(token))

    assert resp.status_code == 400
    assert resp.json()["code"] == "BATCH_FULL"


def test_bulk_enroll_reports_per_learner(client: TestClient, backends: Backends, acme) -> None:
    org, admin, educator = acme
    token = mint_token(admin, org)
    batch = _create_batch(client, token, educator.id, capacity=2)
    _publish(client, token, batch["id"])
    learners = [add_user(backends, org, "learner") for _ in range(3)]

    resp = client.post(
        f"/admin/batches/{batch['id']}/enrollments/bulk",
        json={"learnerIds": [str(l.id) for l in learners]},
        headers=auth(token),
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert (data["total"], data["successCount"], data["failureCount"]) == (3, 2, 1)
    assert data["results"][2]["status"] == "error"
    assert data["results"][2]["message"] == "Batch is full"

    listed = client.get(f"/admin/batches/{batch['id']}/enrollments", headers=auth(token))
    assert listed.json()["data"]["pagination"]["total"] == 2


def test_learner_self_enroll(client: TestClient, backends: Backends, acme) -> None:
    org, admin, educator = acme
    token = mint_token(admin, org)
    batch = _create_batch(client, token, educator.id)
    _publish(client, token, batch["id"])
    learner = add_user(backends, org, "learner")

    resp = client.post(
        f"/learner/batches/{batch['id']}/enroll", headers=auth(mint_token(learner, org))
    )

    assert resp.status_code == 201
    assert resp.json()["data"]["learnerId"] == str(learner.id)
    assert resp.json()["data"]["source"] == "self"


def test_sub_org_admin_sees_only_own_batches(
    client: TestClient, backends: Backends, acme
) -> None:
    org, admin, _ = acme
    north, south = add_sub_org(backends, org, "North"), add_sub_org(backends, org, "South")
    north_ed = add_user(
        backends, org, "educator", sub_org_id=north.id, verification_status="approved"
    )
    south_ed = add_user(
        backends, org, "educator", sub_org_id=south.id, verification_status="approved"
    )
    admin_token = mint_token(admin, org)
    mine = _create_batch(client, admin_token, north_ed.id)
    theirs = _create_batch(client, admin_token, south_ed.id)
    north_admin = add_user(backends, org, "subOrgAdmin", sub_org_id=north.id)
    token = mint_token(north_admin, org)

    listed = client.get(
        "/admin/batches", params={"subOrgId": str(south.id)}, headers=auth(token)
    )
    foreign = client.get(f"/admin/batches/{theirs['id']}", headers=auth(token))

    assert [b["id"] for b in listed.json()["data"]["items"]] == [mine["id"]]
    assert foreign.status_code == 403


def test_unknown_batch_is_404(client: TestClient, acme) -> None:
    org, admin, _ = acme

    resp = client.get(
        "/admin/batches/00000000-0000-0000-0000-000000000000",
        headers=auth(mint_token(admin, org)),
    )

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "message": "Batch not found", "code": "NOT_FOUND"}
