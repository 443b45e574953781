"""Course, section and lesson endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from tests.conftest import Backends, add_user, auth, create_test_org, mint_token


@pytest.fixture
def headers(backends: Backends) -> dict[str, str]:
    org = create_test_org(backends, "acme")
    return auth(mint_token(add_user(backends, org, "admin"), org))


def _create(client: TestClient, headers: dict, **body) -> dict:
    body.setdefault("title", "Intro to Python")
    resp = client.post("/courses", json=body, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.mark.parametrize(
    "body",
    [{"price": 500}, {"pricing": {"price": 500}}],
    ids=["legacy-price", "nested-pricing"],
)
def test_pricing_round_trip(client: TestClient, headers: dict, body: dict) -> None:
    created = _create(client, headers, **body)

    fetched = client.get(f"/courses/{created['id']}", headers=headers).json()["data"]

    expected = {"isFree": False, "price": 500, "discountPercentage": 0}
    assert created["pricing"] == expected
    assert fetched["pricing"] == expected


def test_negative_price_rejected(client: TestClient, headers: dict) -> None:
    resp = client.post("/courses", json={"title": "X", "price": -1}, headers=headers)

    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_list_courses_default_page_size(client: TestClient, headers: dict) -> None:
    for i in range(12):
        _create(client, headers, title=f"Course {i}")

    data = client.get("/courses", headers=headers).json()["data"]

    assert len(data["items"]) == 10
    assert data["pagination"] == {"page": 1, "limit": 10, "total": 12, "totalPages": 2}


def test_curriculum_and_cascade_delete(client: TestClient, headers: dict) -> None:
    course = _create(client, headers)
    section = client.post(
        f"/courses/{course['id']}/sections", json={"title": "Basics"}, headers=headers
    ).json()["data"]
    lesson = client.post(
        f"/courses/{course['id']}/sections/{section['id']}/lessons",
        json={"title": "Hello", "videoUrl": "https://youtu.be/abc", "durationMinutes": 12},
        headers=headers,
    )
    assert lesson.status_code == 201
    assert lesson.json()["data"]["videoSource"] == "youtube"

    curriculum = client.get(f"/courses/{course['id']}/curriculum", headers=headers).json()["data"]
    assert curriculum["courseId"] == course["id"]
    assert [s["title"] for s in curriculum["sections"]] == ["Basics"]
    assert [l["title"] for l in curriculum["sections"][0]["lessons"]] == ["Hello"]

    assert client.delete(f"/courses/{course['id']}", headers=headers).status_code == 200

    gone = client.get(f"/courses/{course['id']}/curriculum", headers=headers)
    assert gone.status_code == 404
    assert gone.json()["message"] == "Course not found"


def test_delete_section_leaves_empty_curriculum(client: TestClient, headers: dict) -> None:
    course = _create(client, headers)
    section = client.post(
        f"/courses/{course['id']}/sections", json={"title": "Only"}, headers=headers
    ).json()["data"]
    client.post(
        f"/courses/{course['id']}/sections/{section['id']}/lessons",
        json={"title": "L1", "durationMinutes": 5},
        headers=headers,
    )

    resp = client.delete(f"/courses/sections/{section['id']}", headers=headers)

    assert resp.status_code == 200
    curriculum = client.get(f"/courses/{course['id']}/curriculum", headers=headers).json()["data"]
    assert curriculum["sections"] == []
    course_after = client.get(f"/courses/{course['id']}", headers=headers).json()["data"]
    assert course_after["totalLessons"] == 0
    assert course_after["totalDurationMinutes"] == 0


def test_lesson_material_upload(client: TestClient, backends: Backends, headers: dict) -> None:
    course = _create(client, headers)
    section = client.post(
        f"/courses/{course['id']}/sections", json={"title": "S"}, headers=headers
    ).json()["data"]
    lesson = client.post(
        f"/courses/{course['id']}/sections/{section['id']}/lessons",
        json={"title": "L", "videoUrl": "https://youtu.be/abc"},
        headers=headers,
    ).json()["data"]

    resp = client.post(
        f"/courses/lessons/{lesson['id']}/material",
        files={"file": ("video.mp4", b"\x00\x00\x00\x18ftyp", "video/mp4")},
        headers=headers,
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["videoSource"] == "upload"
    assert data["videoUrl"] is None
    assert data["resourcePublicId"] in backends.media.objects


def test_update_course_invalid_status(client: TestClient, headers: dict) -> None:
    course = _create(client, headers)

    resp = client.patch(f"/courses/{course['id']}", json={"status": "live"}, headers=headers)

    assert resp.status_code == 400
    assert resp.json()["message"] == "Invalid status"
