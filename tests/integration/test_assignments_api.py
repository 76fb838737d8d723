from __future__ import annotations

import uuid
from datetime import timedelta

from app.models import Assignment, Course, utc_now

API = "/api/v1/assignments"


def _body(course_id: str, **overrides) -> dict:
    body = {
        "course_id": course_id,
        "title": "Record the C major scale",
        "description": "Two octaves, hands together.",
        "instructions": "Upload a video of your performance.",
        "due_date": (utc_now() + timedelta(days=5)).isoformat(),
        "max_points": 50,
        "assignment_type": "recording",
    }
    body.update(overrides)
    return body


async def _create(client, headers, course_id, **overrides):
    resp = await client.post(API, json=_body(course_id, **overrides), headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]["assignment"]


async def test_create_assignment_links_course(client, headers_for, teacher, course):
    assignment = await _create(client, headers_for(teacher), course.id)

    assert assignment["is_published"] is False
    assert assignment["status"] == "upcoming"
    assert assignment["days_until_due"] == 5
    assert (await Course.get(course.id)).assignment_ids == [assignment["id"]]


async def test_create_assignment_rejects_past_due_date(client, headers_for, teacher, course):
    past = (utc_now() - timedelta(hours=1)).isoformat()
    resp = await client.post(API, json=_body(course.id, due_date=past), headers=headers_for(teacher))
    assert resp.status_code == 422


async def test_create_assignment_requires_course_owner(client, headers_for, other_teacher, course):
    resp = await client.post(API, json=_body(course.id), headers=headers_for(other_teacher))
    assert resp.status_code == 403


async def test_drafts_hidden_from_students(client, headers_for, teacher, student, course):
    draft = await _create(client, headers_for(teacher), course.id, title="Draft")
    await _create(client, headers_for(teacher), course.id, title="Live", is_published=True)

    resp = await client.get(f"{API}/course/{course.id}", params={"include_unpublished": "true"})
    assert [a["title"] for a in resp.json()["data"]["assignments"]] == ["Live"]

    resp = await client.get(
        f"{API}/course/{course.id}",
        params={"include_unpublished": "true"},
        headers=headers_for(teacher),
    )
    assert {a["title"] for a in resp.json()["data"]["assignments"]} == {"Draft", "Live"}

    resp = await client.get(f"{API}/{draft['id']}", headers=headers_for(student))
    assert resp.status_code == 404

    resp = await client.get(f"{API}/{draft['id']}", headers=headers_for(teacher))
    assert resp.status_code == 200


async def test_list_published_assignments(client, headers_for, teacher, course):
    await _create(client, headers_for(teacher), course.id, title="Hidden")
    await _create(client, headers_for(teacher), course.id, title="Visible", is_published=True)

    resp = await client.get(API)
    data = resp.json()["data"]
    assert [a["title"] for a in data["assignments"]] == ["Visible"]
    assert data["pagination"]["total_items"] == 1


async def test_publish_update_and_stats(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    assignment = await _create(client, headers, course.id)

    resp = await client.patch(f"{API}/{assignment['id']}/publish", json={"is_published": True}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["assignment"]["is_published"] is True

    soon = (utc_now() + timedelta(hours=12)).isoformat()
    resp = await client.put(f"{API}/{assignment['id']}", json={"due_date": soon, "max_points": 80}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["assignment"]["max_points"] == 80

    resp = await client.get(f"{API}/{assignment['id']}/stats", headers=headers)
    stats = resp.json()["data"]["stats"]
    assert stats["status"] == "due_soon"
    assert stats["is_due_soon"] is True
    assert stats["is_overdue"] is False


async def test_delete_assignment_unlinks_course(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    assignment = await _create(client, headers, course.id)

    resp = await client.delete(f"{API}/{assignment['id']}", headers=headers)
    assert resp.status_code == 200
    assert await Assignment.get(assignment["id"]) is None
    assert (await Course.get(course.id)).assignment_ids == []


async def test_unknown_assignment(client, headers_for, teacher):
    resp = await client.get(f"{API}/{uuid.uuid4()}", headers=headers_for(teacher))
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "ASSIGNMENT_NOT_FOUND"
