from __future__ import annotations

import json
import time
import uuid

from app.models import Course, SubscriptionStatus, Video, VideoStatus

API = "/api/v1/videos"


async def _upload(client, headers, course_id, **extra):
    body = {"course_id": course_id, "title": extra.pop("title", "Lesson"), **extra}
    return await client.post(f"{API}/upload-url", json=body, headers=headers)


async def _post_webhook(client, sign, payload, header=None):
    raw = json.dumps(payload).encode()
    headers = {"content-type": "application/json", "mux-signature": header or sign(raw)}
    return await client.post(f"{API}/webhook", content=raw, headers=headers)


async def test_upload_url_creates_waiting_video(client, headers_for, teacher, course, fake_provider):
    resp = await _upload(client, headers_for(teacher), course.id, title="Travis picking")

    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    data = body["data"]
    assert data["upload_url"] == "https://storage.example.com/upload-1"
    assert data["upload_id"] == "upload-1"
    assert data["video"]["status"] == "waiting"
    assert data["video"]["provider_upload_id"] == "upload-1"
    assert data["video"]["title"] == "Travis picking"


async def test_upload_url_requires_auth(client, course):
    resp = await _upload(client, {}, course.id)
    assert resp.status_code == 401
    assert resp.json()["success"] is False


async def test_upload_url_rejects_students(client, headers_for, student, course):
    resp = await _upload(client, headers_for(student), course.id)
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "INSUFFICIENT_ROLE"


async def test_upload_url_rejects_other_teachers(client, headers_for, other_teacher, course, fake_provider):
    resp = await _upload(client, headers_for(other_teacher), course.id)
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "NOT_COURSE_OWNER"
    assert fake_provider.calls == []


async def test_admin_may_upload_to_any_course(client, headers_for, admin, course):
    resp = await _upload(client, headers_for(admin), course.id)
    assert resp.status_code == 201


async def test_upload_url_duplicate_order(client, headers_for, teacher, course):
    first = await _upload(client, headers_for(teacher), course.id, order=1)
    assert first.status_code == 201

    second = await _upload(client, headers_for(teacher), course.id, order=1)
    assert second.status_code == 400
    assert second.json()["error_code"] == "DUPLICATE_VIDEO_ORDER"


async def test_upload_url_unknown_course(client, headers_for, teacher):
    resp = await _upload(client, headers_for(teacher), str(uuid.uuid4()))
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "COURSE_NOT_FOUND"


async def test_upload_url_validates_body(client, headers_for, teacher, course):
    resp = await client.post(
        f"{API}/upload-url",
        json={"course_id": course.id, "title": ""},
        headers=headers_for(teacher),
    )
    assert resp.status_code == 422
    assert resp.json()["error_code"] == "VALIDATION_ERROR"


async def test_upload_to_ready_end_to_end(client, sign, headers_for, teacher, course, fake_provider):
    headers = headers_for(teacher)
    created = (await _upload(client, headers, course.id)).json()["data"]
    video_id = created["video"]["id"]

    resp = await _post_webhook(client, sign, {
        "type": "video.upload.asset_created",
        "data": {"id": created["upload_id"], "asset_id": "asset-1"},
    })
    assert resp.status_code == 200
    assert resp.json()["message"] == "Webhook processed successfully"
    assert (await Video.get(video_id)).status == VideoStatus.PREPARING

    fake_provider.put_asset("asset-1", status="ready", duration=184.2, playback_ids=["pb-1"])
    resp = await _post_webhook(client, sign, {"type": "video.asset.ready", "data": {"id": "asset-1"}})
    assert resp.status_code == 200

    status = await client.get(f"{API}/{video_id}/status", headers=headers)
    assert status.status_code == 200
    video = status.json()["data"]["video"]
    assert video["status"] == "ready"
    assert video["is_ready"] is True
    assert video["playback_url"] == "https://stream.mux.com/pb-1.m3u8"
    assert video["formatted_duration"] == "3:04"
    assert video["thumbnail_url"] == "https://image.mux.com/pb-1/thumbnail.jpg?time=0"


async def test_webhook_rejects_bad_signature(client, sign, teacher, course, fake_provider):
    payload = {"type": "video.asset.ready", "data": {"id": "asset-1"}}
    resp = await _post_webhook(client, sign, payload, header="t=1,v1=deadbeef")

    assert resp.status_code == 401
    assert resp.json()["error_code"] == "INVALID_WEBHOOK_SIGNATURE"
    assert fake_provider.calls == []


async def test_webhook_rejects_missing_signature(client):
    resp = await client.post(f"{API}/webhook", json={"type": "video.asset.ready", "data": {"id": "a"}})
    assert resp.status_code == 401


async def test_webhook_rejects_body_signed_with_other_secret(client, sign):
    raw = json.dumps({"type": "video.asset.ready", "data": {"id": "a"}}).encode()
    resp = await client.post(
        f"{API}/webhook",
        content=raw,
        headers={"mux-signature": sign(raw, secret="someone-else")},
    )
    assert resp.status_code == 401


async def test_webhook_rejects_garbled_signature_headers(client):
    raw = json.dumps({"type": "video.asset.ready", "data": {"id": "a"}}).encode()
    now = int(time.time())
    for header in (f"t={now},v1=\u00e9".encode("latin-1"), ("t=" + "9" * 400 + ",v1=deadbeef").encode()):
        resp = await client.post(f"{API}/webhook", content=raw, headers={"mux-signature": header})
        assert resp.status_code == 401
        assert resp.json()["error_code"] == "INVALID_WEBHOOK_SIGNATURE"


async def test_webhook_ready_for_unknown_asset_is_404(client, sign):
    resp = await _post_webhook(client, sign, {"type": "video.asset.ready", "data": {"id": "ghost"}})
    assert resp.status_code == 404
    assert resp.json()["error_code"] == "VIDEO_NOT_FOUND"


async def test_webhook_errored_for_unknown_asset_is_ok(client, sign):
    resp = await _post_webhook(client, sign, {"type": "video.asset.errored", "data": {"id": "ghost"}})
    assert resp.status_code == 200


async def test_webhook_ignores_unhandled_types(client, sign, fake_provider):
    resp = await _post_webhook(client, sign, {"type": "video.asset.created", "data": {"id": "a"}})
    assert resp.status_code == 200
    assert resp.json()["message"] == "Webhook ignored"
    assert fake_provider.calls == []


async def test_webhook_rejects_invalid_json(client, sign):
    raw = b"{not json"
    resp = await client.post(f"{API}/webhook", content=raw, headers={"mux-signature": sign(raw)})
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "INVALID_WEBHOOK_PAYLOAD"


async def test_webhook_rejects_missing_ids(client, sign):
    resp = await _post_webhook(client, sign, {"type": "video.upload.asset_created", "data": {"id": "u"}})
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "INVALID_WEBHOOK_PAYLOAD"


async def test_webhook_provider_failure_is_5xx(client, sign, headers_for, teacher, course, fake_provider):
    from app.core.exceptions import UpstreamServiceException

    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    await _post_webhook(client, sign, {
        "type": "upload.asset_created",
        "data": {"id": created["upload_id"], "asset_id": "asset-1"},
    })
    fake_provider.fail = UpstreamServiceException(operation="get_asset")

    resp = await _post_webhook(client, sign, {"type": "asset.ready", "data": {"id": "asset-1"}})
    assert resp.status_code == 500
    assert resp.json()["error_code"] == "UPSTREAM_ERROR"


async def test_sync_endpoint_processing_then_ready(client, headers_for, teacher, course, fake_provider):
    headers = headers_for(teacher)
    created = (await _upload(client, headers, course.id)).json()["data"]
    video_id = created["video"]["id"]

    resp = await client.post(f"{API}/{video_id}/sync", headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "processing"

    fake_provider.put_asset(
        "asset-9", status="ready", duration=12, playback_ids=["pb-9"], upload_id=created["upload_id"]
    )
    resp = await client.post(f"{API}/{video_id}/sync", headers=headers)
    data = resp.json()["data"]
    assert data["status"] == "ready"
    assert data["provider_asset_id"] == "asset-9"
    assert data["provider_playback_id"] == "pb-9"
    assert data["duration"] == 12


async def test_sync_legacy_video_is_400(client, headers_for, teacher, course, fake_provider):
    video = Video(
        course_id=course.id,
        title="Hosted elsewhere",
        order=1,
        legacy_video_url="https://cdn.example.com/a.mp4",
        duration=10,
        thumbnail_url="https://cdn.example.com/a.jpg",
    )
    await video.insert()

    resp = await client.post(f"{API}/{video.id}/sync", headers=headers_for(teacher))
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "NO_PROVIDER_UPLOAD"
    assert fake_provider.calls == []


async def test_sync_forbidden_for_non_owner(client, headers_for, teacher, other_teacher, course):
    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    resp = await client.post(f"{API}/{created['video']['id']}/sync", headers=headers_for(other_teacher))
    assert resp.status_code == 403


async def test_sync_unknown_and_malformed_ids(client, headers_for, teacher):
    headers = headers_for(teacher)
    missing = await client.post(f"{API}/{uuid.uuid4()}/sync", headers=headers)
    assert missing.status_code == 404

    malformed = await client.post(f"{API}/not-a-uuid/sync", headers=headers)
    assert malformed.status_code == 400
    assert malformed.json()["error_code"] == "INVALID_ID"
    assert malformed.json()["error"] == "Invalid video ID"

    malformed = await client.get(f"{API}/not-a-uuid/status", headers=headers)
    assert malformed.status_code == 400


async def test_status_forbidden_for_students(client, headers_for, teacher, student, course):
    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    resp = await client.get(f"{API}/{created['video']['id']}/status", headers=headers_for(student))
    assert resp.status_code == 403


async def test_course_videos_listing_is_ordered(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    await _upload(client, headers, course.id, title="Second", order=2)
    await _upload(client, headers, course.id, title="First", order=1, is_preview=True)

    resp = await client.get(f"{API}/course/{course.id}")
    assert resp.status_code == 200
    titles = [v["title"] for v in resp.json()["data"]["videos"]]
    assert titles == ["First", "Second"]

    resp = await client.get(f"{API}/course/{course.id}", params={"include_preview": "false"})
    assert [v["title"] for v in resp.json()["data"]["videos"]] == ["Second"]


async def test_reorder_swaps_two_videos(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    a = (await _upload(client, headers, course.id, title="A", order=1)).json()["data"]["video"]["id"]
    b = (await _upload(client, headers, course.id, title="B", order=2)).json()["data"]["video"]["id"]

    resp = await client.patch(
        f"{API}/reorder",
        json={"course_id": course.id, "video_orders": [{"video_id": a, "order": 2}, {"video_id": b, "order": 1}]},
        headers=headers,
    )
    assert resp.status_code == 200
    assert [v["title"] for v in resp.json()["data"]["videos"]] == ["B", "A"]


async def test_reorder_rejects_collisions(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    a = (await _upload(client, headers, course.id, title="A", order=1)).json()["data"]["video"]["id"]
    await _upload(client, headers, course.id, title="B", order=2)

    resp = await client.patch(
        f"{API}/reorder",
        json={"course_id": course.id, "video_orders": [{"video_id": a, "order": 2}]},
        headers=headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "DUPLICATE_VIDEO_ORDER"
    assert (await Video.get(a)).order == 1


async def test_reorder_rejects_foreign_video(client, headers_for, teacher, course):
    resp = await client.patch(
        f"{API}/reorder",
        json={"course_id": course.id, "video_orders": [{"video_id": "nope", "order": 1}]},
        headers=headers_for(teacher),
    )
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "VIDEO_NOT_IN_COURSE"


async def test_create_legacy_video(client, headers_for, teacher, course):
    resp = await client.post(
        API,
        json={
            "course_id": course.id,
            "title": "Hosted",
            "legacy_video_url": "https://cdn.example.com/h.mp4",
            "thumbnail_url": "https://cdn.example.com/h.jpg",
            "duration": 75,
        },
        headers=headers_for(teacher),
    )
    assert resp.status_code == 201
    video = resp.json()["data"]["video"]
    assert video["playback_url"] == "https://cdn.example.com/h.mp4"
    assert video["formatted_duration"] == "1:15"
    assert video["order"] == 1
    assert video["id"] in (await Course.get(course.id)).video_ids


async def test_get_video_requires_subscription(client, headers_for, teacher, student, course):
    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    video_id = created["video"]["id"]

    student.subscription.status = SubscriptionStatus.INACTIVE
    await student.save()

    resp = await client.get(f"{API}/{video_id}", headers=headers_for(student))
    assert resp.status_code == 403
    assert resp.json()["error_code"] == "SUBSCRIPTION_REQUIRED"

    resp = await client.get(f"{API}/{video_id}", headers=headers_for(teacher))
    assert resp.status_code == 200


async def test_trial_student_can_watch(client, headers_for, teacher, student, course):
    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    resp = await client.get(f"{API}/{created['video']['id']}", headers=headers_for(student))
    assert resp.status_code == 200


async def test_update_video_order_clash(client, headers_for, teacher, course):
    headers = headers_for(teacher)
    await _upload(client, headers, course.id, title="A", order=1)
    b = (await _upload(client, headers, course.id, title="B", order=2)).json()["data"]["video"]["id"]

    resp = await client.put(f"{API}/{b}", json={"order": 1}, headers=headers)
    assert resp.status_code == 400
    assert resp.json()["error_code"] == "DUPLICATE_VIDEO_ORDER"

    resp = await client.put(f"{API}/{b}", json={"order": 2, "title": "B renamed"}, headers=headers)
    assert resp.status_code == 200
    assert resp.json()["data"]["video"]["title"] == "B renamed"


async def test_delete_video_removes_asset_and_course_link(
    client, sign, headers_for, teacher, course, fake_provider
):
    headers = headers_for(teacher)
    created = (await _upload(client, headers, course.id)).json()["data"]
    video_id = created["video"]["id"]
    await _post_webhook(client, sign, {
        "type": "upload.asset_created",
        "data": {"id": created["upload_id"], "asset_id": "asset-1"},
    })

    resp = await client.delete(f"{API}/{video_id}", headers=headers)
    assert resp.status_code == 200
    assert await Video.get(video_id) is None
    assert video_id not in (await Course.get(course.id)).video_ids
    assert fake_provider.deleted_assets == ["asset-1"]


async def test_video_stats_for_owner(client, headers_for, teacher, course):
    created = (await _upload(client, headers_for(teacher), course.id)).json()["data"]
    resp = await client.get(f"{API}/{created['video']['id']}/stats", headers=headers_for(teacher))
    assert resp.status_code == 200
    assert resp.json()["data"]["stats"]["status"] == "waiting"
