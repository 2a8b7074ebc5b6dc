import asyncio

import httpx

from cutout.config import Settings
from cutout.messages import get_message
from cutout.worker import upload_manager

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 256


async def _wait_for_prompt():
    for _ in range(200):
        if upload_manager.pending_prompt:
            return upload_manager.pending_prompt
        await asyncio.sleep(0.01)
    raise AssertionError("fallback prompt never appeared")


async def _use_failing_service(session_factory, make_client):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(400, json={"errors": [{"title": "Invalid image"}]})
    )
    await upload_manager.start(
        Settings(FALLBACK_PROMPT_TIMEOUT_SECONDS=5.0, LOCALE="en"),
        session_factory,
        removal_client=make_client(api_key="secret", transport=transport),
    )


class TestHealthEndpoint:
    async def test_health_returns_ok(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["mode"] == "mock"
        assert data["busy"] is False


class TestUploadEndpoint:
    async def test_upload_in_mock_mode_completes(self, client):
        response = await client.post(
            "/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")}
        )
        assert response.status_code == 202
        upload_id = response.json()["upload_id"]

        await upload_manager.wait()

        status = (await client.get("/status")).json()
        assert status["state"] == "done"
        assert status["upload_id"] == upload_id
        assert status["is_processing"] is False

        detail = (await client.get(f"/uploads/{upload_id}")).json()
        assert detail["state"] == "done"
        assert detail["has_original"] is True
        assert detail["has_processed"] is True
        assert detail["is_uploading"] is False
        assert detail["is_processing"] is False

        processed = await client.get(f"/uploads/{upload_id}/processed")
        assert processed.status_code == 200
        assert processed.content == PNG_BYTES
        assert processed.headers["content-type"] == "image/png"

    async def test_upload_non_image_rejected(self, client):
        response = await client.post(
            "/upload", files={"file": ("notes.txt", b"hello world", "text/plain")}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == get_message("unsupported_type")
        assert (await client.get("/status")).json()["state"] == "idle"

    async def test_upload_too_large_rejected(self, client):
        large_data = b"x" * (11 * 1024 * 1024)
        response = await client.post(
            "/upload", files={"file": ("large.png", large_data, "image/png")}
        )
        assert response.status_code == 413
        assert (await client.get("/uploads")).json()["total"] == 0


class TestFallbackFlow:
    async def test_accepting_fallback_completes_with_original(
        self, client, session_factory, make_client
    ):
        await _use_failing_service(session_factory, make_client)

        response = await client.post(
            "/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")}
        )
        upload_id = response.json()["upload_id"]

        prompt = await _wait_for_prompt()
        assert "Invalid image" in prompt

        busy = await client.post(
            "/upload", files={"file": ("other.png", PNG_BYTES, "image/png")}
        )
        assert busy.status_code == 409

        answer = await client.post("/fallback", json={"accept": True})
        assert answer.status_code == 204
        await upload_manager.wait()

        detail = (await client.get(f"/uploads/{upload_id}")).json()
        assert detail["state"] == "done"
        original = await client.get(f"/uploads/{upload_id}/original")
        processed = await client.get(f"/uploads/{upload_id}/processed")
        assert processed.content == original.content == PNG_BYTES

    async def test_declining_fallback_fails_and_keeps_original(
        self, client, session_factory, make_client
    ):
        await _use_failing_service(session_factory, make_client)

        response = await client.post(
            "/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")}
        )
        upload_id = response.json()["upload_id"]

        await _wait_for_prompt()
        await client.post("/fallback", json={"accept": False})
        await upload_manager.wait()

        status = (await client.get("/status")).json()
        assert status["state"] == "failed"
        assert status["reason"] == "Invalid image"

        detail = (await client.get(f"/uploads/{upload_id}")).json()
        assert detail["state"] == "failed"
        assert detail["has_original"] is True
        assert detail["has_processed"] is False
        assert detail["notice"] == get_message("upload_failed", "en")

        missing = await client.get(f"/uploads/{upload_id}/processed")
        assert missing.status_code == 404

    async def test_fallback_without_prompt_conflicts(self, client):
        response = await client.post("/fallback", json={"accept": True})
        assert response.status_code == 409


class TestUploadsEndpoints:
    async def test_list_uploads_empty(self, client):
        response = await client.get("/uploads")
        assert response.status_code == 200
        data = response.json()
        assert data["uploads"] == []
        assert data["total"] == 0

    async def test_list_uploads_pagination_limits(self, client):
        assert (await client.get("/uploads?page_size=101")).status_code == 400
        assert (await client.get("/uploads?page=0")).status_code == 400

    async def test_get_unknown_upload(self, client):
        assert (await client.get("/uploads/nonexistent-id")).status_code == 404
        assert (await client.get("/uploads/nonexistent-id/original")).status_code == 404

    async def test_delete_upload(self, client):
        response = await client.post(
            "/upload", files={"file": ("photo.png", PNG_BYTES, "image/png")}
        )
        upload_id = response.json()["upload_id"]
        await upload_manager.wait()

        assert (await client.delete(f"/uploads/{upload_id}")).status_code == 204
        assert (await client.get(f"/uploads/{upload_id}")).status_code == 404
        assert (await client.delete(f"/uploads/{upload_id}")).status_code == 404
