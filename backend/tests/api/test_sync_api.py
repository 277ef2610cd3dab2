"""Tests for the sync control endpoints."""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch

from teachease.main import create_app


class FailingStudentStore:
    """Document store double whose student writes always fail."""

    def __init__(self, inner):
        self.inner = inner

    def __getattr__(self, name):
        return getattr(self.inner, name)

    async def set_document(self, path, data):
        if "/students/" in path:
            raise ConnectionError("upload timed out")
        await self.inner.set_document(path, data)


class TestSyncApi:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    @pytest.mark.asyncio
    async def test_pending_then_push(self, client, services, make_subject, make_student):
        await services.storage.save_subject(make_subject())
        await services.storage.save_student(make_student())

        pending = client.get("/api/v1/sync/pending").json()
        assert pending["total"] == 2

        response = client.post("/api/v1/sync/push")

        assert response.status_code == 200
        assert response.json()["uploaded"] == {"students": ["stu-1"], "subjects": ["subj-1"]}
        assert client.get("/api/v1/sync/pending").json() == {"pending": {}, "total": 0}

    @pytest.mark.asyncio
    async def test_push_with_failures_returns_report(self, client, services, make_subject, make_student):
        services.remote.store = FailingStudentStore(services.remote.store)
        await services.storage.save_subject(make_subject())
        await services.storage.save_student(make_student())

        response = client.post("/api/v1/sync/push")

        assert response.status_code == 502
        report = response.json()["detail"]["report"]
        assert report["failed"] == {"students": ["stu-1"]}
        assert report["uploaded"] == {"subjects": ["subj-1"]}
        assert client.get("/api/v1/sync/pending").json()["pending"] == {"students": ["stu-1"]}

    def test_push_without_principal(self, client, services):
        services.auth.sign_out()

        response = client.post("/api/v1/sync/push")

        assert response.status_code == 401
        assert response.json()["detail"] == "User not authenticated"

    @pytest.mark.asyncio
    async def test_pull_and_tombstones(self, client, services, make_subject):
        await services.remote.upload(make_subject("s1"))
        await services.remote.upload(make_subject("s2"))
        await services.storage.add_deleted_subject("s1")

        response = client.post("/api/v1/sync/pull")

        assert response.status_code == 200
        assert response.json()["excluded_subjects"] == ["s1"]
        assert client.get("/api/v1/sync/deleted-subjects").json() == {"subject_ids": ["s1"]}

        response = client.post("/api/v1/sync/restore")

        assert response.status_code == 200
        assert sorted(s["id"] for s in client.get("/api/v1/records/subjects").json()) == ["s1", "s2"]
        assert client.get("/api/v1/sync/deleted-subjects").json() == {"subject_ids": []}

    @pytest.mark.asyncio
    async def test_clear_deleted_subjects(self, client, services):
        await services.storage.add_deleted_subject("s1")

        response = client.delete("/api/v1/sync/deleted-subjects")

        assert response.status_code == 204
        assert await services.storage.get_deleted_subjects() == []

    @pytest.mark.asyncio
    async def test_reset(self, client, services, make_subject):
        await services.storage.save_subject(make_subject())
        client.post("/api/v1/sync/push")

        response = client.post("/api/v1/sync/reset")

        assert response.json() == {"remote_cleared": True, "local_cleared": True, "remote_error": None}
        assert services.document_store.documents == {}
        assert client.get("/api/v1/records/subjects").json() == []

    def test_session_endpoints_need_interactive_auth(self, client):
        response = client.post("/api/v1/auth/sign-in", json={"email": "a@b.c", "password": "secret1"})

        assert response.status_code == 400


def test_logging_configured_on_startup(services):
    with patch("teachease.main.configure_logging") as configure_logging:
        with TestClient(create_app(services=services)):
            configure_logging.assert_called_once_with()
