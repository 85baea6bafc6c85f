"""API tests for /api/jobs endpoints.

Data is arranged through db_session and committed; the app reads it back
through its own sessions.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Job, JobStatus
from services.notifications_service import NotificationDispatchError
from tests.factories import (
    DistanceFactory,
    JobFactory,
    TranslatorJobFactory,
    create_async,
)


async def _job(db: AsyncSession, customer, language, **kwargs) -> Job:
    job = await create_async(
        JobFactory,
        db,
        user_id=customer.id,
        from_language_id=language.id,
        **kwargs,
    )
    await db.commit()
    return job


async def _status(db: AsyncSession, job_id: int) -> JobStatus:
    return await db.scalar(select(Job.status).where(Job.id == job_id))


@pytest.fixture(autouse=True)
def quiet_notifications():
    """No provider is configured in tests; keep dispatch out of the way."""
    with (
        patch(
            "services.notifications_service.push_job_to_translators",
            new_callable=AsyncMock,
            return_value=0,
        ),
        patch(
            "services.notifications_service.send_email",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_email,
    ):
        yield mock_email


class TestAuthentication:
    async def test_missing_token_is_401(self, client: AsyncClient):
        response = await client.get("/api/jobs")

        assert response.status_code == 401
        assert response.json() == {"message": "Unauthorized"}
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_unknown_token_is_401(self, app):
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
            headers={"Authorization": "Bearer not-a-real-token"},
        ) as ac:
            response = await ac.get("/api/jobs")

        assert response.status_code == 401


class TestListJobs:
    async def test_customer_without_user_id_is_403(self, customer_client: AsyncClient):
        response = await customer_client.get("/api/jobs")

        assert response.status_code == 403
        assert response.json() == {"message": "No data found or access denied"}

    async def test_customer_lists_own_jobs(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language)

        response = await customer_client.get(
            "/api/jobs", params={"user_id": customer.id}
        )

        assert response.status_code == 200
        assert [j["id"] for j in response.json()] == [job.id]

    async def test_admin_lists_everything(
        self, admin_client: AsyncClient, db_session, customer, language
    ):
        await _job(db_session, customer, language)
        await _job(db_session, customer, language, status=JobStatus.COMPLETED)

        response = await admin_client.get("/api/jobs")

        assert response.status_code == 200
        assert len(response.json()) == 2


class TestHistory:
    async def test_missing_user_id_is_400(self, customer_client: AsyncClient):
        response = await customer_client.get("/api/jobs/history")

        assert response.status_code == 400
        assert response.json() == {"message": "user_id is required"}

    async def test_returns_page_and_total(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        await _job(db_session, customer, language, status=JobStatus.COMPLETED)

        response = await customer_client.get(
            "/api/jobs/history", params={"user_id": customer.id}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["total"] == 1
        assert body["page"] == 1
        assert body["per_page"] == 15


class TestGetJob:
    @pytest.mark.parametrize("raw_id", ["abc", "²", "٣"])
    async def test_non_numeric_id_is_400(
        self, customer_client: AsyncClient, raw_id: str
    ):
        response = await customer_client.get(f"/api/jobs/{raw_id}")

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid ID provided"}

    async def test_unknown_id_is_404(self, customer_client: AsyncClient):
        response = await customer_client.get("/api/jobs/9999")

        assert response.status_code == 404
        assert response.json() == {"message": "Job not found"}

    async def test_detail_includes_distance_and_translator(
        self, admin_client: AsyncClient, db_session, customer, translator, language
    ):
        job = await create_async(
            JobFactory,
            db_session,
            user_id=customer.id,
            from_language_id=language.id,
            status=JobStatus.ASSIGNED,
        )
        await create_async(DistanceFactory, db_session, job_id=job.id)
        await create_async(
            TranslatorJobFactory, db_session, job_id=job.id, user_id=translator.id
        )
        await db_session.commit()

        response = await admin_client.get(f"/api/jobs/{job.id}")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "assigned"
        assert body["distance"] == {"distance": "12", "time": "00:25"}
        assert body["translator"]["id"] == translator.id


class TestCreateJob:
    async def test_customer_books_a_job(
        self, customer_client: AsyncClient, customer, language
    ):
        due = (datetime.now(UTC) + timedelta(days=4)).isoformat()

        response = await customer_client.post(
            "/api/jobs",
            json={
                "from_language_id": language.id,
                "due": due,
                "duration": 60,
                "customer_phone_type": True,
            },
        )

        body = response.json()
        assert response.status_code == 201
        assert body["status"] == "pending"
        assert body["user_id"] == customer.id
        assert body["job_type"] == "paid"

    async def test_malformed_body_is_400(self, customer_client: AsyncClient):
        response = await customer_client.post("/api/jobs", json={"immediate": False})

        assert response.status_code == 400
        assert response.json()["message"] == "Validation failed"

    async def test_booking_rule_violation_is_400(
        self, customer_client: AsyncClient, language
    ):
        response = await customer_client.post(
            "/api/jobs",
            json={
                "from_language_id": language.id,
                "due": (datetime.now(UTC) + timedelta(days=4)).isoformat(),
                "duration": 60,
            },
        )

        assert response.status_code == 400
        assert "phone or physical" in response.json()["message"]

    async def test_translator_cannot_book(
        self, translator_client: AsyncClient, language
    ):
        response = await translator_client.post(
            "/api/jobs",
            json={"from_language_id": language.id, "immediate": True, "duration": 30},
        )

        assert response.status_code == 403


class TestUpdateJob:
    async def test_transport_fields_are_ignored(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language)

        response = await customer_client.put(
            f"/api/jobs/{job.id}",
            json={"duration": 90, "_token": "csrf", "submit": "Save"},
        )

        assert response.status_code == 200
        assert response.json()["duration"] == 90

    async def test_unknown_field_is_400(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language)

        response = await customer_client.put(
            f"/api/jobs/{job.id}", json={"status": "completed"}
        )

        assert response.status_code == 400

    @pytest.mark.parametrize("raw_id", ["x1", "²"])
    async def test_invalid_id_is_400(self, customer_client: AsyncClient, raw_id: str):
        response = await customer_client.put(
            f"/api/jobs/{raw_id}", json={"duration": 30}
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid ID provided"}


class TestAccept:
    async def test_accept_returns_translator_jobs(
        self, translator_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language)

        response = await translator_client.post(
            "/api/jobs/accept", json={"job_id": job.id}
        )

        body = response.json()
        assert response.status_code == 200
        assert body["message"] == "Job accepted successfully"
        assert [j["id"] for j in body["jobs"]] == [job.id]
        assert await _status(db_session, job.id) == JobStatus.ASSIGNED

    async def test_taken_job_is_500(
        self, translator_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.ASSIGNED)

        response = await translator_client.post(
            "/api/jobs/accept", json={"job_id": job.id}
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to accept job"}

    async def test_accept_with_id_reports_outcome(
        self, translator_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.COMPLETED)

        response = await translator_client.post(
            "/api/jobs/accept-with-id", json={"job_id": job.id}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "fail"

    async def test_unknown_job_is_404(self, translator_client: AsyncClient):
        response = await translator_client.post(
            "/api/jobs/accept", json={"job_id": 9999}
        )

        assert response.status_code == 404


class TestTransitions:
    async def test_customer_cancels(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language)

        response = await customer_client.post(
            "/api/jobs/cancel", json={"job_id": job.id}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "success"
        assert await _status(db_session, job.id) == JobStatus.WITHDRAWN_BEFORE_24

    async def test_translator_ends_job(
        self,
        translator_client: AsyncClient,
        db_session,
        customer,
        translator,
        language,
    ):
        job = await create_async(
            JobFactory,
            db_session,
            user_id=customer.id,
            from_language_id=language.id,
            status=JobStatus.STARTED,
            due=datetime.now(UTC) - timedelta(hours=1),
        )
        await create_async(
            TranslatorJobFactory, db_session, job_id=job.id, user_id=translator.id
        )
        await db_session.commit()

        response = await translator_client.post(
            "/api/jobs/end", json={"job_id": job.id}
        )

        assert response.json()["status"] == "success"
        assert await _status(db_session, job.id) == JobStatus.COMPLETED

    async def test_customer_not_call_by_customer_is_403(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.ASSIGNED)

        response = await customer_client.post(
            "/api/jobs/customer-not-call", json={"job_id": job.id}
        )

        assert response.status_code == 403

    async def test_reopen_uses_jobid_key(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.TIMED_OUT)

        response = await customer_client.post(
            "/api/jobs/reopen", json={"jobid": job.id}
        )

        assert response.json()["status"] == "success"
        assert await _status(db_session, job.id) == JobStatus.PENDING


class TestImmediateJobEmail:
    async def test_confirmation_is_sent(
        self, customer_client: AsyncClient, db_session, customer, language
    ):
        job = await _job(db_session, customer, language, immediate=True)

        response = await customer_client.post(
            "/api/jobs/immediate-email",
            json={"user_email_job_id": job.id, "user_email": "desk@example.com"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Email sent successfully"}

    async def test_mail_failure_is_500(
        self,
        customer_client: AsyncClient,
        db_session,
        customer,
        language,
        quiet_notifications,
    ):
        job = await _job(db_session, customer, language, immediate=True)
        quiet_notifications.side_effect = NotificationDispatchError(
            "email", "mail down"
        )

        response = await customer_client.post(
            "/api/jobs/immediate-email",
            json={"user_email_job_id": job.id, "user_email": "desk@example.com"},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to send email"}

    async def test_invalid_email_is_400(self, customer_client: AsyncClient):
        response = await customer_client.post(
            "/api/jobs/immediate-email",
            json={"user_email_job_id": 1, "user_email": "nobody"},
        )

        assert response.status_code == 400
