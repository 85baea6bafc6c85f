"""Tests for JobRepository, TranslatorJobRepository and DistanceRepository.

Runs against the per-test SQLite database.
"""

from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Distance, JobStatus, JobType
from repositories.distance_repository import DistanceRepository
from repositories.job_repository import JobRepository
from repositories.translator_job_repository import TranslatorJobRepository
from tests.factories import (
    JobFactory,
    TranslatorJobFactory,
    create_async,
)


async def _job(db: AsyncSession, customer, language, **kwargs):
    return await create_async(
        JobFactory,
        db,
        user_id=customer.id,
        from_language_id=language.id,
        **kwargs,
    )


class TestTransition:
    async def test_only_one_of_two_assigns_wins(
        self, db_session: AsyncSession, customer, language
    ):
        job = await _job(db_session, customer, language)
        repo = JobRepository(db_session)

        first = await repo.try_assign(job.id)
        second = await repo.try_assign(job.id)

        assert first is True
        assert second is False
        assert job.status == JobStatus.ASSIGNED

    async def test_wrong_source_status_changes_nothing(
        self, db_session: AsyncSession, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.COMPLETED)

        moved = await JobRepository(db_session).transition(
            job.id,
            from_statuses=[JobStatus.PENDING],
            to_status=JobStatus.TIMED_OUT,
        )

        assert moved is False
        assert job.status == JobStatus.COMPLETED

    async def test_extra_fields_are_written_with_status(
        self, db_session: AsyncSession, customer, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.ASSIGNED)
        ended = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)

        await JobRepository(db_session).transition(
            job.id,
            from_statuses=[JobStatus.ASSIGNED],
            to_status=JobStatus.COMPLETED,
            end_at=ended,
        )

        assert job.end_at == ended


class TestListQueries:
    async def test_history_counts_all_pages(
        self, db_session: AsyncSession, customer, language
    ):
        for _ in range(3):
            await _job(db_session, customer, language, status=JobStatus.COMPLETED)
        await _job(db_session, customer, language)

        jobs, total = await JobRepository(db_session).list_history(
            customer.id, as_translator=False, limit=2, offset=0
        )

        assert total == 3
        assert len(jobs) == 2

    async def test_translator_history_covers_cancelled_assignments(
        self, db_session: AsyncSession, customer, translator, language
    ):
        job = await _job(
            db_session, customer, language, status=JobStatus.WITHDRAWN_BEFORE_24
        )
        await create_async(
            TranslatorJobFactory,
            db_session,
            job_id=job.id,
            user_id=translator.id,
            cancel_at=datetime.now(UTC),
        )

        jobs, total = await JobRepository(db_session).list_history(
            translator.id, as_translator=True, limit=15, offset=0
        )

        assert [j.id for j in jobs] == [job.id]
        assert total == 1

    async def test_open_jobs_exclude_expired_and_other_types(
        self, db_session: AsyncSession, customer, language
    ):
        now = datetime.now(UTC)
        open_job = await _job(db_session, customer, language)
        await _job(
            db_session, customer, language, will_expire_at=now - timedelta(minutes=5)
        )
        await _job(db_session, customer, language, job_type=JobType.UNPAID)
        await _job(db_session, customer, language, status=JobStatus.ASSIGNED)

        jobs = await JobRepository(db_session).list_open(
            now=now, job_type=JobType.PAID, language_ids=[language.id]
        )

        assert [j.id for j in jobs] == [open_job.id]

    async def test_open_jobs_without_languages_is_empty(
        self, db_session: AsyncSession
    ):
        jobs = await JobRepository(db_session).list_open(
            now=datetime.now(UTC), job_type=JobType.PAID, language_ids=[]
        )
        assert jobs == []


class TestTranslatorJobRepository:
    async def test_cancel_live_keeps_history(
        self, db_session: AsyncSession, customer, translator, language
    ):
        job = await _job(db_session, customer, language, status=JobStatus.ASSIGNED)
        repo = TranslatorJobRepository(db_session)
        await repo.create(job.id, translator.id)

        touched = await repo.cancel_live(job.id, datetime.now(UTC))

        assert touched == 1
        assert await repo.get_live(job.id) is None

    async def test_active_jobs_ignore_finished_ones(
        self, db_session: AsyncSession, customer, translator, language
    ):
        active = await _job(db_session, customer, language, status=JobStatus.STARTED)
        done = await _job(db_session, customer, language, status=JobStatus.COMPLETED)
        repo = TranslatorJobRepository(db_session)
        await repo.create(active.id, translator.id)
        await repo.create(done.id, translator.id)

        jobs = await repo.get_active_jobs_for_translator(translator.id)

        assert [j.id for j in jobs] == [active.id]


class TestDistanceRepository:
    async def test_upsert_overwrites_existing_record(
        self, db_session: AsyncSession, customer, language
    ):
        job = await _job(db_session, customer, language)
        repo = DistanceRepository(db_session)

        await repo.upsert(job.id, distance="10", time="00:20")
        await repo.upsert(job.id, distance="12", time="00:25")

        rows = (
            await db_session.execute(
                select(Distance.distance, Distance.time).where(
                    Distance.job_id == job.id
                )
            )
        ).all()
        assert rows == [("12", "00:25")]
