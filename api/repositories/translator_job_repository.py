"""Translator assignment repository."""

from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import ACTIVE_STATUSES, Job, TranslatorJob


class TranslatorJobRepository:
    """Repository for TranslatorJob database operations.

    An assignment is live until cancel_at is set. At most one live
    assignment exists per job.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_live(self, job_id: int) -> TranslatorJob | None:
        result = await self.db.execute(
            select(TranslatorJob)
            .where(
                TranslatorJob.job_id == job_id,
                TranslatorJob.cancel_at.is_(None),
            )
            .options(selectinload(TranslatorJob.translator))
            .order_by(TranslatorJob.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create(self, job_id: int, user_id: int) -> TranslatorJob:
        assignment = TranslatorJob(job_id=job_id, user_id=user_id)
        self.db.add(assignment)
        await self.db.flush()
        return assignment

    async def cancel_live(self, job_id: int, now: datetime) -> int:
        """Mark the job's live assignment cancelled. Returns rows touched."""
        result = await self.db.execute(
            update(TranslatorJob)
            .where(
                TranslatorJob.job_id == job_id,
                TranslatorJob.cancel_at.is_(None),
            )
            .values(cancel_at=now)
            .returning(TranslatorJob.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all())

    async def complete_live(self, job_id: int, now: datetime) -> int:
        result = await self.db.execute(
            update(TranslatorJob)
            .where(
                TranslatorJob.job_id == job_id,
                TranslatorJob.cancel_at.is_(None),
            )
            .values(completed_at=now)
            .returning(TranslatorJob.id)
            .execution_options(synchronize_session="fetch")
        )
        return len(result.all())

    async def get_active_jobs_for_translator(self, user_id: int) -> list[Job]:
        """Assigned or started jobs the translator currently holds."""
        result = await self.db.execute(
            select(Job)
            .join(TranslatorJob, TranslatorJob.job_id == Job.id)
            .where(
                TranslatorJob.user_id == user_id,
                TranslatorJob.cancel_at.is_(None),
                Job.status.in_(list(ACTIVE_STATUSES)),
            )
        )
        return list(result.scalars().all())
