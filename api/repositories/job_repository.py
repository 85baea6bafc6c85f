"""Job repository for booking database operations."""

from collections.abc import Iterable
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from models import FINISHED_STATUSES, Job, JobStatus, JobType, TranslatorJob
from repositories.utils import log_slow_query


class JobRepository:
    """Repository for Job database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, job_id: int) -> Job | None:
        """Get a job with its distance and assignments loaded."""
        result = await self.db.execute(
            select(Job)
            .where(Job.id == job_id)
            .options(
                selectinload(Job.distance),
                selectinload(Job.language),
                selectinload(Job.customer),
                selectinload(Job.translator_jobs).selectinload(
                    TranslatorJob.translator
                ),
            )
        )
        return result.scalar_one_or_none()

    async def exists(self, job_id: int) -> bool:
        result = await self.db.execute(select(Job.id).where(Job.id == job_id))
        return result.scalar_one_or_none() is not None

    @log_slow_query("list_all_jobs")
    async def list_all(
        self,
        *,
        status: JobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        """All jobs, newest first."""
        query = select(Job).order_by(Job.created_at.desc(), Job.id.desc())
        if status is not None:
            query = query.where(Job.status == status)
        result = await self.db.execute(query.limit(limit).offset(offset))
        return list(result.scalars().all())

    @log_slow_query("list_jobs_for_customer")
    async def list_for_customer(
        self, user_id: int, *, statuses: Iterable[JobStatus] | None = None
    ) -> list[Job]:
        query = select(Job).where(Job.user_id == user_id).order_by(Job.due.desc())
        if statuses is not None:
            query = query.where(Job.status.in_(list(statuses)))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @log_slow_query("list_jobs_for_translator")
    async def list_for_translator(
        self, user_id: int, *, statuses: Iterable[JobStatus] | None = None
    ) -> list[Job]:
        """Jobs the translator currently holds (live assignments only)."""
        query = (
            select(Job)
            .join(TranslatorJob, TranslatorJob.job_id == Job.id)
            .where(
                TranslatorJob.user_id == user_id,
                TranslatorJob.cancel_at.is_(None),
            )
            .order_by(Job.due.desc())
        )
        if statuses is not None:
            query = query.where(Job.status.in_(list(statuses)))
        result = await self.db.execute(query)
        return list(result.scalars().all())

    @log_slow_query("list_job_history")
    async def list_history(
        self,
        user_id: int,
        *,
        as_translator: bool,
        limit: int,
        offset: int,
    ) -> tuple[list[Job], int]:
        """Finished jobs for a customer or translator, newest first, with total."""
        if as_translator:
            condition = Job.id.in_(
                select(TranslatorJob.job_id).where(TranslatorJob.user_id == user_id)
            )
        else:
            condition = Job.user_id == user_id

        base = select(Job).where(condition, Job.status.in_(list(FINISHED_STATUSES)))

        total_result = await self.db.execute(
            select(func.count()).select_from(base.subquery())
        )
        total = total_result.scalar_one()

        result = await self.db.execute(
            base.order_by(Job.due.desc(), Job.id.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    @log_slow_query("list_open_jobs")
    async def list_open(
        self,
        *,
        now: datetime,
        job_type: JobType,
        language_ids: Iterable[int],
    ) -> list[Job]:
        """Pending jobs of a type, in the given languages, not yet expired."""
        language_ids = list(language_ids)
        if not language_ids:
            return []
        result = await self.db.execute(
            select(Job)
            .where(
                Job.status == JobStatus.PENDING,
                Job.job_type == job_type,
                Job.from_language_id.in_(language_ids),
                (Job.will_expire_at.is_(None)) | (Job.will_expire_at > now),
            )
            .order_by(Job.due)
        )
        return list(result.scalars().all())

    async def create(self, **fields: Any) -> Job:
        """Create a job. Flushes so the ID is available to the caller."""
        job = Job(**fields)
        self.db.add(job)
        await self.db.flush()
        return job

    async def update(self, job: Job, **fields: Any) -> Job:
        """Set the given attributes on a loaded job."""
        for name, value in fields.items():
            setattr(job, name, value)
        job.updated_at = datetime.now(UTC)
        await self.db.flush()
        return job

    async def transition(
        self,
        job_id: int,
        *,
        from_statuses: Iterable[JobStatus],
        to_status: JobStatus,
        **fields: Any,
    ) -> bool:
        """Move a job to ``to_status`` only if it is in one of ``from_statuses``.

        A single conditional UPDATE, so concurrent callers racing on the same
        job cannot both succeed. Returns True when this caller won.
        """
        result = await self.db.execute(
            update(Job)
            .where(Job.id == job_id, Job.status.in_(list(from_statuses)))
            .values(status=to_status, updated_at=datetime.now(UTC), **fields)
            .returning(Job.id)
            .execution_options(synchronize_session="fetch")
        )
        return result.scalar_one_or_none() is not None

    async def try_assign(self, job_id: int) -> bool:
        """pending -> assigned; False if the job was no longer pending."""
        return await self.transition(
            job_id, from_statuses=[JobStatus.PENDING], to_status=JobStatus.ASSIGNED
        )

    @log_slow_query("expire_overdue_jobs")
    async def expire_overdue(self, now: datetime) -> int:
        """Time out pending jobs whose will_expire_at has passed."""
        result = await self.db.execute(
            update(Job)
            .where(
                Job.status == JobStatus.PENDING,
                Job.will_expire_at.is_not(None),
                Job.will_expire_at <= now,
            )
            .values(status=JobStatus.TIMED_OUT, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
