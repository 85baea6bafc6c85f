"""Translator matching.

Decides which translators may receive a job, which pending jobs a
translator may take, and whether a translator is already booked for a
job's time slot.
"""

from datetime import datetime, timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from models import Job, JobType, User
from repositories.job_repository import JobRepository
from repositories.translator_job_repository import TranslatorJobRepository
from repositories.user_repository import UserRepository

_JOB_TYPE_BY_TRANSLATOR_TYPE = {jt.translator_type: jt for jt in JobType}


def job_window(job: Job) -> tuple[datetime, datetime]:
    return job.due, job.due + timedelta(minutes=job.duration)


def jobs_overlap(a: Job, b: Job) -> bool:
    a_start, a_end = job_window(a)
    b_start, b_end = job_window(b)
    return a_start < b_end and b_start < a_end


def translator_meets_requirements(translator: User, job: Job) -> bool:
    """Gender and certification requirements of the job."""
    if job.gender is not None and translator.gender != job.gender:
        return False
    if job.certified and not translator.certified:
        return False
    return True


async def is_suitable_translator(
    db: AsyncSession, translator: User, job: Job
) -> bool:
    """Type, language, gender and certification all fit the job."""
    if translator.translator_type != job.job_type.translator_type:
        return False
    if not translator_meets_requirements(translator, job):
        return False
    language_ids = await UserRepository(db).get_language_ids(translator.id)
    return job.from_language_id in language_ids


async def get_suitable_translators(db: AsyncSession, job: Job) -> list[User]:
    """Translators whose type, languages, gender and certification fit the job.

    Notification opt-outs are applied by the dispatcher, not here.
    """
    return await UserRepository(db).find_translators(
        translator_type=job.job_type.translator_type,
        language_id=job.from_language_id,
        gender=job.gender,
        certified_only=job.certified,
    )


async def is_translator_already_booked(
    db: AsyncSession, translator_id: int, job: Job
) -> bool:
    """True if the translator holds another active job overlapping this one."""
    held = await TranslatorJobRepository(db).get_active_jobs_for_translator(
        translator_id
    )
    return any(other.id != job.id and jobs_overlap(other, job) for other in held)


async def get_potential_jobs(
    db: AsyncSession, translator: User, now: datetime
) -> list[Job]:
    """Pending, unexpired jobs the translator could accept right now."""
    if translator.translator_type is None:
        return []

    job_type = _JOB_TYPE_BY_TRANSLATOR_TYPE[translator.translator_type]
    language_ids = await UserRepository(db).get_language_ids(translator.id)
    candidates = await JobRepository(db).list_open(
        now=now, job_type=job_type, language_ids=language_ids
    )
    held = await TranslatorJobRepository(db).get_active_jobs_for_translator(
        translator.id
    )

    return [
        job
        for job in candidates
        if translator_meets_requirements(translator, job)
        and not any(jobs_overlap(job, other) for other in held)
    ]
