"""Booking service: one function per booking use case.

Each use case fetches what it needs, checks business state, mutates through
the repositories, triggers notifications and returns its outcome. The
acting user is always passed in explicitly.

Routes should delegate booking business logic to this module and translate
its exceptions into HTTP statuses.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.logger import get_logger
from core.telemetry import log_business_event, track_operation
from core.wide_event import set_job_context
from models import (
    REOPENABLE_STATUSES,
    Job,
    JobStatus,
    JobType,
    Role,
    User,
    utcnow,
)
from repositories.distance_repository import DistanceRepository
from repositories.job_repository import JobRepository
from repositories.language_repository import LanguageRepository
from repositories.translator_job_repository import TranslatorJobRepository
from repositories.user_repository import UserRepository
from schemas import (
    DistanceFeedRequest,
    ImmediateJobEmailRequest,
    JobCreate,
    JobOutcome,
    JobUpdate,
)
from services import matching_service, notifications_service
from services.notifications_service import NotificationDispatchError

logger = get_logger(__name__)

HISTORY_PAGE_SIZE = 15

# Translators may not hand a job back this close to its start
TRANSLATOR_CANCEL_CUTOFF = timedelta(hours=24)

# Update fields that may be explicitly cleared with null
_NULLABLE_UPDATE_FIELDS = frozenset(
    {"gender", "admin_comments", "reference", "address", "instructions", "town"}
)


class JobValidationError(Exception):
    """The request is well-formed but breaks a booking rule."""


class JobNotFoundError(Exception):
    pass


class JobPermissionError(Exception):
    """The acting user may not perform this operation."""


class JobCreationError(Exception):
    pass


class JobUpdateError(Exception):
    pass


__all__ = [
    "JobCreationError",
    "JobNotFoundError",
    "JobPermissionError",
    "JobUpdateError",
    "JobValidationError",
    "NotificationDispatchError",
]


# =============================================================================
# Helpers
# =============================================================================


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def will_expire_at(due: datetime, created_at: datetime) -> datetime:
    """When a still-pending job stops being offered to translators.

    Short-notice jobs expire at their due time; the further out a job is
    booked, the longer translators get, but never closer than 48h to due
    for jobs booked more than three days ahead.
    """
    lead = due - created_at
    if lead <= timedelta(minutes=90):
        return due
    if lead <= timedelta(hours=24):
        return created_at + timedelta(minutes=90)
    if lead <= timedelta(hours=72):
        return created_at + timedelta(hours=16)
    return due - timedelta(hours=48)


def format_session_time(elapsed: timedelta) -> str:
    """HH:MM:SS; negative durations clamp to zero."""
    total = max(int(elapsed.total_seconds()), 0)
    hours, remainder = divmod(total, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def job_to_data(job: Job, language_name: str | None = None) -> dict[str, Any]:
    """Notification payload for a job.

    ``language_name`` overrides the job's loaded language relationship,
    for freshly created jobs whose relationships are not loaded.
    """
    if language_name is None:
        language_name = job.language.name
    return {
        "job_id": job.id,
        "language": language_name,
        "from_language_id": job.from_language_id,
        "immediate": job.immediate,
        "due": job.due.isoformat(),
        "due_date": job.due.strftime("%Y-%m-%d"),
        "due_time": job.due.strftime("%H:%M"),
        "duration": job.duration,
        "job_type": job.job_type.value,
        "gender": job.gender.value if job.gender else None,
        "certified": job.certified,
        "customer_phone_type": job.customer_phone_type,
        "customer_physical_type": job.customer_physical_type,
        "town": job.town,
    }


def _is_job_customer(actor: User, job: Job) -> bool:
    return actor.role == Role.CUSTOMER and job.user_id == actor.id


def _is_assigned_translator(actor: User, job: Job) -> bool:
    assignment = job.live_assignment
    return (
        actor.role == Role.TRANSLATOR
        and assignment is not None
        and assignment.user_id == actor.id
    )


def _customer_email(job: Job) -> str | None:
    return job.user_email or (job.customer.email if job.customer else None)


def _success(message: str) -> JobOutcome:
    return JobOutcome(status="success", message=message)


def _fail(message: str) -> JobOutcome:
    return JobOutcome(status="fail", message=message)


async def _load_job(db: AsyncSession, job_id: int) -> Job:
    job = await JobRepository(db).get_by_id(job_id)
    if job is None:
        raise JobNotFoundError(f"Job {job_id} not found")
    set_job_context(job.id, job.status.value)
    return job


async def _push_to_suitable_translators(
    db: AsyncSession, job: Job, job_data: dict[str, Any], now: datetime
) -> int:
    translators = await matching_service.get_suitable_translators(db, job)
    return await notifications_service.push_job_to_translators(
        job_data, translators, now
    )


async def _push_best_effort(
    db: AsyncSession, job: Job, job_data: dict[str, Any], now: datetime
) -> None:
    """Push a job to translators; a failed dispatch does not undo the booking."""
    try:
        await _push_to_suitable_translators(db, job, job_data, now)
    except NotificationDispatchError as e:
        logger.warning("job.dispatch.failed", job_id=job.id, error=str(e))


async def _email_best_effort(to: str | None, subject: str, body: str) -> None:
    if not to:
        return
    try:
        await notifications_service.send_email(to, subject, body)
    except NotificationDispatchError as e:
        logger.warning("job.email.failed", subject=subject, error=str(e))


# =============================================================================
# Queries
# =============================================================================


async def list_jobs(
    db: AsyncSession,
    actor: User,
    user_id: int | None = None,
    *,
    status: JobStatus | None = None,
    limit: int = 50,
    offset: int = 0,
) -> list[Job]:
    """Jobs of one user, or every job for admins.

    With ``user_id`` the user's jobs are returned whatever the actor's role:
    jobs they booked for customers, jobs they hold for translators.

    Raises:
        JobPermissionError: No user_id and the actor may not list all jobs.
    """
    repo = JobRepository(db)
    statuses = [status] if status is not None else None

    if user_id is not None:
        user = await UserRepository(db).get_by_id(user_id)
        if user is None:
            return []
        if user.role == Role.TRANSLATOR:
            return await repo.list_for_translator(user_id, statuses=statuses)
        return await repo.list_for_customer(user_id, statuses=statuses)

    if actor.role.can_list_all_jobs():
        return await repo.list_all(status=status, limit=limit, offset=offset)

    raise JobPermissionError("No data found or access denied")


async def get_job(db: AsyncSession, job_id: int) -> Job:
    """Raises JobNotFoundError if the job does not exist."""
    return await _load_job(db, job_id)


async def get_history(
    db: AsyncSession,
    actor: User,
    user_id: int | None,
    page: int = 1,
    per_page: int = HISTORY_PAGE_SIZE,
) -> tuple[list[Job], int]:
    """Finished jobs of a user, one page at a time.

    Returns (jobs, total).

    Raises:
        JobValidationError: user_id is missing.
    """
    if user_id is None:
        raise JobValidationError("user_id is required")

    user = await UserRepository(db).get_by_id(user_id)
    if user is None:
        return [], 0

    page = max(page, 1)
    return await JobRepository(db).list_history(
        user_id,
        as_translator=user.role == Role.TRANSLATOR,
        limit=per_page,
        offset=(page - 1) * per_page,
    )


async def get_potential_jobs(
    db: AsyncSession, actor: User, now: datetime | None = None
) -> list[Job]:
    """Pending jobs the acting translator could accept.

    Raises:
        JobPermissionError: The actor is not a translator.
    """
    if actor.role != Role.TRANSLATOR:
        raise JobPermissionError("Only translators have potential jobs")
    return await matching_service.get_potential_jobs(db, actor, now or utcnow())


# =============================================================================
# Booking and changes
# =============================================================================


async def _resolve_customer(
    db: AsyncSession, actor: User, customer_id: int | None
) -> User:
    if actor.role == Role.CUSTOMER:
        if customer_id is not None and customer_id != actor.id:
            raise JobPermissionError("Customers can only book for themselves")
        return actor

    if actor.role.is_admin:
        if customer_id is None:
            raise JobValidationError(
                "customer_id is required when booking on behalf of a customer"
            )
        customer = await UserRepository(db).get_by_id(customer_id)
        if customer is None or customer.role != Role.CUSTOMER:
            raise JobValidationError(f"Customer {customer_id} not found")
        return customer

    raise JobPermissionError("Translators cannot book jobs")


@track_operation("job_creation")
async def create_job(
    db: AsyncSession,
    actor: User,
    data: JobCreate,
    now: datetime | None = None,
) -> Job:
    """Book a job for a customer.

    Immediate bookings are due a few minutes from now and are always phone
    bookings; they are offered to translators once the customer's contact
    details arrive (see store_job_email). Other bookings are offered right
    away.

    Raises:
        JobValidationError: A booking rule is broken.
        JobPermissionError: The actor may not book for this customer.
        JobCreationError: The job could not be stored.
    """
    now = now or utcnow()
    settings = get_settings()
    customer = await _resolve_customer(db, actor, data.customer_id)

    language = await LanguageRepository(db).get_by_id(data.from_language_id)
    if language is None:
        raise JobValidationError(f"Unknown language {data.from_language_id}")

    phone = data.customer_phone_type
    if data.immediate:
        due = now + timedelta(minutes=settings.immediate_booking_minutes)
        phone = True
    else:
        if data.due is None:
            raise JobValidationError("due is required for non-immediate bookings")
        due = _as_utc(data.due)
        if due <= now:
            raise JobValidationError("Due date must be in the future")

    if not (phone or data.customer_physical_type):
        raise JobValidationError(
            "Choose phone or physical interpretation (or both)"
        )

    try:
        job = await JobRepository(db).create(
            user_id=customer.id,
            from_language_id=language.id,
            immediate=data.immediate,
            due=due,
            duration=data.duration,
            status=JobStatus.PENDING,
            job_type=JobType.for_consumer(customer.consumer_type),
            gender=data.gender,
            certified=data.certified,
            customer_phone_type=phone,
            customer_physical_type=data.customer_physical_type,
            town=data.town or customer.town,
            by_admin=actor.role.is_admin,
            will_expire_at=will_expire_at(due, now),
            created_at=now,
            updated_at=now,
        )
    except SQLAlchemyError as e:
        logger.error("job.create.failed", customer_id=customer.id, error=str(e))
        await db.rollback()
        raise JobCreationError("Failed to create job") from e

    set_job_context(job.id, job.status.value, job_immediate=job.immediate)
    logger.info(
        "job.created",
        job_id=job.id,
        customer_id=customer.id,
        immediate=job.immediate,
        job_type=job.job_type.value,
    )
    log_business_event("job_created", 1, {"job_type": job.job_type.value})

    if not job.immediate:
        await _push_best_effort(db, job, job_to_data(job, language.name), now)

    return job


@track_operation("job_update")
async def update_job(
    db: AsyncSession,
    job_id: int,
    data: JobUpdate,
    actor: User,
    now: datetime | None = None,
) -> Job:
    """Change a pending or assigned job.

    Only admins and the customer who booked may change a job. When the time
    or language of an assigned job changes, its translator is told.

    Raises:
        JobNotFoundError, JobPermissionError, JobValidationError,
        JobUpdateError
    """
    now = now or utcnow()
    job = await _load_job(db, job_id)

    if not (actor.role.is_admin or _is_job_customer(actor, job)):
        raise JobPermissionError("You cannot change this job")

    fields = {
        name: value
        for name, value in data.model_dump(exclude_unset=True).items()
        if value is not None or name in _NULLABLE_UPDATE_FIELDS
    }
    if not fields:
        return job

    if "admin_comments" in fields and not actor.role.is_admin:
        raise JobPermissionError("Only admins can set admin comments")

    if job.status not in (JobStatus.PENDING, JobStatus.ASSIGNED):
        raise JobValidationError(
            f"A job that is {job.status.value} can no longer be changed"
        )

    if "due" in fields:
        fields["due"] = _as_utc(fields["due"])
        if fields["due"] <= now:
            raise JobValidationError("Due date must be in the future")

    if "from_language_id" in fields:
        if await LanguageRepository(db).get_by_id(fields["from_language_id"]) is None:
            raise JobValidationError(
                f"Unknown language {fields['from_language_id']}"
            )

    phone = fields.get("customer_phone_type", job.customer_phone_type)
    physical = fields.get("customer_physical_type", job.customer_physical_type)
    if not (phone or physical):
        raise JobValidationError(
            "Choose phone or physical interpretation (or both)"
        )

    due_changed = "due" in fields and fields["due"] != job.due
    language_changed = (
        "from_language_id" in fields
        and fields["from_language_id"] != job.from_language_id
    )
    if due_changed:
        fields["will_expire_at"] = will_expire_at(fields["due"], job.created_at)

    try:
        await JobRepository(db).update(job, **fields)
    except SQLAlchemyError as e:
        logger.error("job.update.failed", job_id=job_id, error=str(e))
        await db.rollback()
        raise JobUpdateError("Failed to update job") from e

    logger.info("job.updated", job_id=job_id, fields=sorted(fields))

    translator = job.translator
    if translator is not None and (due_changed or language_changed):
        if language_changed:
            # The loaded relationship still points at the old language
            await db.refresh(job, attribute_names=["language"])
        change = "has a new time" if due_changed else "has a new language"
        try:
            await notifications_service.notify_translator_job_changed(
                job_to_data(job), translator, change
            )
        except NotificationDispatchError as e:
            logger.warning("job.change_notice.failed", job_id=job_id, error=str(e))

    return job


# =============================================================================
# State transitions
# =============================================================================


async def _accept(
    db: AsyncSession, job_id: int, actor: User, now: datetime
) -> JobOutcome:
    if actor.role != Role.TRANSLATOR:
        raise JobPermissionError("Only translators can accept jobs")

    job = await _load_job(db, job_id)

    if job.status != JobStatus.PENDING:
        return _fail("This booking has already been accepted by another translator")
    if job.will_expire_at is not None and job.will_expire_at <= now:
        return _fail("This booking has expired")
    if not await matching_service.is_suitable_translator(db, actor, job):
        return _fail("You do not meet the requirements of this booking")
    if await matching_service.is_translator_already_booked(db, actor.id, job):
        return _fail(
            "You already have a booking at this time. "
            "You cannot accept this booking."
        )

    if not await JobRepository(db).try_assign(job.id):
        logger.info("job.accept.lost_race", job_id=job.id, translator_id=actor.id)
        return _fail("This booking has already been accepted by another translator")

    await TranslatorJobRepository(db).create(job.id, actor.id)
    set_job_context(job.id, JobStatus.ASSIGNED.value)

    logger.info("job.accepted", job_id=job.id, translator_id=actor.id)
    log_business_event("job_accepted", 1, {"job_type": job.job_type.value})

    await _email_best_effort(
        _customer_email(job),
        f"Confirmation - interpreter booked (booking #{job.id})",
        (
            f"Hello {job.customer.name},\n\n"
            f"Your booking #{job.id} for {job.language.name} on "
            f"{job.due:%Y-%m-%d} at {job.due:%H:%M} ({job.duration} min) has "
            f"been accepted by {actor.name}.\n"
        ),
    )
    return _success(f"Booking #{job.id} accepted")


@track_operation("job_accept")
async def accept_job(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> tuple[JobOutcome, list[Job]]:
    """Accept a pending job; on success also return the translator's jobs."""
    outcome = await _accept(db, job_id, actor, now or utcnow())
    if outcome.status != "success":
        return outcome, []
    jobs = await JobRepository(db).list_for_translator(
        actor.id, statuses=[JobStatus.ASSIGNED, JobStatus.STARTED]
    )
    return outcome, jobs


@track_operation("job_accept")
async def accept_job_with_id(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> JobOutcome:
    return await _accept(db, job_id, actor, now or utcnow())


@track_operation("job_cancel")
async def cancel_job(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> JobOutcome:
    """Withdraw a booking (customer) or hand an assignment back (translator).

    A customer withdrawal is ``withdrawbefore24`` when the job is 24h or
    more away, ``withdrawafter24`` otherwise. A translator may only hand a
    job back more than 24h ahead; the job then goes back to pending and is
    offered again.
    """
    now = now or utcnow()
    job = await _load_job(db, job_id)
    jobs = JobRepository(db)
    assignments = TranslatorJobRepository(db)

    if _is_assigned_translator(actor, job):
        if job.status != JobStatus.ASSIGNED:
            return _fail("This booking can no longer be cancelled")
        if job.due - now < TRANSLATOR_CANCEL_CUTOFF:
            return _fail(
                "You cannot cancel less than 24 hours before the booking. "
                "Please contact support."
            )
        if not await jobs.transition(
            job.id, from_statuses=[JobStatus.ASSIGNED], to_status=JobStatus.PENDING
        ):
            return _fail("This booking can no longer be cancelled")
        await assignments.cancel_live(job.id, now)
        set_job_context(job.id, JobStatus.PENDING.value)

        logger.info("job.translator_cancelled", job_id=job.id, translator_id=actor.id)
        await _push_best_effort(db, job, job_to_data(job), now)
        return _success(f"Booking #{job.id} handed back")

    if not (actor.role.is_admin or _is_job_customer(actor, job)):
        raise JobPermissionError("You cannot cancel this job")

    translator = job.translator
    status = (
        JobStatus.WITHDRAWN_BEFORE_24
        if job.due - now >= timedelta(hours=24)
        else JobStatus.WITHDRAWN_AFTER_24
    )
    if not await jobs.transition(
        job.id,
        from_statuses=[JobStatus.PENDING, JobStatus.ASSIGNED],
        to_status=status,
        withdraw_at=now,
    ):
        return _fail("This booking can no longer be cancelled")
    await assignments.cancel_live(job.id, now)
    set_job_context(job.id, status.value)

    logger.info("job.withdrawn", job_id=job.id, status=status.value)
    log_business_event("job_withdrawn", 1, {"status": status.value})

    if translator is not None:
        try:
            await notifications_service.notify_translator_job_changed(
                job_to_data(job), translator, "was cancelled by the customer"
            )
        except NotificationDispatchError as e:
            logger.warning("job.cancel_notice.failed", job_id=job.id, error=str(e))

    return _success(f"Booking #{job.id} withdrawn")


@track_operation("job_end")
async def end_job(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> JobOutcome:
    """Complete an assigned or started job and mail the customer a summary."""
    now = now or utcnow()
    job = await _load_job(db, job_id)

    if not (
        actor.role.is_admin
        or _is_job_customer(actor, job)
        or _is_assigned_translator(actor, job)
    ):
        raise JobPermissionError("You cannot end this job")

    session_time = format_session_time(now - job.due)
    if not await JobRepository(db).transition(
        job.id,
        from_statuses=[JobStatus.ASSIGNED, JobStatus.STARTED],
        to_status=JobStatus.COMPLETED,
        end_at=now,
        session_time=session_time,
    ):
        return _fail("Only assigned or started bookings can be ended")
    await TranslatorJobRepository(db).complete_live(job.id, now)
    set_job_context(job.id, JobStatus.COMPLETED.value)

    logger.info("job.ended", job_id=job.id, session_time=session_time)
    log_business_event("job_completed", 1, {"job_type": job.job_type.value})

    translator = job.translator
    await _email_best_effort(
        _customer_email(job),
        f"Information about your booking #{job.id}",
        (
            f"Hello {job.customer.name},\n\n"
            f"Your {job.language.name} session on {job.due:%Y-%m-%d} at "
            f"{job.due:%H:%M} has ended.\n"
            f"Session time: {session_time}\n"
            + (f"Interpreter: {translator.name}\n" if translator else "")
        ),
    )
    return _success(f"Booking #{job.id} completed")


@track_operation("job_customer_not_call")
async def customer_not_call(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> JobOutcome:
    """Record that the customer never showed up for an assigned job."""
    now = now or utcnow()
    job = await _load_job(db, job_id)

    if not (actor.role.is_admin or _is_assigned_translator(actor, job)):
        raise JobPermissionError("You cannot report this job")

    if not await JobRepository(db).transition(
        job.id,
        from_statuses=[JobStatus.ASSIGNED, JobStatus.STARTED],
        to_status=JobStatus.NOT_CARRIED_OUT_CUSTOMER,
        end_at=now,
    ):
        return _fail("Only assigned or started bookings can be reported")
    await TranslatorJobRepository(db).complete_live(job.id, now)
    set_job_context(job.id, JobStatus.NOT_CARRIED_OUT_CUSTOMER.value)

    logger.info("job.customer_not_call", job_id=job.id)
    return _success(f"Booking #{job.id} marked as not carried out")


@track_operation("job_reopen")
async def reopen(
    db: AsyncSession, job_id: int, actor: User, now: datetime | None = None
) -> JobOutcome:
    """Put a withdrawn, timed-out or not-carried-out job back on offer.

    The job gets a fresh created_at and expiry, loses its end and withdraw
    times and its live assignment, and is offered to translators again.
    """
    now = now or utcnow()
    job = await _load_job(db, job_id)

    if not (actor.role.is_admin or _is_job_customer(actor, job)):
        raise JobPermissionError("You cannot reopen this job")

    if job.status not in REOPENABLE_STATUSES:
        return _fail(f"A job that is {job.status.value} cannot be reopened")
    if job.due <= now:
        return _fail("The booking date has passed")

    if not await JobRepository(db).transition(
        job.id,
        from_statuses=REOPENABLE_STATUSES,
        to_status=JobStatus.PENDING,
        created_at=now,
        will_expire_at=will_expire_at(job.due, now),
        end_at=None,
        withdraw_at=None,
    ):
        return _fail(f"A job that is {job.status.value} cannot be reopened")
    await TranslatorJobRepository(db).cancel_live(job.id, now)
    set_job_context(job.id, JobStatus.PENDING.value)

    logger.info("job.reopened", job_id=job.id)
    await _push_best_effort(db, job, job_to_data(job), now)
    return _success(f"Booking #{job.id} reopened")


@track_operation("job_expiry")
async def expire_overdue_jobs(db: AsyncSession, now: datetime | None = None) -> int:
    """Time out pending jobs nobody accepted before they expired."""
    count = await JobRepository(db).expire_overdue(now or utcnow())
    if count:
        logger.info("jobs.expired", count=count)
        log_business_event("jobs_expired", count)
    return count


# =============================================================================
# Admin operations
# =============================================================================


async def record_distance_feed(db: AsyncSession, data: DistanceFeedRequest) -> None:
    """Store travel and bookkeeping details for a job.

    The distance record is written only when a distance or time is given;
    the job's admin fields only when at least one of them is set.

    Raises:
        JobValidationError: The job is flagged without a comment.
        JobNotFoundError: The job does not exist.
    """
    if data.flagged and not data.admincomment:
        raise JobValidationError("Please, add comment")

    jobs = JobRepository(db)
    job = await jobs.get_by_id(data.jobid)
    if job is None:
        raise JobNotFoundError(f"Job {data.jobid} not found")
    set_job_context(job.id, job.status.value)

    if data.distance or data.time:
        await DistanceRepository(db).upsert(
            data.jobid, distance=data.distance, time=data.time
        )

    if (
        data.admincomment
        or data.session_time
        or data.flagged
        or data.manually_handled
        or data.by_admin
    ):
        await jobs.update(
            job,
            admin_comments=data.admincomment,
            flagged=data.flagged,
            session_time=data.session_time,
            manually_handled=data.manually_handled,
            by_admin=data.by_admin,
        )

    logger.info("job.distance_feed.recorded", job_id=data.jobid, flagged=data.flagged)


async def resend_notifications(
    db: AsyncSession, job_id: int, now: datetime | None = None
) -> int:
    """Push the job to every suitable translator again.

    Raises:
        JobNotFoundError, NotificationDispatchError
    """
    job = await _load_job(db, job_id)
    recipients = await _push_to_suitable_translators(
        db, job, job_to_data(job), now or utcnow()
    )
    logger.info("job.push.resent", job_id=job_id, recipients=recipients)
    return recipients


async def resend_sms_notifications(db: AsyncSession, job_id: int) -> int:
    """SMS the job to every suitable translator again.

    Raises:
        JobNotFoundError, NotificationDispatchError
    """
    job = await _load_job(db, job_id)
    translators = await matching_service.get_suitable_translators(db, job)
    sent = await notifications_service.sms_job_to_translators(
        job_to_data(job), translators
    )
    logger.info("job.sms.resent", job_id=job_id, sent=sent)
    return sent


@track_operation("job_email")
async def store_job_email(
    db: AsyncSession,
    data: ImmediateJobEmailRequest,
    now: datetime | None = None,
) -> Job:
    """Attach the customer's contact details to a job and confirm by email.

    Immediate jobs are offered to translators at this point.

    Raises:
        JobNotFoundError: The job does not exist.
        NotificationDispatchError: The confirmation email could not be sent.
    """
    now = now or utcnow()
    job = await _load_job(db, data.user_email_job_id)
    jobs = JobRepository(db)

    await jobs.update(
        job,
        user_email=data.user_email,
        reference=data.reference or job.reference,
        address=data.address or job.address,
        instructions=data.instructions or job.instructions,
        town=data.town or job.town,
    )

    settings = get_settings()
    await notifications_service.send_email(
        data.user_email,
        f"Booking confirmation #{job.id}",
        (
            f"Hello {job.customer.name},\n\n"
            f"We have received your booking #{job.id} for {job.language.name} "
            f"on {job.due:%Y-%m-%d} at {job.due:%H:%M} ({job.duration} min).\n"
            + (f"Reference: {job.reference}\n" if job.reference else "")
            + (f"Address: {job.address}\n" if job.address else "")
        ),
        cc=settings.admin_email or None,
    )
    logger.info("job.confirmation.sent", job_id=job.id)

    if job.immediate and job.status == JobStatus.PENDING:
        await _push_best_effort(db, job, job_to_data(job), now)

    return job
