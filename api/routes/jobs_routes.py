"""Job booking endpoints for customers and translators."""

from fastapi import APIRouter, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from core import get_logger
from core.auth import CurrentUser
from core.database import DbSession
from core.ratelimit import READ_LIMIT, WRITE_LIMIT, limiter
from core.wide_event import set_wide_event_fields
from models import JobStatus
from schemas import (
    AcceptJobRequest,
    AcceptJobResponse,
    ImmediateJobEmailRequest,
    JobActionRequest,
    JobCreate,
    JobDetailResponse,
    JobHistoryResponse,
    JobOutcome,
    JobResponse,
    JobUpdate,
    MessageResponse,
    ReopenRequest,
)
from services import booking_service
from services.booking_service import (
    JobCreationError,
    JobNotFoundError,
    JobPermissionError,
    JobUpdateError,
    JobValidationError,
    NotificationDispatchError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/jobs", tags=["jobs"])

_AUTH_RESPONSES: dict[int | str, dict] = {
    401: {"description": "Not authenticated"},
    403: {"description": "Not allowed for this user"},
}


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _parse_job_id(raw: str) -> int:
    if not (raw.isascii() and raw.isdigit()):
        raise HTTPException(status_code=400, detail="Invalid ID provided")
    return int(raw)


@router.get("", response_model=list[JobResponse], responses=_AUTH_RESPONSES)
@limiter.limit(READ_LIMIT)
async def list_jobs_endpoint(
    request: Request,
    user: CurrentUser,
    db: DbSession,
    user_id: int | None = Query(default=None, gt=0),
    status: JobStatus | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
) -> list[JobResponse]:
    """A user's jobs, or every job for admins."""
    try:
        jobs = await booking_service.list_jobs(
            db, user, user_id, status=status, limit=limit, offset=offset
        )
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return [JobResponse.model_validate(job) for job in jobs]


@router.get(
    "/history",
    response_model=JobHistoryResponse,
    responses={400: {"description": "user_id missing"}, **_AUTH_RESPONSES},
)
@limiter.limit(READ_LIMIT)
async def job_history_endpoint(
    request: Request,
    user: CurrentUser,
    db: DbSession,
    user_id: int | None = Query(default=None, gt=0),
    page: int = Query(default=1, ge=1),
) -> JobHistoryResponse:
    try:
        jobs, total = await booking_service.get_history(db, user, user_id, page)
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return JobHistoryResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        page=page,
        per_page=booking_service.HISTORY_PAGE_SIZE,
        total=total,
    )


@router.get("/potential", response_model=list[JobResponse], responses=_AUTH_RESPONSES)
@limiter.limit(READ_LIMIT)
async def potential_jobs_endpoint(
    request: Request, user: CurrentUser, db: DbSession
) -> list[JobResponse]:
    """Pending jobs the calling translator could accept."""
    try:
        jobs = await booking_service.get_potential_jobs(db, user)
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    return [JobResponse.model_validate(job) for job in jobs]


@router.get(
    "/{job_id}",
    response_model=JobDetailResponse,
    responses={
        400: {"description": "Invalid ID"},
        404: {"description": "Job not found"},
        **_AUTH_RESPONSES,
    },
)
@limiter.limit(READ_LIMIT)
async def get_job_endpoint(
    request: Request, job_id: str, user: CurrentUser, db: DbSession
) -> JobDetailResponse:
    try:
        job = await booking_service.get_job(db, _parse_job_id(job_id))
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    return JobDetailResponse.model_validate(job)


@router.post(
    "",
    response_model=JobResponse,
    status_code=201,
    responses={400: {"description": "Booking rule broken"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def create_job_endpoint(
    request: Request, body: JobCreate, user: CurrentUser, db: DbSession
) -> JobResponse | JSONResponse:
    try:
        job = await booking_service.create_job(db, user, body)
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except JobCreationError:
        return _error(500, "Failed to create resource")
    return JobResponse.model_validate(job)


@router.put(
    "/{job_id}",
    response_model=JobResponse,
    responses={
        400: {"description": "Invalid ID or booking rule broken"},
        404: {"description": "Job not found"},
        **_AUTH_RESPONSES,
    },
)
@limiter.limit(WRITE_LIMIT)
async def update_job_endpoint(
    request: Request,
    job_id: str,
    body: JobUpdate,
    user: CurrentUser,
    db: DbSession,
) -> JobResponse | JSONResponse:
    try:
        job = await booking_service.update_job(db, _parse_job_id(job_id), body, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except JobUpdateError:
        return _error(500, "Failed to update resource")
    return JobResponse.model_validate(job)


@router.post(
    "/immediate-email",
    response_model=MessageResponse,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def immediate_job_email_endpoint(
    request: Request,
    body: ImmediateJobEmailRequest,
    user: CurrentUser,
    db: DbSession,
) -> MessageResponse | JSONResponse:
    """Store the customer's contact details and send the booking confirmation."""
    try:
        await booking_service.store_job_email(db, body)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except NotificationDispatchError:
        return _error(500, "Failed to send email")
    return MessageResponse(message="Email sent successfully")


@router.post(
    "/accept",
    response_model=AcceptJobResponse,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def accept_job_endpoint(
    request: Request, body: AcceptJobRequest, user: CurrentUser, db: DbSession
) -> AcceptJobResponse | JSONResponse:
    try:
        outcome, jobs = await booking_service.accept_job(db, body.job_id, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))

    if outcome.status != "success":
        set_wide_event_fields(accept_refused=outcome.message)
        return _error(500, "Failed to accept job")
    return AcceptJobResponse(
        message="Job accepted successfully",
        jobs=[JobResponse.model_validate(job) for job in jobs],
    )


@router.post(
    "/accept-with-id",
    response_model=JobOutcome,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def accept_job_with_id_endpoint(
    request: Request, body: AcceptJobRequest, user: CurrentUser, db: DbSession
) -> JobOutcome:
    try:
        return await booking_service.accept_job_with_id(db, body.job_id, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post(
    "/cancel",
    response_model=JobOutcome,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def cancel_job_endpoint(
    request: Request, body: JobActionRequest, user: CurrentUser, db: DbSession
) -> JobOutcome:
    try:
        return await booking_service.cancel_job(db, body.job_id, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post(
    "/end",
    response_model=JobOutcome,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def end_job_endpoint(
    request: Request, body: JobActionRequest, user: CurrentUser, db: DbSession
) -> JobOutcome:
    try:
        return await booking_service.end_job(db, body.job_id, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post(
    "/customer-not-call",
    response_model=JobOutcome,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def customer_not_call_endpoint(
    request: Request, body: JobActionRequest, user: CurrentUser, db: DbSession
) -> JobOutcome:
    try:
        return await booking_service.customer_not_call(db, body.job_id, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))


@router.post(
    "/reopen",
    response_model=JobOutcome,
    responses={404: {"description": "Job not found"}, **_AUTH_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def reopen_job_endpoint(
    request: Request, body: ReopenRequest, user: CurrentUser, db: DbSession
) -> JobOutcome:
    try:
        return await booking_service.reopen(db, body.jobid, user)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except JobPermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
