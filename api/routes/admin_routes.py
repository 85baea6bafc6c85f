"""Admin endpoints for job bookkeeping and notification resends.

All endpoints require admin authentication.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse

from core import get_logger
from core.auth import AdminUser
from core.database import DbSession
from core.ratelimit import NOTIFICATION_LIMIT, WRITE_LIMIT, limiter
from schemas import (
    DistanceFeedRequest,
    MessageResponse,
    ResendNotificationRequest,
    SuccessResponse,
)
from services import booking_service
from services.booking_service import (
    JobNotFoundError,
    JobValidationError,
    NotificationDispatchError,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"])

_ADMIN_RESPONSES: dict[int | str, dict] = {
    401: {"description": "Not authenticated"},
    403: {"description": "Admin access required"},
    404: {"description": "Job not found"},
}


@router.post(
    "/distance-feed",
    response_model=MessageResponse,
    summary="Record distance, time and admin fields for a job",
    responses={400: {"description": "Flagged without comment"}, **_ADMIN_RESPONSES},
)
@limiter.limit(WRITE_LIMIT)
async def distance_feed_endpoint(
    request: Request, body: DistanceFeedRequest, admin: AdminUser, db: DbSession
) -> MessageResponse | JSONResponse:
    try:
        await booking_service.record_distance_feed(db, body)
    except JobValidationError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    return MessageResponse(message="Record updated!")


@router.post(
    "/notifications/resend",
    response_model=SuccessResponse,
    summary="Push a job to suitable translators again",
    responses={502: {"description": "Push provider failed"}, **_ADMIN_RESPONSES},
)
@limiter.limit(NOTIFICATION_LIMIT)
async def resend_notifications_endpoint(
    request: Request,
    body: ResendNotificationRequest,
    admin: AdminUser,
    db: DbSession,
) -> SuccessResponse | JSONResponse:
    try:
        await booking_service.resend_notifications(db, body.jobid)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except NotificationDispatchError as e:
        return JSONResponse(status_code=502, content={"error": str(e)})
    return SuccessResponse(success="Push sent")


@router.post(
    "/notifications/resend-sms",
    response_model=SuccessResponse,
    summary="SMS a job to suitable translators again",
    responses={502: {"description": "SMS gateway failed"}, **_ADMIN_RESPONSES},
)
@limiter.limit(NOTIFICATION_LIMIT)
async def resend_sms_notifications_endpoint(
    request: Request,
    body: ResendNotificationRequest,
    admin: AdminUser,
    db: DbSession,
) -> SuccessResponse | JSONResponse:
    """A failed send is reported as 502, never as success."""
    try:
        sent = await booking_service.resend_sms_notifications(db, body.jobid)
    except JobNotFoundError:
        raise HTTPException(status_code=404, detail="Job not found")
    except NotificationDispatchError as e:
        logger.warning("admin.sms_resend.failed", job_id=body.jobid, error=str(e))
        return JSONResponse(status_code=502, content={"error": str(e)})
    return SuccessResponse(success=f"SMS sent to {sent} translators")
