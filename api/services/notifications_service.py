"""Notification dispatch: push, SMS and email.

Providers are plain HTTPS APIs reached through the shared httpx client.

SCALABILITY:
- Circuit breaker per provider fails fast when it is down (5 failures -> 60s)
- Retry with exponential backoff for transient failures (3 attempts)
- Connection pooling via core.http_client

A provider with no credentials configured is disabled: calls log and send
nothing. Every other failure surfaces as NotificationDispatchError; callers
decide whether a failed dispatch fails their operation.
"""

from collections.abc import Iterable
from datetime import datetime, timedelta
from typing import Any

import httpx
from circuitbreaker import CircuitBreakerError, CircuitBreakerMonitor, circuit
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from core.config import get_settings
from core.http_client import get_http_client
from core.logger import get_logger
from core.telemetry import log_business_event, track_dependency
from models import User

logger = get_logger(__name__)


class NotificationDispatchError(Exception):
    """A notification could not be delivered to its provider."""

    def __init__(self, provider: str, message: str):
        super().__init__(message)
        self.provider = provider


class ProviderServerError(Exception):
    """Provider returned a 5xx or 429 (retriable)."""


class ProviderRejectedError(Exception):
    """Provider refused the request with a non-retriable 4xx."""


# Exceptions that should trigger retry and circuit breaker
RETRIABLE_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.RequestError,
    httpx.TimeoutException,
    ProviderServerError,
)

_DISPATCH_FAILURES: tuple[type[Exception], ...] = (
    *RETRIABLE_EXCEPTIONS,
    ProviderRejectedError,
    CircuitBreakerError,
)


async def _post_json(url: str, payload: dict[str, Any], headers: dict[str, str]) -> None:
    client = await get_http_client()
    response = await client.post(url, json=payload, headers=headers)

    if response.status_code >= 500 or response.status_code == 429:
        raise ProviderServerError(f"{url} returned {response.status_code}")
    if response.status_code >= 400:
        raise ProviderRejectedError(
            f"{url} rejected request: {response.status_code} {response.text[:200]}"
        )


@track_dependency("push_api", "HTTP")
@circuit(
    failure_threshold=5,
    recovery_timeout=60,
    expected_exception=RETRIABLE_EXCEPTIONS,
    name="push_circuit",
)
@retry(
    retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=0.5, max=4),
    reraise=True,
)
async def _push_request(payload: dict[str, Any]) -> None:
    settings = get_settings()
    await _post_json(
        f"{settings.push_api_url.rstrip('/')}/notifications",
        payload,
        {
            "Authorization": f"Basic {settings.push_api_key}",
            "Content-Type": "application/json",
        },
    )


@track_dependency("sms_api", "HTTP")
@circuit(
    failure_threshold=5,
    recovery_timeout=60,
    expected_exception=RETRIABLE_EXCEPTIONS,
    name="sms_circuit",
)
@retry(
    retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=0.5, max=4),
    reraise=True,
)
async def _sms_request(payload: dict[str, Any]) -> None:
    settings = get_settings()
    await _post_json(
        settings.sms_api_url,
        payload,
        {"Authorization": f"Bearer {settings.sms_api_key}"},
    )


@track_dependency("mail_api", "HTTP")
@circuit(
    failure_threshold=5,
    recovery_timeout=60,
    expected_exception=RETRIABLE_EXCEPTIONS,
    name="mail_circuit",
)
@retry(
    retry=retry_if_exception_type(RETRIABLE_EXCEPTIONS),
    stop=stop_after_attempt(3),
    wait=wait_exponential_jitter(initial=0.5, max=4),
    reraise=True,
)
async def _mail_request(payload: dict[str, Any]) -> None:
    settings = get_settings()
    await _post_json(
        settings.mail_api_url,
        payload,
        {"Authorization": f"Bearer {settings.mail_api_key}"},
    )


_PROVIDER_CIRCUITS = {
    "push": "push_circuit",
    "sms": "sms_circuit",
    "mail": "mail_circuit",
}


def provider_status() -> list[dict[str, Any]]:
    """Configuration and circuit state of each notification provider."""
    settings = get_settings()
    enabled = {
        "push": settings.push_enabled,
        "sms": settings.sms_enabled,
        "mail": settings.mail_enabled,
    }
    statuses = []
    for provider, circuit_name in _PROVIDER_CIRCUITS.items():
        breaker = CircuitBreakerMonitor.get(circuit_name)
        statuses.append(
            {
                "name": provider,
                "enabled": enabled[provider],
                "circuit": breaker.state if breaker else "closed",
            }
        )
    return statuses


# =============================================================================
# Night-time handling
# =============================================================================


def is_night(now: datetime) -> bool:
    settings = get_settings()
    start, end = settings.night_start_hour, settings.night_end_hour
    if start > end:
        return now.hour >= start or now.hour < end
    return start <= now.hour < end


def next_morning(now: datetime) -> datetime:
    """The next occurrence of night_end_hour:00 after ``now``."""
    morning = now.replace(
        hour=get_settings().night_end_hour, minute=0, second=0, microsecond=0
    )
    if morning <= now:
        morning += timedelta(days=1)
    return morning


# =============================================================================
# Low-level sends
# =============================================================================


async def send_push(
    user_ids: list[int],
    *,
    heading: str,
    message: str,
    data: dict[str, Any],
    emergency: bool = False,
    send_after: datetime | None = None,
) -> bool:
    """Push one notification to a set of users.

    Returns False without sending when push is disabled or there are no
    recipients.

    Raises:
        NotificationDispatchError: The provider could not be reached or
            refused the notification.
    """
    settings = get_settings()
    if not user_ids:
        return False
    if not settings.push_enabled:
        logger.info("notification.push.disabled", recipients=len(user_ids))
        return False

    sound = "emergency" if emergency else "normal"
    payload: dict[str, Any] = {
        "app_id": settings.push_app_id,
        "include_external_user_ids": [str(uid) for uid in user_ids],
        "headings": {"en": heading},
        "contents": {"en": message},
        "data": data,
        "ios_sound": f"{sound}.mp3",
        "android_sound": sound,
    }
    if send_after is not None:
        payload["send_after"] = send_after.isoformat()

    try:
        await _push_request(payload)
    except _DISPATCH_FAILURES as e:
        logger.warning(
            "notification.push.failed",
            recipients=len(user_ids),
            error=str(e),
            error_type=type(e).__name__,
        )
        raise NotificationDispatchError("push", f"Push dispatch failed: {e}") from e

    logger.info(
        "notification.push.sent",
        recipients=len(user_ids),
        delayed=send_after is not None,
    )
    return True


async def send_sms(to: str, message: str) -> bool:
    """Send one SMS.

    Raises:
        NotificationDispatchError: The gateway could not be reached or
            refused the message.
    """
    settings = get_settings()
    if not settings.sms_enabled:
        logger.info("notification.sms.disabled")
        return False

    try:
        await _sms_request(
            {"from": settings.sms_sender, "to": to, "message": message}
        )
    except _DISPATCH_FAILURES as e:
        logger.warning(
            "notification.sms.failed", error=str(e), error_type=type(e).__name__
        )
        raise NotificationDispatchError("sms", f"SMS dispatch failed: {e}") from e

    logger.info("notification.sms.sent")
    return True


async def send_email(
    to: str, subject: str, body: str, *, cc: str | None = None
) -> bool:
    """Send one plain-text email.

    Raises:
        NotificationDispatchError: The mail API could not be reached or
            refused the message.
    """
    settings = get_settings()
    if not settings.mail_enabled:
        logger.info("notification.email.disabled", subject=subject)
        return False

    payload: dict[str, Any] = {
        "from": settings.mail_from,
        "to": to,
        "subject": subject,
        "text": body,
    }
    if cc:
        payload["cc"] = cc

    try:
        await _mail_request(payload)
    except _DISPATCH_FAILURES as e:
        logger.warning(
            "notification.email.failed",
            subject=subject,
            error=str(e),
            error_type=type(e).__name__,
        )
        raise NotificationDispatchError("email", f"Email dispatch failed: {e}") from e

    logger.info("notification.email.sent", subject=subject)
    return True


# =============================================================================
# Job notifications
# =============================================================================


def job_push_message(job_data: dict[str, Any]) -> str:
    return (
        f"New booking for {job_data['language']}: "
        f"{job_data['duration']} min, {job_data['due_date']} {job_data['due_time']}"
    )


def job_sms_message(job_data: dict[str, Any]) -> str:
    """SMS wording differs for on-site and phone interpretation."""
    when = (
        f"on {job_data['due_date']} at {job_data['due_time']}, "
        f"duration {job_data['duration']} min"
    )
    if job_data.get("customer_physical_type") and job_data.get("town"):
        kind = f"an on-site interpretation job in {job_data['town']}"
    else:
        kind = "a phone interpretation job"
    return (
        f"We have {kind} {when} ({job_data['language']}). "
        "Log in to accept it. Booking #"
        f"{job_data['job_id']}"
    )


async def push_job_to_translators(
    job_data: dict[str, Any],
    translators: Iterable[User],
    now: datetime,
) -> int:
    """Push a new or reopened job to translators, honouring their preferences.

    Translators who opted out of notifications are skipped, as are those
    who opted out of emergencies for immediate jobs. Translators who opted
    out of night-time notifications get theirs delayed to the morning.
    Returns the number of recipients.
    """
    emergency = bool(job_data.get("immediate"))
    now_recipients: list[int] = []
    morning_recipients: list[int] = []
    night = is_night(now)

    for translator in translators:
        if translator.not_get_notification:
            continue
        if emergency and translator.not_get_emergency:
            continue
        if night and translator.not_get_nighttime:
            morning_recipients.append(translator.id)
        else:
            now_recipients.append(translator.id)

    message = job_push_message(job_data)
    heading = "Emergency booking" if emergency else "New booking"
    await send_push(
        now_recipients,
        heading=heading,
        message=message,
        data=job_data,
        emergency=emergency,
    )
    await send_push(
        morning_recipients,
        heading=heading,
        message=message,
        data=job_data,
        emergency=emergency,
        send_after=next_morning(now),
    )

    recipients = len(now_recipients) + len(morning_recipients)
    log_business_event(
        "job_pushed", recipients, {"job_id": str(job_data.get("job_id"))}
    )
    return recipients


async def sms_job_to_translators(
    job_data: dict[str, Any], translators: Iterable[User]
) -> int:
    """SMS the job to every translator with a mobile number.

    Stops at the first failed send and raises NotificationDispatchError.
    Returns the number of messages sent.
    """
    message = job_sms_message(job_data)
    sent = 0
    for translator in translators:
        if not translator.mobile:
            continue
        if await send_sms(translator.mobile, message):
            sent += 1
    return sent


async def notify_translator_job_changed(
    job_data: dict[str, Any], translator: User, change: str
) -> bool:
    """Tell the assigned translator about a change to their job."""
    if translator.not_get_notification:
        return False
    return await send_push(
        [translator.id],
        heading="Booking changed",
        message=f"Booking #{job_data['job_id']} {change}.",
        data=job_data,
    )
