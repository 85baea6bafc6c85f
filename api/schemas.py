"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from models import Gender, JobStatus, JobType, Role

# Form-post leftovers some clients still send with job updates
TRANSPORT_ONLY_FIELDS: frozenset[str] = frozenset({"_token", "submit"})


class UserSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    mobile: str | None = None
    role: Role


class DistanceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    distance: str | None = None
    time: str | None = None


class JobCreate(BaseModel):
    """Booking request from a customer (or an admin on a customer's behalf)."""

    from_language_id: int = Field(gt=0)
    immediate: bool = False
    due: datetime | None = None
    duration: int = Field(gt=0, le=24 * 60)
    gender: Gender | None = None
    certified: bool = False
    customer_phone_type: bool = False
    customer_physical_type: bool = False
    town: str | None = Field(default=None, max_length=255)
    # Admins booking for a customer name the customer explicitly
    customer_id: int | None = Field(default=None, gt=0)

    @model_validator(mode="after")
    def due_required_unless_immediate(self) -> "JobCreate":
        if not self.immediate and self.due is None:
            raise ValueError("due is required for non-immediate bookings")
        return self


class JobUpdate(BaseModel):
    """Partial job update. Unknown fields are rejected."""

    model_config = ConfigDict(extra="forbid")

    from_language_id: int | None = Field(default=None, gt=0)
    due: datetime | None = None
    duration: int | None = Field(default=None, gt=0, le=24 * 60)
    gender: Gender | None = None
    certified: bool | None = None
    customer_phone_type: bool | None = None
    customer_physical_type: bool | None = None
    admin_comments: str | None = None
    reference: str | None = Field(default=None, max_length=255)
    address: str | None = None
    instructions: str | None = None
    town: str | None = Field(default=None, max_length=255)

    @model_validator(mode="before")
    @classmethod
    def strip_transport_fields(cls, data: object) -> object:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if k not in TRANSPORT_ONLY_FIELDS}
        return data


class JobResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    from_language_id: int
    immediate: bool
    due: datetime
    duration: int
    status: JobStatus
    job_type: JobType
    gender: Gender | None = None
    certified: bool
    customer_phone_type: bool
    customer_physical_type: bool
    session_time: str | None = None
    flagged: bool
    manually_handled: bool
    by_admin: bool
    admin_comments: str | None = None
    user_email: str | None = None
    reference: str | None = None
    address: str | None = None
    instructions: str | None = None
    town: str | None = None
    will_expire_at: datetime | None = None
    end_at: datetime | None = None
    withdraw_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class JobDetailResponse(JobResponse):
    """A job with its travel record and currently assigned translator."""

    distance: DistanceResponse | None = None
    translator: UserSummary | None = None


class JobHistoryResponse(BaseModel):
    jobs: list[JobResponse]
    page: int
    per_page: int
    total: int


class AcceptJobRequest(BaseModel):
    job_id: int = Field(gt=0)


class JobActionRequest(BaseModel):
    """Body shared by cancel, end and customer-not-call."""

    job_id: int = Field(gt=0)


class ReopenRequest(BaseModel):
    jobid: int = Field(gt=0)


class DistanceFeedRequest(BaseModel):
    """Admin update of a job's travel and bookkeeping fields."""

    jobid: int = Field(gt=0)
    distance: str | None = Field(default=None, max_length=50)
    time: str | None = Field(default=None, max_length=50)
    session_time: str | None = Field(default=None, max_length=50)
    flagged: bool
    manually_handled: bool
    by_admin: bool
    admincomment: str | None = None

    @field_validator("distance", "time", "session_time", "admincomment")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = v.strip()
        return v or None


class ResendNotificationRequest(BaseModel):
    jobid: int = Field(gt=0)


class ImmediateJobEmailRequest(BaseModel):
    """Contact details sent with the confirmation of an immediate booking."""

    user_email_job_id: int = Field(gt=0)
    user_email: str = Field(min_length=3, max_length=255)
    reference: str | None = Field(default=None, max_length=255)
    address: str | None = None
    instructions: str | None = None
    town: str | None = Field(default=None, max_length=255)

    @field_validator("user_email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip()
        if "@" not in v:
            raise ValueError("user_email must be an email address")
        return v


class JobOutcome(BaseModel):
    """Result of a job state transition."""

    status: Literal["success", "fail"]
    message: str


class MessageResponse(BaseModel):
    message: str


class AcceptJobResponse(BaseModel):
    message: str
    jobs: list[JobResponse]


class SuccessResponse(BaseModel):
    success: str


class HealthResponse(BaseModel):
    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class ProviderStatusResponse(BaseModel):
    name: str
    enabled: bool
    circuit: str


class DetailedHealthResponse(BaseModel):
    status: str
    database: bool
    pool: PoolStatusResponse | None = None
    providers: list[ProviderStatusResponse] = []
