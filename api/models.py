"""SQLAlchemy models for translation bookings."""

from datetime import UTC, datetime
from enum import Enum as PyEnum

from sqlalchemy import (
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column, relationship

from core.database import Base


def utcnow() -> datetime:
    """Return current UTC time (timezone-aware)."""
    return datetime.now(UTC)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always comes back as UTC.

    SQLite drops tzinfo on the way in; re-attach it on the way out so
    comparisons against utcnow() work on every backend.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(UTCDateTime, default=utcnow)

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(UTCDateTime, default=utcnow, onupdate=utcnow)


def _enum_column(enum_cls: type[PyEnum], name: str) -> Enum:
    return Enum(
        enum_cls,
        name=name,
        native_enum=False,
        values_callable=lambda x: [e.value for e in x],
    )


class Role(str, PyEnum):
    """Who a user is, and what that lets them do."""

    ADMIN = "admin"
    SUPER_ADMIN = "superadmin"
    CUSTOMER = "customer"
    TRANSLATOR = "translator"

    @property
    def is_admin(self) -> bool:
        return self in (Role.ADMIN, Role.SUPER_ADMIN)

    def can_list_all_jobs(self) -> bool:
        return self.is_admin


class ConsumerType(str, PyEnum):
    """Customer contract type; decides which translators may take a job."""

    PAID = "paid"
    RWS = "rwsconsumer"
    NGO = "ngo"


class TranslatorType(str, PyEnum):
    PROFESSIONAL = "professional"
    RWS = "rwstranslator"
    VOLUNTEER = "volunteer"


class JobType(str, PyEnum):
    """Billing class of a job, derived from the customer's consumer type."""

    PAID = "paid"
    RWS = "rws"
    UNPAID = "unpaid"

    @classmethod
    def for_consumer(cls, consumer_type: ConsumerType | None) -> "JobType":
        if consumer_type == ConsumerType.RWS:
            return cls.RWS
        if consumer_type == ConsumerType.NGO:
            return cls.UNPAID
        return cls.PAID

    @property
    def translator_type(self) -> TranslatorType:
        return {
            JobType.PAID: TranslatorType.PROFESSIONAL,
            JobType.RWS: TranslatorType.RWS,
            JobType.UNPAID: TranslatorType.VOLUNTEER,
        }[self]


class JobStatus(str, PyEnum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    STARTED = "started"
    COMPLETED = "completed"
    WITHDRAWN_BEFORE_24 = "withdrawbefore24"
    WITHDRAWN_AFTER_24 = "withdrawafter24"
    TIMED_OUT = "timedout"
    NOT_CARRIED_OUT_CUSTOMER = "not_carried_out_customer"


# Jobs in these states appear in history and may be reopened
FINISHED_STATUSES: frozenset[JobStatus] = frozenset(
    {
        JobStatus.COMPLETED,
        JobStatus.WITHDRAWN_BEFORE_24,
        JobStatus.WITHDRAWN_AFTER_24,
        JobStatus.TIMED_OUT,
        JobStatus.NOT_CARRIED_OUT_CUSTOMER,
    }
)

REOPENABLE_STATUSES: frozenset[JobStatus] = FINISHED_STATUSES - {JobStatus.COMPLETED}

# Jobs in these states block the translator's calendar
ACTIVE_STATUSES: frozenset[JobStatus] = frozenset(
    {JobStatus.ASSIGNED, JobStatus.STARTED}
)


class Gender(str, PyEnum):
    MALE = "male"
    FEMALE = "female"


class User(TimestampMixin, Base):
    """Customers, translators and administrators."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    mobile: Mapped[str | None] = mapped_column(String(50), nullable=True)
    role: Mapped[Role] = mapped_column(_enum_column(Role, "role"), nullable=False)
    # SHA-256 hex digest of the bearer token; the token itself is never stored
    api_token_hash: Mapped[str | None] = mapped_column(
        String(64), nullable=True, unique=True
    )

    # Customer profile
    consumer_type: Mapped[ConsumerType | None] = mapped_column(
        _enum_column(ConsumerType, "consumer_type"), nullable=True
    )
    town: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Translator profile
    translator_type: Mapped[TranslatorType | None] = mapped_column(
        _enum_column(TranslatorType, "translator_type"), nullable=True
    )
    gender: Mapped[Gender | None] = mapped_column(
        _enum_column(Gender, "gender"), nullable=True
    )
    certified: Mapped[bool] = mapped_column(Boolean, default=False)

    # Notification preferences
    not_get_notification: Mapped[bool] = mapped_column(Boolean, default=False)
    not_get_emergency: Mapped[bool] = mapped_column(Boolean, default=False)
    not_get_nighttime: Mapped[bool] = mapped_column(Boolean, default=False)

    languages: Mapped[list["UserLanguage"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
    )


class Language(Base):
    __tablename__ = "languages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)


class UserLanguage(Base):
    """A language a translator works in."""

    __tablename__ = "user_languages"
    __table_args__ = (
        UniqueConstraint("user_id", "language_id", name="uq_user_language"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    language_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("languages.id", ondelete="CASCADE"), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="languages")


class Job(TimestampMixin, Base):
    """A single interpreter booking."""

    __tablename__ = "jobs"
    __table_args__ = (
        Index("ix_jobs_user_status", "user_id", "status"),
        Index("ix_jobs_status_due", "status", "due"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    from_language_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("languages.id"), nullable=False
    )
    immediate: Mapped[bool] = mapped_column(Boolean, default=False)
    due: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False)
    duration: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[JobStatus] = mapped_column(
        _enum_column(JobStatus, "job_status"),
        nullable=False,
        default=JobStatus.PENDING,
    )
    job_type: Mapped[JobType] = mapped_column(
        _enum_column(JobType, "job_type"), nullable=False, default=JobType.PAID
    )
    gender: Mapped[Gender | None] = mapped_column(
        _enum_column(Gender, "job_gender"), nullable=True
    )
    certified: Mapped[bool] = mapped_column(Boolean, default=False)
    customer_phone_type: Mapped[bool] = mapped_column(Boolean, default=False)
    customer_physical_type: Mapped[bool] = mapped_column(Boolean, default=False)

    # Administrative fields written by the distance feed
    session_time: Mapped[str | None] = mapped_column(String(50), nullable=True)
    flagged: Mapped[bool] = mapped_column(Boolean, default=False)
    manually_handled: Mapped[bool] = mapped_column(Boolean, default=False)
    by_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    admin_comments: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Contact details supplied with the booking confirmation
    user_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    instructions: Mapped[str | None] = mapped_column(Text, nullable=True)
    town: Mapped[str | None] = mapped_column(String(255), nullable=True)

    will_expire_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    end_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    withdraw_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    customer: Mapped["User"] = relationship(foreign_keys=[user_id])
    language: Mapped["Language"] = relationship()
    distance: Mapped["Distance | None"] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
        uselist=False,
    )
    translator_jobs: Mapped[list["TranslatorJob"]] = relationship(
        back_populates="job",
        cascade="all, delete-orphan",
    )

    @property
    def live_assignment(self) -> "TranslatorJob | None":
        """Requires translator_jobs to be loaded."""
        return next((tj for tj in self.translator_jobs if tj.cancel_at is None), None)

    @property
    def translator(self) -> "User | None":
        assignment = self.live_assignment
        return assignment.translator if assignment else None


class Distance(Base):
    """Travel metadata recorded by administrators for a job."""

    __tablename__ = "distances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("jobs.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    distance: Mapped[str | None] = mapped_column(String(50), nullable=True)
    time: Mapped[str | None] = mapped_column(String(50), nullable=True)

    job: Mapped["Job"] = relationship(back_populates="distance")


class TranslatorJob(Base):
    """Assignment of a translator to a job.

    Cancelled assignments are kept (cancel_at set) so the history of who
    held a job survives reopening.
    """

    __tablename__ = "translator_jobs"
    __table_args__ = (Index("ix_translator_jobs_user", "user_id", "cancel_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    job_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, default=utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    cancel_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    job: Mapped["Job"] = relationship(back_populates="translator_jobs")
    translator: Mapped["User"] = relationship()
