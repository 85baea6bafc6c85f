"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services focused on
booking rules and routes focused on HTTP handling. Each repository takes
the request's AsyncSession and never commits; the session dependency owns
the transaction.
"""

from repositories.distance_repository import DistanceRepository
from repositories.job_repository import JobRepository
from repositories.language_repository import LanguageRepository
from repositories.translator_job_repository import TranslatorJobRepository
from repositories.user_repository import UserRepository
from repositories.utils import log_slow_query

__all__ = [
    "DistanceRepository",
    "JobRepository",
    "LanguageRepository",
    "TranslatorJobRepository",
    "UserRepository",
    "log_slow_query",
]
