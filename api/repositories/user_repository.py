"""User repository for database operations."""

from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Gender, Role, TranslatorType, User, UserLanguage
from repositories.utils import log_slow_query


class UserRepository:
    """Repository for User database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, user_id: int) -> User | None:
        """Get a user by their ID."""
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_by_token_hash(self, token_hash: str) -> User | None:
        """Get the user owning an API token digest (unique constraint ensures one)."""
        result = await self.db.execute(
            select(User).where(User.api_token_hash == token_hash)
        )
        return result.scalar_one_or_none()

    async def get_many_by_ids(self, user_ids: list[int]) -> list[User]:
        """Get multiple users by their IDs in a single query.

        Returns users in no guaranteed order. Missing IDs are silently skipped.
        """
        if not user_ids:
            return []
        result = await self.db.execute(select(User).where(User.id.in_(user_ids)))
        return list(result.scalars().all())

    @log_slow_query("find_translators")
    async def find_translators(
        self,
        *,
        translator_type: TranslatorType,
        language_id: int,
        gender: Gender | None = None,
        certified_only: bool = False,
    ) -> list[User]:
        """Translators of a type who work in a language.

        Narrowed further by gender and certification when the job asks for
        them. Notification preferences are left to the caller.
        """
        query = (
            select(User)
            .join(UserLanguage, UserLanguage.user_id == User.id)
            .where(
                User.role == Role.TRANSLATOR,
                User.translator_type == translator_type,
                UserLanguage.language_id == language_id,
            )
            .order_by(User.id)
        )
        if gender is not None:
            query = query.where(User.gender == gender)
        if certified_only:
            query = query.where(User.certified.is_(True))

        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def get_language_ids(self, user_id: int) -> set[int]:
        result = await self.db.execute(
            select(UserLanguage.language_id).where(UserLanguage.user_id == user_id)
        )
        return set(result.scalars().all())

    async def set_token_hash(self, user: User, token_hash: str) -> User:
        """Replace the user's API token digest, revoking any previous token."""
        user.api_token_hash = token_hash
        user.updated_at = datetime.now(UTC)
        return user
