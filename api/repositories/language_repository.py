"""Language repository."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Language


class LanguageRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, language_id: int) -> Language | None:
        result = await self.db.execute(
            select(Language).where(Language.id == language_id)
        )
        return result.scalar_one_or_none()
