"""Distance repository for per-job travel records."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import Distance
from repositories.utils import upsert_on_conflict


class DistanceRepository:
    """Repository for Distance database operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_job(self, job_id: int) -> Distance | None:
        result = await self.db.execute(
            select(Distance).where(Distance.job_id == job_id)
        )
        return result.scalar_one_or_none()

    async def upsert(
        self, job_id: int, *, distance: str | None, time: str | None
    ) -> None:
        """Insert or overwrite the job's distance and travel time."""
        await upsert_on_conflict(
            self.db,
            Distance,
            values={"job_id": job_id, "distance": distance, "time": time},
            index_elements=["job_id"],
            update_fields=["distance", "time"],
        )
