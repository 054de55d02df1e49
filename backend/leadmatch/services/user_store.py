"""Auth/user store - enumerates users for the daily sweep."""
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.models import AuthUser


class UserStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, user_id: str) -> Optional[AuthUser]:
        return await self.db.get(AuthUser, user_id)

    async def find_active(self) -> List[AuthUser]:
        result = await self.db.execute(
            select(AuthUser).where(AuthUser.is_active.is_(True)).order_by(AuthUser.created_at)
        )
        return list(result.scalars().all())
