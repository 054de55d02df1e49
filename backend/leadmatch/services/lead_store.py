"""Lead store - persisted lead records."""
from typing import Any, Dict, List, Optional
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.models import Lead

LEAD_COLUMNS = frozenset(column.key for column in Lead.__table__.columns) - {"id", "created_at", "updated_at"}


class LeadStore:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_by_id(self, lead_id: str) -> Optional[Lead]:
        result = await self.db.execute(select(Lead).where(Lead.lead_id == lead_id))
        return result.scalar_one_or_none()

    async def find(self, limit: Optional[int] = None, **filters) -> List[Lead]:
        stmt = select(Lead).order_by(Lead.created_at)
        for column, value in filters.items():
            stmt = stmt.where(getattr(Lead, column) == value)
        if limit:
            stmt = stmt.limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def find_by_email_and_source(self, email: str, source: str) -> Optional[Lead]:
        result = await self.db.execute(
            select(Lead).where(Lead.email == email, Lead.source == source)
        )
        return result.scalars().first()

    async def save(self, data: Dict[str, Any]) -> Lead:
        """Insert one lead; a `lead_id` is generated from the source when absent."""
        values = {key: value for key, value in data.items() if key in LEAD_COLUMNS}
        extra = {key: value for key, value in data.items() if key not in LEAD_COLUMNS}
        source = values.get("source") or "manual"
        values.setdefault("lead_id", f"{source}_{uuid.uuid4().hex[:12]}")
        values.setdefault("status", "New")
        values.setdefault("priority", "Medium")
        values["custom_fields"] = {**extra, **(values.get("custom_fields") or {})}

        lead = Lead(**values)
        self.db.add(lead)
        await self.db.commit()
        await self.db.refresh(lead)
        return lead
