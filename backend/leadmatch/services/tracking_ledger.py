"""
Lead tracking ledger.

One row per (user, lead) match. Every mutation appends to the row's
action or notification log and commits before returning.
"""
import math
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import asc, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from leadmatch.config import settings
from leadmatch.exceptions import DuplicateMatch, NotFoundError, ValidationError
from leadmatch.matching.scoring import lead_attributes, score_breakdown
from leadmatch.models import Lead, LeadTracking, UserPreference
from leadmatch.schemas.preference import NotificationFrequency
from leadmatch.schemas.tracking import NOTIFICATION_CHANNELS, TERMINAL_STATUSES, MatchedCriteria, TrackingStatus
from leadmatch.services.preference_store import PreferenceStore

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {"created_at", "updated_at", "score", "status", "lead_id"}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrackingLedger:
    """Owns status transitions and the append-only logs of tracking rows"""

    def __init__(self, db: AsyncSession, emitter=None, strict: Optional[bool] = None):
        """
        Args:
            db: Database session
            emitter: NotificationEmitter used for realtime notifications
            strict: Refuse transitions out of converted/rejected
                (defaults to STRICT_STATUS_TRANSITIONS)
        """
        self.db = db
        self.emitter = emitter
        self.strict = settings.STRICT_STATUS_TRANSITIONS if strict is None else strict

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    async def get_tracking(self, user_id: str, tracking_id: str) -> LeadTracking:
        result = await self.db.execute(
            select(LeadTracking).where(
                LeadTracking.id == tracking_id,
                LeadTracking.user_id == user_id,
            )
        )
        tracking = result.scalar_one_or_none()
        if tracking is None:
            raise NotFoundError("Lead tracking", tracking_id)
        return tracking

    async def find_existing(self, user_id: str, lead_id: str) -> Optional[LeadTracking]:
        result = await self.db.execute(
            select(LeadTracking).where(
                LeadTracking.user_id == user_id,
                LeadTracking.lead_id == lead_id,
            )
        )
        return result.scalars().first()

    # ========================================================================
    # MUTATIONS
    # ========================================================================

    async def create_match(
        self,
        user_id: str,
        lead_id: str,
        preference_id: str,
        score: int,
        matched_criteria: Optional[Dict[str, bool]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> LeadTracking:
        """
        Record a new match.

        Raises:
            ValidationError: missing ids or score outside [0, 100]
            DuplicateMatch: the (user, lead) pair is already tracked
        """
        if not user_id:
            raise ValidationError("user_id is required", field="user_id")
        if not lead_id:
            raise ValidationError("lead_id is required", field="lead_id")
        if not preference_id:
            raise ValidationError("preference_id is required", field="preference_id")
        if isinstance(score, bool) or not isinstance(score, int) or not 0 <= score <= 100:
            raise ValidationError("score must be an integer between 0 and 100", field="score", value=score)

        if await self.find_existing(user_id, lead_id) is not None:
            raise DuplicateMatch(user_id, lead_id)

        tracking = LeadTracking(
            user_id=user_id,
            lead_id=lead_id,
            preference_id=preference_id,
            score=score,
            status=TrackingStatus.MATCHED.value,
            matched_criteria=MatchedCriteria(**(matched_criteria or {})).model_dump(),
            actions=[],
            notifications=[],
            tracking_metadata=dict(metadata or {}),
        )
        self.db.add(tracking)
        await self.db.commit()
        await self.db.refresh(tracking)
        return tracking

    async def update_status(
        self,
        user_id: str,
        tracking_id: str,
        new_status: str,
        details: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> LeadTracking:
        """
        Set the status and append one `status_change` action.

        Any status is reachable from any status unless strict mode is on.
        """
        try:
            new_status = TrackingStatus(new_status).value
        except ValueError:
            raise ValidationError(f"Invalid status: {new_status}", field="status") from None

        tracking = await self.get_tracking(user_id, tracking_id)
        old_status = tracking.status

        if self.strict and old_status in TERMINAL_STATUSES and new_status != old_status:
            raise ValidationError(
                f"Cannot change status of a {old_status} lead",
                field="status",
                current=old_status,
                requested=new_status,
            )

        tracking.status = new_status
        tracking.actions = list(tracking.actions or []) + [{
            "type": "status_change",
            "timestamp": _now_iso(),
            "details": {**(details or {}), "old_status": old_status, "new_status": new_status},
            "performed_by": performed_by,
        }]

        if new_status == TrackingStatus.CONVERTED.value and old_status != new_status:
            await self._bump_converted(tracking.user_id)

        await self.db.commit()
        await self.db.refresh(tracking)
        logger.info(f"📌 Tracking {tracking_id}: {old_status} → {new_status}")
        return tracking

    async def _bump_converted(self, user_id: str):
        preference = await PreferenceStore(self.db).get_preference(user_id)
        if preference is not None:
            preference.converted_leads = (preference.converted_leads or 0) + 1

    async def add_action(
        self,
        user_id: str,
        tracking_id: str,
        action_type: str,
        details: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> LeadTracking:
        if not action_type:
            raise ValidationError("Action type is required", field="type")

        tracking = await self.get_tracking(user_id, tracking_id)
        tracking.actions = list(tracking.actions or []) + [{
            "type": action_type,
            "timestamp": _now_iso(),
            "details": details or {},
            "performed_by": performed_by,
        }]
        await self.db.commit()
        await self.db.refresh(tracking)
        return tracking

    async def add_notification(
        self,
        user_id: str,
        tracking_id: str,
        channel_type: str,
        details: Optional[Dict[str, Any]] = None,
        sent: bool = False,
    ) -> LeadTracking:
        if channel_type not in NOTIFICATION_CHANNELS:
            raise ValidationError(f"Invalid notification channel: {channel_type}", field="channel_type")

        tracking = await self.get_tracking(user_id, tracking_id)
        tracking.notifications = list(tracking.notifications or []) + [{
            "channel_type": channel_type,
            "sent": sent,
            "timestamp": _now_iso(),
            "details": details or {},
        }]
        await self.db.commit()
        await self.db.refresh(tracking)
        return tracking

    async def delete_tracking(self, user_id: str, tracking_id: str):
        tracking = await self.get_tracking(user_id, tracking_id)
        await self.db.delete(tracking)
        await self.db.commit()

    # ========================================================================
    # QUERIES
    # ========================================================================

    async def list_tracked_leads(
        self,
        user_id: str,
        status: Optional[str] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        page: int = 1,
        limit: int = 50,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Dict[str, Any]:
        if sort_by not in SORTABLE_FIELDS:
            raise ValidationError(f"Cannot sort by {sort_by}", field="sort_by", allowed=sorted(SORTABLE_FIELDS))
        page = max(1, page)
        limit = max(1, limit)

        filters = [LeadTracking.user_id == user_id]
        if status:
            filters.append(LeadTracking.status == status)
        if min_score is not None:
            filters.append(LeadTracking.score >= min_score)
        if max_score is not None:
            filters.append(LeadTracking.score <= max_score)

        total = await self.db.scalar(select(func.count()).select_from(LeadTracking).where(*filters))

        column = getattr(LeadTracking, sort_by)
        order = desc(column) if sort_order == "desc" else asc(column)
        result = await self.db.execute(
            select(LeadTracking)
            .where(*filters)
            .order_by(order, desc(LeadTracking.created_at))
            .offset((page - 1) * limit)
            .limit(limit)
        )

        return {
            "leads": list(result.scalars().all()),
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total or 0,
                "pages": math.ceil((total or 0) / limit),
            },
        }

    async def get_tracking_stats(self, user_id: str) -> Dict[str, Any]:
        result = await self.db.execute(
            select(LeadTracking.status, func.count(LeadTracking.id), func.avg(LeadTracking.score))
            .where(LeadTracking.user_id == user_id)
            .group_by(LeadTracking.status)
        )
        by_status = {}
        total = 0
        score_sum = 0.0
        for status, count, avg_score in result.all():
            by_status[status] = {"count": count, "avg_score": round(float(avg_score or 0), 2)}
            total += count
            score_sum += float(avg_score or 0) * count

        return {
            "total_leads": total,
            "avg_score": round(score_sum / total, 2) if total else 0,
            "by_status": by_status,
        }

    async def get_trending_leads(self, user_id: str, limit: int = 10) -> List[LeadTracking]:
        result = await self.db.execute(
            select(LeadTracking)
            .where(LeadTracking.user_id == user_id)
            .order_by(desc(LeadTracking.score), desc(LeadTracking.created_at))
            .limit(limit)
        )
        return list(result.scalars().all())

    # ========================================================================
    # MATCH FLOW
    # ========================================================================

    async def match_leads_for_user(self, user_id: str, limit: Optional[int] = None) -> Dict[str, Any]:
        """
        Score stored leads against the user's preference and track new matches.

        Raises:
            NotFoundError: the user has no preference
        """
        preference = await PreferenceStore(self.db).require_preference(user_id)
        config = preference.config
        minimum = config.scoring.thresholds.minimum
        limit = limit or settings.DEFAULT_MATCH_LIMIT

        result = await self.db.execute(select(Lead).order_by(Lead.created_at).limit(limit))
        leads = list(result.scalars().all())

        matched = []
        for lead in leads:
            attributes = lead_attributes(lead)
            breakdown = score_breakdown(config, attributes)
            if breakdown.score < minimum:
                continue

            if await self.find_existing(user_id, lead.lead_id) is None:
                tracking = await self.create_match(
                    user_id=user_id,
                    lead_id=lead.lead_id,
                    preference_id=preference.id,
                    score=breakdown.score,
                    matched_criteria=breakdown.matched,
                    metadata={
                        "source": "auto_matching",
                        "matched_at": _now_iso(),
                        "algorithm": settings.MATCH_ALGORITHM_VERSION,
                    },
                )
                await self._notify_match(preference, tracking, lead, attributes)

            matched.append({
                "lead_id": lead.lead_id,
                "source": lead.source or "Database",
                "status": lead.status or "New",
                "priority": lead.priority or "Medium",
                "score": breakdown.score,
                "data": {
                    "name": lead.name or "Unknown",
                    "email": lead.email or "N/A",
                    "phone": lead.phone or "N/A",
                    "industry": attributes["industry"] or "N/A",
                    "city": attributes["city"] or "N/A",
                    "state": attributes["state"] or "N/A",
                    "technologies": attributes["technologies"],
                },
                "date_added": lead.created_at,
            })

        logger.info(f"🎯 Matched {len(matched)}/{len(leads)} leads for user {user_id}")
        return {
            "leads": matched,
            "total_matched": len(matched),
            "total_processed": len(leads),
            "minimum_score": minimum,
        }

    async def _notify_match(
        self,
        preference: UserPreference,
        tracking: LeadTracking,
        lead: Lead,
        attributes: Dict[str, Any],
    ):
        """Record one notification per enabled channel when the filters pass."""
        prefs = preference.config.notifications
        filters = prefs.filters

        if tracking.score < filters.minimum_score:
            return
        if filters.industries and attributes["industry"] not in filters.industries:
            return
        locations = {attributes["city"], attributes["state"], attributes["country"]}
        if filters.locations and not locations.intersection(filters.locations):
            return

        realtime = prefs.frequency == NotificationFrequency.REALTIME
        details = {"lead_id": lead.lead_id, "score": tracking.score, "frequency": prefs.frequency.value}
        for channel in prefs.enabled_channels():
            await self.add_notification(tracking.user_id, tracking.id, channel, details, sent=realtime)

        if realtime and self.emitter is not None:
            await self.emitter.emit(
                "lead_matched",
                {"tracking_id": tracking.id, "lead_id": lead.lead_id, "score": tracking.score},
                user_id=tracking.user_id,
            )
