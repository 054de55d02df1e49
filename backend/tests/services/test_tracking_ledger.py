# tests/services/test_tracking_ledger.py
"""
Tests for the lead tracking ledger

Coverage:
- Match creation and duplicate detection
- Status changes and the action log
- Strict terminal-status mode
- Notification log
- Query surface (filters, pagination, stats, trending)
- The stored-lead match flow
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest

from leadmatch.exceptions import DuplicateMatch, NotFoundError, ValidationError
from leadmatch.services.lead_store import LeadStore
from leadmatch.services.preference_store import PreferenceStore
from leadmatch.services.tracking_ledger import TrackingLedger


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def ledger(db):
    return TrackingLedger(db, strict=False)


@pytest.fixture
def emitter():
    emitter = Mock()
    emitter.emit = AsyncMock()
    return emitter


async def seed_matches(ledger, user_id="user-1", scores=(90, 70, 50, 30)):
    rows = []
    for index, score in enumerate(scores):
        rows.append(await ledger.create_match(user_id, f"lead-{index}", "pref-1", score))
    return rows


# ============================================================================
# TEST: create_match
# ============================================================================

class TestCreateMatch:

    @pytest.mark.asyncio
    async def test_creates_matched_row(self, ledger):
        tracking = await ledger.create_match(
            "user-1", "lead-1", "pref-1", 72,
            matched_criteria={"industry": True, "location": True},
            metadata={"source": "manual"},
        )

        assert tracking.id
        assert tracking.status == "matched"
        assert tracking.score == 72
        assert tracking.matched_criteria["industry"] is True
        assert tracking.matched_criteria["revenue"] is False
        assert tracking.tracking_metadata == {"source": "manual"}
        assert tracking.actions == []

    @pytest.mark.asyncio
    async def test_duplicate_pair_fails(self, ledger):
        await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        with pytest.raises(DuplicateMatch) as exc:
            await ledger.create_match("user-1", "lead-1", "pref-1", 80)

        assert exc.value.status_code == 409

    @pytest.mark.asyncio
    async def test_same_lead_for_another_user_is_allowed(self, ledger):
        await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        other = await ledger.create_match("user-2", "lead-1", "pref-2", 72)

        assert other.user_id == "user-2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("lead_id,score", [("", 50), ("lead-1", 101), ("lead-1", -1), ("lead-1", 50.5)])
    async def test_invalid_input_rejected(self, ledger, lead_id, score):
        with pytest.raises(ValidationError):
            await ledger.create_match("user-1", lead_id, "pref-1", score)


# ============================================================================
# TEST: Status and action log
# ============================================================================

class TestStatusChanges:

    @pytest.mark.asyncio
    async def test_update_status_appends_one_action(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        updated = await ledger.update_status("user-1", tracking.id, "contacted", {"note": "called"}, "user-1")

        assert updated.status == "contacted"
        assert len(updated.actions) == 1
        action = updated.actions[0]
        assert action["type"] == "status_change"
        assert action["details"]["old_status"] == "matched"
        assert action["details"]["new_status"] == "contacted"
        assert action["details"]["note"] == "called"
        assert action["performed_by"] == "user-1"

    @pytest.mark.asyncio
    async def test_score_unchanged_by_status(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        updated = await ledger.update_status("user-1", tracking.id, "qualified")

        assert updated.score == 72

    @pytest.mark.asyncio
    async def test_any_transition_allowed_by_default(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        await ledger.update_status("user-1", tracking.id, "rejected")
        updated = await ledger.update_status("user-1", tracking.id, "matched")

        assert updated.status == "matched"
        assert [a["details"]["old_status"] for a in updated.actions] == ["matched", "rejected"]

    @pytest.mark.asyncio
    async def test_strict_mode_blocks_leaving_terminal_status(self, db):
        ledger = TrackingLedger(db, strict=True)
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)
        await ledger.update_status("user-1", tracking.id, "converted")

        with pytest.raises(ValidationError):
            await ledger.update_status("user-1", tracking.id, "viewed")

    @pytest.mark.asyncio
    async def test_invalid_status(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        with pytest.raises(ValidationError):
            await ledger.update_status("user-1", tracking.id, "won")

    @pytest.mark.asyncio
    async def test_conversion_bumps_preference_counter(self, db, ledger, preference_doc):
        preference = await PreferenceStore(db).upsert_preference("user-1", preference_doc)
        tracking = await ledger.create_match("user-1", "lead-1", preference.id, 72)

        await ledger.update_status("user-1", tracking.id, "converted")
        # Re-setting the same status is not a second conversion
        await ledger.update_status("user-1", tracking.id, "converted")

        refreshed = await PreferenceStore(db).get_preference("user-1")
        assert refreshed.converted_leads == 1

    @pytest.mark.asyncio
    async def test_conversion_without_preference_is_tolerated(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "missing-pref", 72)

        updated = await ledger.update_status("user-1", tracking.id, "converted")

        assert updated.status == "converted"

    @pytest.mark.asyncio
    async def test_actions_keep_call_order(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        for action_type in ("email_sent", "call_scheduled", "meeting_booked"):
            tracking = await ledger.add_action("user-1", tracking.id, action_type, {"via": "crm"})

        assert [a["type"] for a in tracking.actions] == ["email_sent", "call_scheduled", "meeting_booked"]

    @pytest.mark.asyncio
    async def test_lookups_are_scoped_by_user(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        with pytest.raises(NotFoundError):
            await ledger.update_status("user-2", tracking.id, "viewed")


# ============================================================================
# TEST: Notification log
# ============================================================================

class TestNotifications:

    @pytest.mark.asyncio
    async def test_add_notification(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        await ledger.add_notification("user-1", tracking.id, "email", {"subject": "New lead"})
        updated = await ledger.add_notification("user-1", tracking.id, "push", sent=True)

        assert [n["channel_type"] for n in updated.notifications] == ["email", "push"]
        assert updated.notifications[0]["sent"] is False
        assert updated.notifications[1]["sent"] is True

    @pytest.mark.asyncio
    async def test_unknown_channel(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        with pytest.raises(ValidationError):
            await ledger.add_notification("user-1", tracking.id, "pager")


# ============================================================================
# TEST: Queries
# ============================================================================

class TestQueries:

    @pytest.mark.asyncio
    async def test_min_and_max_score_both_apply(self, ledger):
        await seed_matches(ledger)

        result = await ledger.list_tracked_leads("user-1", min_score=40, max_score=80)

        assert sorted(row.score for row in result["leads"]) == [50, 70]

    @pytest.mark.asyncio
    async def test_pagination(self, ledger):
        await seed_matches(ledger, scores=(10, 20, 30, 40, 50))

        result = await ledger.list_tracked_leads("user-1", page=2, limit=2, sort_by="score", sort_order="asc")

        assert [row.score for row in result["leads"]] == [30, 40]
        assert result["pagination"] == {"page": 2, "limit": 2, "total": 5, "pages": 3}

    @pytest.mark.asyncio
    async def test_status_filter(self, ledger):
        rows = await seed_matches(ledger)
        await ledger.update_status("user-1", rows[0].id, "viewed")

        result = await ledger.list_tracked_leads("user-1", status="viewed")

        assert [row.id for row in result["leads"]] == [rows[0].id]

    @pytest.mark.asyncio
    async def test_unknown_sort_field(self, ledger):
        with pytest.raises(ValidationError):
            await ledger.list_tracked_leads("user-1", sort_by="password")

    @pytest.mark.asyncio
    async def test_tracking_stats(self, ledger):
        rows = await seed_matches(ledger, scores=(90, 70, 50))
        await ledger.update_status("user-1", rows[0].id, "converted")

        stats = await ledger.get_tracking_stats("user-1")

        assert stats["total_leads"] == 3
        assert stats["avg_score"] == 70
        assert stats["by_status"]["converted"] == {"count": 1, "avg_score": 90}
        assert stats["by_status"]["matched"] == {"count": 2, "avg_score": 60}

    @pytest.mark.asyncio
    async def test_stats_for_unknown_user(self, ledger):
        assert await ledger.get_tracking_stats("nobody") == {"total_leads": 0, "avg_score": 0, "by_status": {}}

    @pytest.mark.asyncio
    async def test_trending_orders_by_score_then_recency(self, db, ledger):
        rows = await seed_matches(ledger, scores=(60, 90, 60))
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        rows[0].created_at = base
        rows[2].created_at = base + timedelta(days=1)
        await db.commit()

        trending = await ledger.get_trending_leads("user-1", limit=2)

        assert [row.id for row in trending] == [rows[1].id, rows[2].id]

    @pytest.mark.asyncio
    async def test_delete_tracking(self, ledger):
        tracking = await ledger.create_match("user-1", "lead-1", "pref-1", 72)

        await ledger.delete_tracking("user-1", tracking.id)

        with pytest.raises(NotFoundError):
            await ledger.get_tracking("user-1", tracking.id)


# ============================================================================
# TEST: Match flow
# ============================================================================

class TestMatchLeadsForUser:

    async def _seed(self, db, preference_doc, **notifications):
        if notifications:
            preference_doc = {**preference_doc, "notifications": notifications}
        await PreferenceStore(db).upsert_preference("user-1", preference_doc)
        store = LeadStore(db)
        await store.save({"lead_id": "L-1", "name": "Acme", "industry": "Technology", "city": "Bangalore"})
        await store.save({"lead_id": "L-2", "name": "Shop", "industry": "Retail", "city": "Paris"})
        await store.save({
            "lead_id": "L-3",
            "name": "PayCo",
            "custom_fields": {"industry": "Fintech", "companySize": "51-250", "technologies": ["React"]},
        })

    @pytest.mark.asyncio
    async def test_tracks_leads_above_minimum(self, db, preference_doc):
        await self._seed(db, preference_doc)
        ledger = TrackingLedger(db)

        result = await ledger.match_leads_for_user("user-1")

        assert result["total_processed"] == 3
        assert result["total_matched"] == 2
        assert result["minimum_score"] == 40
        assert {lead["lead_id"]: lead["score"] for lead in result["leads"]} == {"L-1": 40, "L-3": 65}

        tracked = await ledger.list_tracked_leads("user-1")
        assert len(tracked["leads"]) == 2
        row = next(r for r in tracked["leads"] if r.lead_id == "L-3")
        assert row.tracking_metadata["source"] == "auto_matching"
        assert row.tracking_metadata["algorithm"] == "v2.1"
        assert row.matched_criteria["industry"] is True
        assert row.matched_criteria["technology"] is True

    @pytest.mark.asyncio
    async def test_rerun_does_not_duplicate(self, db, preference_doc):
        await self._seed(db, preference_doc)
        ledger = TrackingLedger(db)

        await ledger.match_leads_for_user("user-1")
        second = await ledger.match_leads_for_user("user-1")

        assert second["total_matched"] == 2
        tracked = await ledger.list_tracked_leads("user-1")
        assert tracked["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_limit_caps_scanned_leads(self, db, preference_doc):
        await self._seed(db, preference_doc)

        result = await TrackingLedger(db).match_leads_for_user("user-1", limit=1)

        assert result["total_processed"] == 1

    @pytest.mark.asyncio
    async def test_missing_preference(self, db):
        with pytest.raises(NotFoundError):
            await TrackingLedger(db).match_leads_for_user("user-1")

    @pytest.mark.asyncio
    async def test_daily_notifications_are_queued(self, db, preference_doc, emitter):
        await self._seed(db, preference_doc, filters={"minimum_score": 60})
        ledger = TrackingLedger(db, emitter=emitter)

        await ledger.match_leads_for_user("user-1")

        tracked = {r.lead_id: r for r in (await ledger.list_tracked_leads("user-1"))["leads"]}
        # L-1 scored 40, below the notification filter
        assert tracked["L-1"].notifications == []
        assert [n["channel_type"] for n in tracked["L-3"].notifications] == ["email", "push"]
        assert all(n["sent"] is False for n in tracked["L-3"].notifications)
        emitter.emit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_realtime_notifications_are_sent(self, db, preference_doc, emitter):
        await self._seed(db, preference_doc, frequency="realtime", email=False, filters={"minimum_score": 0})
        ledger = TrackingLedger(db, emitter=emitter)

        await ledger.match_leads_for_user("user-1")

        tracked = (await ledger.list_tracked_leads("user-1"))["leads"]
        assert all([n["channel_type"] for n in row.notifications] == ["push"] for row in tracked)
        assert all(row.notifications[0]["sent"] is True for row in tracked)
        assert emitter.emit.await_count == 2
