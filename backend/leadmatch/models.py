# backend/leadmatch/models.py
"""
SQLAlchemy ORM models.

Document-shaped state (preference configuration, action and notification logs,
settings) is stored in JSON columns; JSON lists are always reassigned, never
mutated in place, so SQLAlchemy sees every change.
"""

from sqlalchemy import (
    Column, String, Boolean, Integer, Float, Text, DateTime, Index, CheckConstraint, UniqueConstraint
)
from sqlalchemy.sql import func
from datetime import datetime, timezone
import uuid

from leadmatch.database import Base, JSONDocument
from leadmatch.schemas.preference import PreferenceConfig


def _uuid_str() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# USERS
# ============================================================================

class AuthUser(Base):
    """Platform user account (owned by the auth layer; read-only here)."""
    __tablename__ = "auth_users"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    email = Column(String(255), nullable=False, unique=True)
    full_name = Column(String(255))
    role = Column(String(50), nullable=False, default="user")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, server_default=func.now())

    def __repr__(self):
        return f"<AuthUser(id={self.id}, email='{self.email}', active={self.is_active})>"


# ============================================================================
# USER PREFERENCE
# ============================================================================

class UserPreference(Base):
    """
    One matching configuration per user, plus running sync statistics.

    `preferences` holds a PreferenceConfig document; use `config` to read it
    as a validated model.
    """
    __tablename__ = "user_preferences"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(64), nullable=False, unique=True, index=True)
    preferences = Column(JSONDocument, nullable=False, default=dict)

    # ========================================================================
    # STATS
    # ========================================================================
    total_leads = Column(Integer, nullable=False, default=0)
    qualified_leads = Column(Integer, nullable=False, default=0)
    converted_leads = Column(Integer, nullable=False, default=0)
    last_sync = Column(DateTime(timezone=True), index=True)
    api_calls = Column(Integer, nullable=False, default=0)
    success_rate = Column(Float, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("success_rate >= 0 AND success_rate <= 100", name="chk_pref_success_rate"),
    )

    @property
    def config(self) -> PreferenceConfig:
        return PreferenceConfig.model_validate(self.preferences or {})

    @property
    def stats(self) -> dict:
        return {
            "total_leads": self.total_leads or 0,
            "qualified_leads": self.qualified_leads or 0,
            "converted_leads": self.converted_leads or 0,
            "last_sync": self.last_sync,
            "api_calls": self.api_calls or 0,
            "success_rate": self.success_rate or 0,
        }

    @property
    def conversion_rate(self) -> int:
        if not self.total_leads:
            return 0
        return int((self.converted_leads or 0) / self.total_leads * 100 + 0.5)

    @property
    def qualification_rate(self) -> int:
        if not self.total_leads:
            return 0
        return int((self.qualified_leads or 0) / self.total_leads * 100 + 0.5)

    def calculate_lead_score(self, lead_data: dict) -> int:
        from leadmatch.matching.scoring import calculate_lead_score
        return calculate_lead_score(self.config, lead_data)

    def matches_lead(self, lead_data: dict) -> bool:
        from leadmatch.matching.scoring import matches_lead
        return matches_lead(self.config, lead_data)

    def __repr__(self):
        return f"<UserPreference(user_id='{self.user_id}', total_leads={self.total_leads})>"


# ============================================================================
# LEAD TRACKING
# ============================================================================

class LeadTracking(Base):
    """
    One user having matched one lead.

    `score` is the score at match time and is never rewritten. `actions` and
    `notifications` are append-only logs in call order.
    """
    __tablename__ = "lead_tracking"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    user_id = Column(String(64), nullable=False)
    lead_id = Column(String(128), nullable=False)
    preference_id = Column(String(36), nullable=False, index=True)

    score = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="matched")
    matched_criteria = Column(JSONDocument, nullable=False, default=dict)

    actions = Column(JSONDocument, nullable=False, default=list)
    notifications = Column(JSONDocument, nullable=False, default=list)
    tracking_metadata = Column("metadata", JSONDocument, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        CheckConstraint("score >= 0 AND score <= 100", name="chk_tracking_score"),
        CheckConstraint(
            "status IN ('matched', 'viewed', 'contacted', 'qualified', 'converted', 'rejected')",
            name="chk_tracking_status",
        ),
        Index("idx_tracking_user_status", "user_id", "status"),
        Index("idx_tracking_user_score", "user_id", "score"),
        Index("idx_tracking_user_lead", "user_id", "lead_id"),
        Index("idx_tracking_created", "created_at"),
    )

    def __repr__(self):
        return f"<LeadTracking(id={self.id}, user_id='{self.user_id}', lead_id='{self.lead_id}', status='{self.status}')>"


# ============================================================================
# LEAD
# ============================================================================

class Lead(Base):
    """
    Stored lead record.

    Scoring inputs may live either in the top-level columns or in the
    open-ended `custom_fields` bag.
    """
    __tablename__ = "leads"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    lead_id = Column(String(128), nullable=False, unique=True, index=True)
    source = Column(String(100))
    status = Column(String(50), default="New")
    priority = Column(String(20), default="Medium")
    score = Column(Integer)
    assigned_to = Column(String(64))

    name = Column(String(255))
    email = Column(String(255), index=True)
    phone = Column(String(50))
    website = Column(String(500))
    industry = Column(String(255))
    city = Column(String(255))
    state = Column(String(255))
    country = Column(String(255))
    employee_range = Column(String(50))
    revenue_range = Column(String(50))
    technologies = Column(JSONDocument, default=list)
    trigger_events = Column(JSONDocument, default=list)

    notes = Column(Text)
    custom_fields = Column(JSONDocument, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        Index("idx_leads_email_source", "email", "source"),
    )

    def __repr__(self):
        return f"<Lead(lead_id='{self.lead_id}', name='{self.name}', source='{self.source}')>"


# ============================================================================
# SYSTEM SETTINGS
# ============================================================================

class SystemSettings(Base):
    """System-wide settings documents, addressed by (category, key)."""
    __tablename__ = "system_settings"

    id = Column(String(36), primary_key=True, default=_uuid_str)
    category = Column(String(100), nullable=False)
    key = Column(String(255), nullable=False)
    value = Column(JSONDocument, nullable=False)
    description = Column(Text)
    updated_by = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        UniqueConstraint("category", "key", name="uq_category_key"),
    )
