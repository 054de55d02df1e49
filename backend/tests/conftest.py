# tests/conftest.py

import os

# Must be set before leadmatch.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
import pytest_asyncio
from types import SimpleNamespace

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from leadmatch.database import Base
from leadmatch import models  # noqa: F401  registers tables
from leadmatch.schemas.preference import PreferenceConfig


# ============================================================================
# DATABASE
# ============================================================================

@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test"""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


# ============================================================================
# PREFERENCES
# ============================================================================

def build_preferences(**sections):
    """Preference document with the targets used across the test suite."""
    document = {
        "geographic": {"cities": ["Bangalore", "Mumbai"], "states": ["Karnataka"], "countries": ["India"]},
        "business": {
            "industries": ["Technology", "Fintech"],
            "employee_ranges": ["51-250"],
            "revenue_ranges": ["$1M-$10M"],
            "technologies": ["React", "Python"],
        },
        "triggers": {"events": ["funding", "hiring"]},
        "scoring": {
            "weights": {"industry": 25, "size": 20, "location": 15, "technology": 20, "triggers": 15, "revenue": 5},
            "thresholds": {"minimum": 40, "low": 40, "medium": 60, "high": 80},
        },
    }
    for name, value in sections.items():
        document[name] = {**document.get(name, {}), **value}
    return document


@pytest.fixture
def preference_doc():
    return build_preferences()


@pytest.fixture
def preference_config(preference_doc):
    return PreferenceConfig.model_validate(preference_doc)


@pytest.fixture
def make_preference():
    """In-memory stand-in for a UserPreference row"""
    def _make(user_id="user-1", **sections):
        return SimpleNamespace(
            id=f"pref-{user_id}",
            user_id=user_id,
            config=PreferenceConfig.model_validate(build_preferences(**sections)),
        )
    return _make
