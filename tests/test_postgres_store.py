"""
Tests for the PostgreSQL store adapter against a mocked connection pool.
"""

import json
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import asyncpg
import pytest

from progressive_profiles.config import DatabaseConfig, StoreConfig
from progressive_profiles.consolidation.consolidators import FallbackConsolidator
from progressive_profiles.database.connection import DatabaseConnectionError, DatabasePool
from progressive_profiles.database.postgres import (
    COLUMNS,
    JSON_COLUMNS,
    PostgresProfileStore,
    profile_to_args,
    row_to_profile,
)
from progressive_profiles.errors import CorruptProfileError, DuplicateProfileError, VersionConflictError
from progressive_profiles.models.profile import ClassroomObservations

from factories import make_contribution, make_profile


def as_row(profile):
    """A database row as asyncpg would return it with JSONB decoded to text."""
    return dict(zip(COLUMNS, profile_to_args(profile)))


class FakePool:
    """Stand-in for DatabasePool with one shared mocked connection."""

    def __init__(self):
        self.conn = MagicMock()
        self.conn.fetchrow = AsyncMock(return_value=None)
        self.conn.fetchval = AsyncMock(return_value=None)
        self.conn.execute = AsyncMock(return_value="UPDATE 1")
        self.execute_query = AsyncMock(return_value=[])
        self.execute_query_one = AsyncMock(return_value=None)
        self.execute_command = AsyncMock(return_value="INSERT 0 1")

    @asynccontextmanager
    async def transaction(self):
        yield self.conn


@pytest.fixture
def pool():
    return FakePool()


@pytest.fixture
def store(pool):
    return PostgresProfileStore(pool)


@pytest.fixture
def profile():
    return make_profile(
        {"Communication": 4.0, "Math": 2.5},
        name="Ava Chen",
        observations=ClassroomObservations(engagement_level=3.5),
        label="Mathematical Communicator",
    )


class TestRowMapping:
    """Test conversion between profiles and database rows."""

    def test_args_follow_column_order(self, profile):
        args = profile_to_args(profile)
        assert len(args) == len(COLUMNS)
        assert args[COLUMNS.index("id")] == profile.id
        assert args[COLUMNS.index("created_at")] == profile.created_at
        for column in JSON_COLUMNS:
            assert isinstance(args[COLUMNS.index(column)], str)

    def test_round_trip_through_row(self, profile):
        restored = row_to_profile(as_row(profile))
        assert restored.consolidated_scores == profile.consolidated_scores
        assert restored.contributions[0].id == profile.contributions[0].id
        assert restored.contributions[0].dimensions_covered == profile.contributions[0].dimensions_covered
        assert restored.observations.engagement_level == 3.5
        assert restored.version == profile.version

    def test_null_json_columns_default(self, profile):
        row = as_row(profile)
        row["preferences"] = None
        row["contributions"] = None
        restored = row_to_profile(row)
        assert restored.preferences == {}
        assert restored.contributions == []

    def test_undecodable_json_column_raises(self, profile):
        row = as_row(profile)
        row["contributions"] = "{not json"
        with pytest.raises(CorruptProfileError) as exc_info:
            row_to_profile(row)
        assert exc_info.value.profile_id == profile.id
        assert exc_info.value.column == "contributions"


class TestPostgresProfileStore:
    """Test store operations issue the right calls and map errors."""

    def test_atomic_by_default(self, store):
        assert store.supports_atomic_merge is True
        assert PostgresProfileStore(FakePool(), atomic=False).supports_atomic_merge is False

    @pytest.mark.asyncio
    async def test_find_missing(self, store, pool):
        assert await store.find_profile_by_subject("nobody") is None
        query, key = pool.execute_query_one.await_args.args
        assert "WHERE subject_key = $1" in query
        assert key == "nobody"

    @pytest.mark.asyncio
    async def test_insert_bumps_version(self, store, pool, profile):
        profile_id = await store.insert_profile(profile.model_copy(update={"version": 0}))
        assert profile_id == profile.id
        args = pool.execute_command.await_args.args
        assert args[1 + COLUMNS.index("version")] == 1

    @pytest.mark.asyncio
    async def test_insert_duplicate_subject(self, store, pool, profile):
        pool.execute_command.side_effect = asyncpg.UniqueViolationError("duplicate key")
        with pytest.raises(DuplicateProfileError):
            await store.insert_profile(profile)

    @pytest.mark.asyncio
    async def test_update_stale_version(self, store, pool, profile):
        pool.conn.fetchrow.return_value = as_row(profile)
        with pytest.raises(VersionConflictError):
            await store.update_profile(profile.id, {"personality_label": "x"}, expected_version=profile.version - 1)
        pool.conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_update_applies_changes(self, store, pool, profile):
        pool.conn.fetchrow.return_value = as_row(profile)
        updated = await store.update_profile(
            profile.id, {"personality_label": "Math Confident"}, expected_version=profile.version
        )
        assert updated.version == profile.version + 1
        assert updated.personality_label == "Math Confident"
        pool.conn.execute.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_update_refuses_corrupt_row(self, store, pool, profile):
        row = as_row(profile)
        row["contributions"] = "{not json"
        pool.conn.fetchrow.return_value = row
        with pytest.raises(CorruptProfileError):
            await store.update_profile(profile.id, {"personality_label": "x"}, expected_version=profile.version)
        pool.conn.execute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fallback_merge_refuses_corrupt_row(self, pool, engine, subject):
        existing = make_profile({"Math": 3.0}, contributions=[
            make_contribution({"Math": 3.0}),
            make_contribution({"Math": 3.5}, days=1),
        ]).model_copy(update={"subject_key": subject.key})
        row = as_row(existing)
        row["contributions"] = "{not json"
        pool.execute_query_one.return_value = row
        consolidator = FallbackConsolidator(
            PostgresProfileStore(pool, atomic=False), engine, StoreConfig(operation_timeout=1.0)
        )

        with pytest.raises(CorruptProfileError):
            await consolidator.consolidate(subject, make_contribution({"Math": 4.0}))
        pool.conn.execute.assert_not_awaited()
        pool.execute_command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_profiles_in_request_order(self, store, pool):
        a = make_profile({"Math": 3.0}, name="A")
        b = make_profile({"Math": 4.0}, name="B")
        pool.execute_query.return_value = [as_row(a), as_row(b)]

        profiles = await store.list_profiles([b.id, "missing", a.id])
        assert [p.id for p in profiles] == [b.id, a.id]

    @pytest.mark.asyncio
    async def test_list_profiles_empty(self, store, pool):
        assert await store.list_profiles([]) == []
        pool.execute_query.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_record_submission_is_idempotent_sql(self, store, pool, profile):
        await store.record_submission(profile.id, profile.contributions[0], {"22": 3})
        command, *args = pool.execute_command.await_args.args
        assert "ON CONFLICT (contribution_id) DO NOTHING" in command
        assert args[1] == profile.contributions[0].id
        assert json.loads(args[4]) == {"22": 3}


class TestAtomicMerge:
    """Test the transactional merge path."""

    @pytest.mark.asyncio
    async def test_creates_when_missing(self, store, pool, engine, subject):
        pool.conn.fetchval.return_value = "new-id"
        contribution = make_contribution({"Math": 3.0})

        result = await store.atomic_merge_profile(
            subject.key, contribution, lambda existing: engine.consolidate(existing, contribution, subject)
        )
        assert result.is_new is True
        assert result.profile.version == 1
        assert "ON CONFLICT (subject_key) DO NOTHING" in pool.conn.fetchval.await_args.args[0]

    @pytest.mark.asyncio
    async def test_lost_insert_race_merges(self, store, pool, engine, subject, profile):
        existing = profile.model_copy(update={"subject_key": subject.key})
        pool.conn.fetchrow.side_effect = [None, as_row(existing)]
        pool.conn.fetchval.return_value = None
        contribution = make_contribution({"Math": 4.5})

        result = await store.atomic_merge_profile(
            subject.key, contribution, lambda current: engine.consolidate(current, contribution, subject)
        )
        assert result.is_new is False
        assert result.profile.id == existing.id
        assert result.profile.version == existing.version + 1
        assert result.profile.total_assessments == 2
        pool.conn.execute.assert_awaited_once()


class TestDatabasePool:
    """Test pool guards that need no database."""

    def test_requires_url(self):
        with pytest.raises(DatabaseConnectionError, match="not configured"):
            DatabasePool(DatabaseConfig(url=None, _env_file=None))

    @pytest.mark.asyncio
    async def test_acquire_before_initialize(self):
        pool = DatabasePool(DatabaseConfig(url="postgresql://u:p@localhost/db"))
        assert pool.is_initialized is False
        with pytest.raises(DatabaseConnectionError, match="not initialized"):
            async with pool.acquire_connection():
                pass

    @pytest.mark.asyncio
    async def test_health_check_false_when_unreachable(self):
        pool = DatabasePool(DatabaseConfig(url="postgresql://u:p@localhost/db"))
        assert await pool.health_check() is False
