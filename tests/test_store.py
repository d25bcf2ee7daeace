"""
Tests for the in-memory profile store and the bounded() wrapper.
"""

import asyncio

import pytest

from progressive_profiles.database.store import bounded
from progressive_profiles.errors import (
    DuplicateProfileError,
    ProfileNotFoundError,
    StoreUnavailableError,
    VersionConflictError,
)

from factories import make_profile


class TestInMemoryProfileStore:
    """Test store primitives."""

    @pytest.mark.asyncio
    async def test_insert_and_find(self, memory_store):
        profile = make_profile({"Math": 3.0}, name="Leo").model_copy(update={"version": 0})
        profile_id = await memory_store.insert_profile(profile)

        found = await memory_store.find_profile_by_subject("leo")
        assert found.id == profile_id
        assert found.version == 1
        assert await memory_store.get_profile(profile_id) == found

    @pytest.mark.asyncio
    async def test_duplicate_subject_rejected(self, memory_store):
        await memory_store.insert_profile(make_profile({"Math": 3.0}, name="Leo"))
        with pytest.raises(DuplicateProfileError):
            await memory_store.insert_profile(make_profile({"Math": 4.0}, name="Leo"))
        assert memory_store.profile_count == 1

    @pytest.mark.asyncio
    async def test_update_checks_version(self, memory_store):
        profile_id = await memory_store.insert_profile(make_profile({"Math": 3.0}))
        stored = await memory_store.get_profile(profile_id)

        updated = await memory_store.update_profile(
            profile_id, {"personality_label": "Math Confident"}, expected_version=stored.version
        )
        assert updated.version == stored.version + 1
        assert updated.personality_label == "Math Confident"

        with pytest.raises(VersionConflictError):
            await memory_store.update_profile(profile_id, {"personality_label": "x"}, expected_version=stored.version)

    @pytest.mark.asyncio
    async def test_update_missing_profile(self, memory_store):
        with pytest.raises(ProfileNotFoundError):
            await memory_store.update_profile("missing", {})

    @pytest.mark.asyncio
    async def test_list_profiles_keeps_order_and_skips_unknown(self, memory_store):
        a = await memory_store.insert_profile(make_profile({"Math": 3.0}, name="A"))
        b = await memory_store.insert_profile(make_profile({"Math": 3.0}, name="B"))

        profiles = await memory_store.list_profiles([b, "nope", a])
        assert [p.id for p in profiles] == [b, a]

    @pytest.mark.asyncio
    async def test_record_submission(self, memory_store):
        profile = make_profile({"Math": 3.0})
        await memory_store.record_submission(profile.id, profile.contributions[0], {"22": 5})
        assert memory_store.submissions == [{
            "profile_id": profile.id,
            "contribution_id": profile.contributions[0].id,
            "respondent_role": "parent",
            "responses": {"22": 5},
        }]


class TestBounded:
    """Test the store call wrapper."""

    @pytest.mark.asyncio
    async def test_passes_result_through(self):
        async def ok():
            return 42

        assert await bounded("op", ok(), 1.0) == 42

    @pytest.mark.asyncio
    async def test_timeout(self):
        with pytest.raises(StoreUnavailableError, match="timed out during slow_op"):
            await bounded("slow_op", asyncio.sleep(1), 0.01)

    @pytest.mark.asyncio
    async def test_connectivity_failure(self):
        async def broken():
            raise ConnectionRefusedError("db.internal:5432")

        with pytest.raises(StoreUnavailableError) as exc_info:
            await bounded("find", broken(), 1.0)
        assert exc_info.value.timed_out is False
        assert "db.internal" not in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_conflicts_pass_through(self):
        async def stale():
            raise VersionConflictError("p1", 3)

        with pytest.raises(VersionConflictError):
            await bounded("update", stale(), 1.0)
