"""
PostgreSQL profile store.

Profiles live in one row per subject with the nested parts (scores,
contributions, role counts, preferences, observations) in JSONB columns. The
unique index on ``subject_key`` backs the one-profile-per-subject rule and the
``version`` column backs optimistic updates.
"""

import json
import logging
from typing import Any, List, Mapping, Optional

import asyncpg

from ..errors import (
    CorruptProfileError,
    DuplicateProfileError,
    ProfileNotFoundError,
    VersionConflictError,
)
from ..models.profile import Contribution, ConsolidatedProfile
from .connection import DatabasePool
from .store import MergeFunction, MergeResult, ProfileStore


logger = logging.getLogger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS consolidated_profiles (
    id TEXT PRIMARY KEY,
    subject_name TEXT NOT NULL,
    subject_key TEXT NOT NULL,
    age_band TEXT NOT NULL,
    precise_age_months INTEGER,
    consolidated_scores JSONB NOT NULL DEFAULT '{}'::jsonb,
    confidence_percentage DOUBLE PRECISION NOT NULL DEFAULT 0,
    completeness_percentage DOUBLE PRECISION NOT NULL DEFAULT 0,
    contributions JSONB NOT NULL DEFAULT '[]'::jsonb,
    role_counts JSONB NOT NULL DEFAULT '{}'::jsonb,
    preferences JSONB NOT NULL DEFAULT '{}'::jsonb,
    personality_label TEXT,
    observations JSONB NOT NULL DEFAULT '{}'::jsonb,
    version INTEGER NOT NULL DEFAULT 1,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ NOT NULL
);

CREATE UNIQUE INDEX IF NOT EXISTS consolidated_profiles_subject_key_idx
    ON consolidated_profiles (subject_key);

CREATE TABLE IF NOT EXISTS assessment_submissions (
    id BIGSERIAL PRIMARY KEY,
    profile_id TEXT NOT NULL REFERENCES consolidated_profiles (id),
    contribution_id TEXT NOT NULL UNIQUE,
    respondent_role TEXT NOT NULL,
    assessment_variant TEXT NOT NULL,
    responses JSONB NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);
"""

COLUMNS = (
    "id",
    "subject_name",
    "subject_key",
    "age_band",
    "precise_age_months",
    "consolidated_scores",
    "confidence_percentage",
    "completeness_percentage",
    "contributions",
    "role_counts",
    "preferences",
    "personality_label",
    "observations",
    "version",
    "created_at",
    "updated_at",
)

JSON_COLUMNS = frozenset({
    "consolidated_scores",
    "contributions",
    "role_counts",
    "preferences",
    "observations",
})

_SELECT = f"SELECT {', '.join(COLUMNS)} FROM consolidated_profiles"

_PLACEHOLDERS = ", ".join(
    f"${i}::jsonb" if column in JSON_COLUMNS else f"${i}"
    for i, column in enumerate(COLUMNS, start=1)
)

_INSERT = f"INSERT INTO consolidated_profiles ({', '.join(COLUMNS)}) VALUES ({_PLACEHOLDERS})"

_UPDATE = "UPDATE consolidated_profiles SET " + ", ".join(
    f"{column} = ${i}::jsonb" if column in JSON_COLUMNS else f"{column} = ${i}"
    for i, column in enumerate(COLUMNS, start=1)
    if column != "id"
) + " WHERE id = $1"


def _parse_json(data: Mapping[str, Any], column: str) -> Any:
    value = data.get(column)
    if value is None:
        return [] if column == "contributions" else {}
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as e:
            logger.error(f"Profile {data.get('id')} has undecodable JSON in '{column}': {e}")
            raise CorruptProfileError(str(data.get("id")), column) from e
    return value


def row_to_profile(row: Mapping[str, Any]) -> ConsolidatedProfile:
    """Build a profile from a database row; undecodable JSON raises CorruptProfileError."""
    data = dict(row)
    for column in JSON_COLUMNS:
        data[column] = _parse_json(data, column)
    return ConsolidatedProfile.model_validate(data)


def profile_to_args(profile: ConsolidatedProfile) -> List[Any]:
    """Positional query arguments for a profile, in COLUMNS order."""
    dumped = profile.model_dump(mode="json")
    args = []
    for column in COLUMNS:
        if column in JSON_COLUMNS:
            args.append(json.dumps(dumped[column]))
        elif column in ("created_at", "updated_at"):
            args.append(getattr(profile, column))
        else:
            args.append(dumped[column])
    return args


class PostgresProfileStore(ProfileStore):
    """Profile store backed by an asyncpg pool."""

    def __init__(self, pool: DatabasePool, atomic: bool = True):
        self.pool = pool
        self.atomic = atomic

    @property
    def supports_atomic_merge(self) -> bool:
        return self.atomic

    async def ensure_schema(self) -> None:
        """Create tables and indexes when missing."""
        await self.pool.execute_command(SCHEMA_SQL)
        logger.info("Profile schema ensured")

    async def find_profile_by_subject(self, subject_key: str) -> Optional[ConsolidatedProfile]:
        row = await self.pool.execute_query_one(f"{_SELECT} WHERE subject_key = $1", subject_key)
        return row_to_profile(row) if row else None

    async def get_profile(self, profile_id: str) -> Optional[ConsolidatedProfile]:
        row = await self.pool.execute_query_one(f"{_SELECT} WHERE id = $1", profile_id)
        return row_to_profile(row) if row else None

    async def list_profiles(self, profile_ids: List[str]) -> List[ConsolidatedProfile]:
        if not profile_ids:
            return []
        rows = await self.pool.execute_query(f"{_SELECT} WHERE id = ANY($1::text[])", list(profile_ids))
        by_id = {row["id"]: row_to_profile(row) for row in rows}
        return [by_id[pid] for pid in profile_ids if pid in by_id]

    async def insert_profile(self, profile: ConsolidatedProfile) -> str:
        stored = profile.model_copy(update={"version": profile.version + 1})
        try:
            await self.pool.execute_command(_INSERT, *profile_to_args(stored))
        except asyncpg.UniqueViolationError as e:
            raise DuplicateProfileError(profile.subject_key) from e
        logger.debug(f"Inserted profile {stored.id} for '{stored.subject_key}'")
        return stored.id

    async def update_profile(
        self,
        profile_id: str,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> ConsolidatedProfile:
        async with self.pool.transaction() as conn:
            row = await conn.fetchrow(f"{_SELECT} WHERE id = $1 FOR UPDATE", profile_id)
            if row is None:
                raise ProfileNotFoundError(profile_id)
            current = row_to_profile(row)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(profile_id, expected_version)
            updated = current.model_copy(update={**changes, "version": current.version + 1})
            await conn.execute(_UPDATE, *profile_to_args(updated))
            return updated

    async def record_submission(
        self,
        profile_id: str,
        contribution: Contribution,
        responses: Mapping[str, Any],
    ) -> None:
        await self.pool.execute_command(
            """
            INSERT INTO assessment_submissions
                (profile_id, contribution_id, respondent_role, assessment_variant, responses)
            VALUES ($1, $2, $3, $4, $5::jsonb)
            ON CONFLICT (contribution_id) DO NOTHING
            """,
            profile_id,
            contribution.id,
            contribution.respondent_role.value,
            contribution.assessment_variant.value,
            json.dumps(dict(responses), default=str),
        )

    async def atomic_merge_profile(
        self,
        subject_key: str,
        contribution: Contribution,
        merge: MergeFunction,
    ) -> MergeResult:
        async with self.pool.transaction() as conn:
            row = await conn.fetchrow(f"{_SELECT} WHERE subject_key = $1 FOR UPDATE", subject_key)

            if row is None:
                created = merge(None)
                created = created.model_copy(update={"version": created.version + 1})
                inserted = await conn.fetchval(
                    f"{_INSERT} ON CONFLICT (subject_key) DO NOTHING RETURNING id",
                    *profile_to_args(created),
                )
                if inserted is not None:
                    return MergeResult(created, True)
                # Another writer created the subject between our read and insert
                row = await conn.fetchrow(f"{_SELECT} WHERE subject_key = $1 FOR UPDATE", subject_key)

            existing = row_to_profile(row)
            merged = merge(existing)
            if merged is existing:
                return MergeResult(existing, False)
            merged = merged.model_copy(update={"version": existing.version + 1})
            await conn.execute(_UPDATE, *profile_to_args(merged))
            return MergeResult(merged, False)

