"""
Profile store interface and the in-memory adapter.

The store is the only shared mutable state in the system. Adapters provide
basic find/insert/update primitives with a uniqueness guarantee on subject key
and optimistic versioning; an adapter may additionally offer an atomic
read-modify-write merge.

Every call from the engine goes through ``bounded`` so a slow or unreachable
store surfaces as StoreUnavailableError instead of hanging.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Mapping, NamedTuple, Optional, TypeVar

import asyncpg

from ..errors import (
    DuplicateProfileError,
    ProfileNotFoundError,
    StoreUnavailableError,
    VersionConflictError,
)
from ..models.profile import Contribution, ConsolidatedProfile
from .connection import DatabaseConnectionError


logger = logging.getLogger(__name__)

T = TypeVar("T")

MergeFunction = Callable[[Optional[ConsolidatedProfile]], ConsolidatedProfile]

# Failures that mean "the store cannot be reached", as opposed to data conflicts
UNAVAILABLE_ERRORS = (
    DatabaseConnectionError,
    OSError,
    asyncpg.PostgresError,
    asyncpg.InterfaceError,
)


class MergeResult(NamedTuple):
    profile: ConsolidatedProfile
    is_new: bool


async def bounded(operation: str, awaitable: Awaitable[T], timeout: float) -> T:
    """
    Await a store call with a timeout.

    Timeouts and connectivity failures become StoreUnavailableError with a
    generic message; the raw error is logged and chained as ``__cause__``.
    Conflict signals and not-found errors pass through unchanged.
    """
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        logger.error(f"Store operation '{operation}' timed out after {timeout}s")
        raise StoreUnavailableError(operation, timed_out=True) from e
    except UNAVAILABLE_ERRORS as e:
        logger.error(f"Store operation '{operation}' failed: {e}")
        raise StoreUnavailableError(operation) from e


class ProfileStore(ABC):
    """Abstract interface for profile persistence."""

    @abstractmethod
    async def find_profile_by_subject(self, subject_key: str) -> Optional[ConsolidatedProfile]:
        """Get the profile for a normalized subject key."""
        pass

    @abstractmethod
    async def get_profile(self, profile_id: str) -> Optional[ConsolidatedProfile]:
        """Get a profile by id."""
        pass

    @abstractmethod
    async def list_profiles(self, profile_ids: List[str]) -> List[ConsolidatedProfile]:
        """Get several profiles by id, in request order; unknown ids are skipped."""
        pass

    @abstractmethod
    async def insert_profile(self, profile: ConsolidatedProfile) -> str:
        """
        Persist a new profile and return its id.

        Raises:
            DuplicateProfileError: a profile for the subject key already exists
        """
        pass

    @abstractmethod
    async def update_profile(
        self,
        profile_id: str,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> ConsolidatedProfile:
        """
        Apply field changes to a profile and return the stored result.

        Raises:
            ProfileNotFoundError: no profile with this id
            VersionConflictError: ``expected_version`` is given and stale
        """
        pass

    @abstractmethod
    async def record_submission(
        self,
        profile_id: str,
        contribution: Contribution,
        responses: Mapping[str, Any],
    ) -> None:
        """Secondary bookkeeping: keep the raw responses behind a contribution."""
        pass

    @property
    def supports_atomic_merge(self) -> bool:
        return False

    async def atomic_merge_profile(
        self,
        subject_key: str,
        contribution: Contribution,
        merge: MergeFunction,
    ) -> MergeResult:
        """
        Read the subject's profile, apply ``merge`` and persist, as one unit.

        ``merge`` receives the current profile (or None) and returns the
        profile to store; returning its argument unchanged means "nothing to do".
        """
        raise NotImplementedError(f"{type(self).__name__} has no atomic merge")


class InMemoryProfileStore(ProfileStore):
    """
    In-memory store for tests and local runs.

    With ``atomic=False`` each primitive is individually locked but yields to
    the event loop between calls, so concurrent writers interleave exactly as
    they would against a remote store without transactions.
    """

    def __init__(self, atomic: bool = False):
        self.atomic = atomic
        self._profiles: Dict[str, ConsolidatedProfile] = {}
        self._by_subject: Dict[str, str] = {}
        self._submissions: List[Dict[str, Any]] = []
        self._lock = asyncio.Lock()

    @property
    def supports_atomic_merge(self) -> bool:
        return self.atomic

    @property
    def profile_count(self) -> int:
        return len(self._profiles)

    @property
    def submissions(self) -> List[Dict[str, Any]]:
        return list(self._submissions)

    async def find_profile_by_subject(self, subject_key: str) -> Optional[ConsolidatedProfile]:
        await asyncio.sleep(0)
        async with self._lock:
            profile_id = self._by_subject.get(subject_key)
            return self._profiles.get(profile_id) if profile_id else None

    async def get_profile(self, profile_id: str) -> Optional[ConsolidatedProfile]:
        await asyncio.sleep(0)
        async with self._lock:
            return self._profiles.get(profile_id)

    async def list_profiles(self, profile_ids: List[str]) -> List[ConsolidatedProfile]:
        await asyncio.sleep(0)
        async with self._lock:
            return [self._profiles[pid] for pid in profile_ids if pid in self._profiles]

    async def insert_profile(self, profile: ConsolidatedProfile) -> str:
        await asyncio.sleep(0)
        async with self._lock:
            return self._insert(profile).id

    async def update_profile(
        self,
        profile_id: str,
        changes: Mapping[str, Any],
        expected_version: Optional[int] = None,
    ) -> ConsolidatedProfile:
        await asyncio.sleep(0)
        async with self._lock:
            current = self._profiles.get(profile_id)
            if current is None:
                raise ProfileNotFoundError(profile_id)
            if expected_version is not None and current.version != expected_version:
                raise VersionConflictError(profile_id, expected_version)
            updated = current.model_copy(update={**changes, "version": current.version + 1})
            self._profiles[profile_id] = updated
            return updated

    async def record_submission(
        self,
        profile_id: str,
        contribution: Contribution,
        responses: Mapping[str, Any],
    ) -> None:
        await asyncio.sleep(0)
        async with self._lock:
            self._submissions.append({
                "profile_id": profile_id,
                "contribution_id": contribution.id,
                "respondent_role": contribution.respondent_role.value,
                "responses": dict(responses),
            })

    async def atomic_merge_profile(
        self,
        subject_key: str,
        contribution: Contribution,
        merge: MergeFunction,
    ) -> MergeResult:
        if not self.atomic:
            return await super().atomic_merge_profile(subject_key, contribution, merge)

        async with self._lock:
            profile_id = self._by_subject.get(subject_key)
            existing = self._profiles.get(profile_id) if profile_id else None
            merged = merge(existing)
            if existing is None:
                return MergeResult(self._insert(merged), True)
            if merged is existing:
                return MergeResult(existing, False)
            stored = merged.model_copy(update={"version": existing.version + 1})
            self._profiles[existing.id] = stored
            return MergeResult(stored, False)

    def _insert(self, profile: ConsolidatedProfile) -> ConsolidatedProfile:
        if profile.subject_key in self._by_subject:
            raise DuplicateProfileError(profile.subject_key)
        stored = profile.model_copy(update={"version": profile.version + 1})
        self._profiles[stored.id] = stored
        self._by_subject[stored.subject_key] = stored.id
        logger.debug(f"Inserted profile {stored.id} for '{stored.subject_key}'")
        return stored
