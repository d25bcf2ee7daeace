"""
Consolidation strategies: how a merge reaches the store.

AtomicConsolidator hands the whole read-merge-write to the store as one unit.
FallbackConsolidator is used when the store has no such primitive and runs an
optimistic find / insert-or-update loop instead:

    1. find the profile by subject key
    2. found     -> merge and update with the version that was read
    3. not found -> create and insert
    4. duplicate insert or stale version -> re-read and retry as an update

This gives at-least-once delivery of each contribution with eventual
convergence on a single profile, not strict atomicity. Contribution ids make a
retried merge idempotent, so a contribution is never counted twice, and the
store's unique subject key stops two profiles being created for one subject.
When the retry budget runs out, ConflictError reaches the caller.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from ..config import ConsolidationConfig, StoreConfig
from ..database.store import MergeResult, ProfileStore, bounded
from ..errors import ConflictError, DuplicateProfileError, VersionConflictError
from ..models.profile import Contribution, ConsolidatedProfile
from .engine import ConsolidationEngine, Subject


logger = logging.getLogger(__name__)


class Consolidator(ABC):
    """Applies one contribution to the stored profile of a subject."""

    def __init__(
        self,
        store: ProfileStore,
        engine: ConsolidationEngine,
        store_config: Optional[StoreConfig] = None,
    ):
        self.store = store
        self.engine = engine
        self.store_config = store_config or StoreConfig()

    @property
    def timeout(self) -> float:
        return self.store_config.operation_timeout

    @abstractmethod
    async def consolidate(self, subject: Subject, contribution: Contribution) -> MergeResult:
        """Record the contribution and return the stored profile."""
        pass


class AtomicConsolidator(Consolidator):
    """Delegates the merge to the store's atomic read-modify-write primitive."""

    async def consolidate(self, subject: Subject, contribution: Contribution) -> MergeResult:
        def merge(existing: Optional[ConsolidatedProfile]) -> ConsolidatedProfile:
            return self.engine.consolidate(existing, contribution, subject)

        result = await bounded(
            "atomic_merge_profile",
            self.store.atomic_merge_profile(subject.key, contribution, merge),
            self.timeout,
        )
        logger.info(
            f"Atomic merge for '{subject.key}': profile {result.profile.id} "
            f"(new={result.is_new}, version {result.profile.version})"
        )
        return result


class FallbackConsolidator(Consolidator):
    """Optimistic find / insert-or-update loop for stores without atomic merge."""

    def __init__(
        self,
        store: ProfileStore,
        engine: ConsolidationEngine,
        store_config: Optional[StoreConfig] = None,
        config: Optional[ConsolidationConfig] = None,
    ):
        super().__init__(store, engine, store_config)
        self.config = config or engine.config

    async def consolidate(self, subject: Subject, contribution: Contribution) -> MergeResult:
        max_retries = self.config.max_retries

        for attempt in range(max_retries + 1):
            try:
                return await self._attempt(subject, contribution)
            except (DuplicateProfileError, VersionConflictError) as e:
                conflict = ConflictError(subject.key, attempt + 1)
                if attempt == max_retries:
                    logger.error(f"Giving up on '{subject.key}': {conflict}")
                    raise conflict from e
                wait_time = min(self.config.max_retry_delay, self.config.retry_delay * (2 ** attempt))
                logger.info(f"Concurrent write on '{subject.key}' ({e}), retrying in {wait_time}s")
                await asyncio.sleep(wait_time)

        # range() above always returns or raises
        raise ConflictError(subject.key, max_retries + 1)

    async def _attempt(self, subject: Subject, contribution: Contribution) -> MergeResult:
        existing = await bounded(
            "find_profile_by_subject",
            self.store.find_profile_by_subject(subject.key),
            self.timeout,
        )

        if existing is None:
            created = self.engine.consolidate(None, contribution, subject)
            profile_id = await bounded("insert_profile", self.store.insert_profile(created), self.timeout)
            stored = created.model_copy(update={"id": profile_id, "version": created.version + 1})
            return MergeResult(stored, True)

        merged = self.engine.consolidate(existing, contribution, subject)
        if merged is existing:
            return MergeResult(existing, False)

        stored = await bounded(
            "update_profile",
            self.store.update_profile(
                existing.id,
                self.engine.merge_changes(merged),
                expected_version=existing.version,
            ),
            self.timeout,
        )
        return MergeResult(stored, False)


def create_consolidator(
    store: ProfileStore,
    engine: ConsolidationEngine,
    store_config: Optional[StoreConfig] = None,
) -> Consolidator:
    """Pick the strategy once, from what the store supports."""
    store_config = store_config or StoreConfig()
    if store.supports_atomic_merge and store_config.prefer_atomic_merge:
        logger.debug(f"Using atomic consolidation with {type(store).__name__}")
        return AtomicConsolidator(store, engine, store_config)
    logger.debug(f"Using fallback consolidation with {type(store).__name__}")
    return FallbackConsolidator(store, engine, store_config)
