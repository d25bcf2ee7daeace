"""Error taxonomy for the consolidation and analytics engine."""

from typing import List, Optional


class ProfileEngineError(Exception):
    """Base exception for all engine errors."""
    pass


class ValidationError(ProfileEngineError):
    """Raised when a submission is missing or has malformed required fields.

    Always raised before any store access, so it never has side effects.
    """

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or [message]


class ProfileNotFoundError(ProfileEngineError):
    """Raised when a requested profile does not exist."""

    def __init__(self, profile_id: str):
        super().__init__(f"Profile not found: {profile_id}")
        self.profile_id = profile_id


class StoreUnavailableError(ProfileEngineError):
    """Raised when the profile store is unreachable or timed out.

    The message is deliberately generic; the underlying store error is logged
    and kept as ``__cause__`` but never exposed to callers.
    """

    retryable = True

    def __init__(self, operation: str, timed_out: bool = False):
        reason = "timed out" if timed_out else "is unavailable"
        super().__init__(f"Profile store {reason} during {operation}; the request can be retried")
        self.operation = operation
        self.timed_out = timed_out


class ConflictError(ProfileEngineError):
    """Raised when concurrent writers collide on the same subject.

    The fallback consolidator retries these internally; callers only see one
    when the retry budget is exhausted.
    """

    retryable = True

    def __init__(self, subject_key: str, attempts: int = 0):
        super().__init__(
            f"Concurrent update conflict for subject '{subject_key}' after {attempts} attempt(s)"
        )
        self.subject_key = subject_key
        self.attempts = attempts


class ComputationError(ProfileEngineError):
    """Marks a defect: an extractor or detector hit a data shape it should have tolerated."""
    pass


# Signals raised by store adapters. They never leave the consolidation layer.

class DuplicateProfileError(ProfileEngineError):
    """Raised by a store when a profile for the subject already exists."""

    def __init__(self, subject_key: str):
        super().__init__(f"Profile already exists for subject '{subject_key}'")
        self.subject_key = subject_key


class VersionConflictError(ProfileEngineError):
    """Raised by a store when an update's expected version is stale."""

    def __init__(self, profile_id: str, expected_version: int):
        super().__init__(f"Profile {profile_id} changed since version {expected_version}")
        self.profile_id = profile_id
        self.expected_version = expected_version


class CorruptProfileError(ProfileEngineError):
    """Raised by a store when a stored profile row cannot be decoded.

    Writing such a profile back would drop its contribution history, so
    reads fail instead of substituting defaults.
    """

    def __init__(self, profile_id: str, column: str):
        super().__init__(f"Stored profile {profile_id} has an undecodable '{column}' column")
        self.profile_id = profile_id
        self.column = column
