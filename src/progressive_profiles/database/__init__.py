"""
Profile persistence: store interface, in-memory and PostgreSQL adapters.
"""

from .connection import DatabaseConnectionError, DatabasePool
from .store import InMemoryProfileStore, MergeResult, ProfileStore, bounded
from .postgres import SCHEMA_SQL, PostgresProfileStore

__all__ = [
    "DatabasePool",
    "DatabaseConnectionError",
    "ProfileStore",
    "InMemoryProfileStore",
    "PostgresProfileStore",
    "MergeResult",
    "SCHEMA_SQL",
    "bounded",
]
