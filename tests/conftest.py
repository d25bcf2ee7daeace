"""Shared fixtures for progressive profile tests."""

import pytest

from progressive_profiles.config import ConsolidationConfig, Settings, StoreConfig
from progressive_profiles.consolidation.engine import ConsolidationEngine, Subject
from progressive_profiles.database.store import InMemoryProfileStore
from progressive_profiles.models.scores import AgeBand
from progressive_profiles.service import ProfileService


@pytest.fixture
def subject():
    return Subject(name="Ava Chen", key="ava chen", age_band=AgeBand.AGE_5_6)


@pytest.fixture
def consolidation_config():
    return ConsolidationConfig(retry_delay=0.001, max_retry_delay=0.005, max_retries=20)


@pytest.fixture
def engine(consolidation_config):
    return ConsolidationEngine(consolidation_config)


@pytest.fixture
def store_config():
    return StoreConfig(operation_timeout=1.0)


@pytest.fixture
def settings(consolidation_config, store_config):
    return Settings(consolidation=consolidation_config, store=store_config)


@pytest.fixture
def memory_store():
    """Non-atomic in-memory store: forces the fallback consolidation path."""
    return InMemoryProfileStore(atomic=False)


@pytest.fixture
def atomic_store():
    return InMemoryProfileStore(atomic=True)


@pytest.fixture
def service(memory_store, settings):
    return ProfileService(memory_store, settings)


@pytest.fixture
def parent_payload():
    """Parent home assessment: Communication 4.0, Collaboration 3.0."""
    return {
        "subject_name": "Ava Chen",
        "assessment_variant": "parent_home",
        "respondent_role": "parent",
        "age_band": "5-6",
        "responses": {"1": 5, "2": 4, "4": 3},
    }


@pytest.fixture
def teacher_payload():
    """Teacher classroom assessment: Communication 5.0, Collaboration 3.0, Content 5.0."""
    return {
        "subject_name": "Ava Chen",
        "assessment_variant": "teacher_classroom",
        "respondent_role": "teacher",
        "age_band": "5-6",
        "responses": {"1": 5, "3": 5, "4": 3, "5": 3, "8": 5},
    }
