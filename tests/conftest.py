"""Shared test fixtures for contextual padding tests."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

# ---------------------------------------------------------------------------
# Test hermeticity
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _force_hermetic_test_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DB_PATH", "")
    monkeypatch.setenv("ENCRYPTION_KEY", "")
    monkeypatch.setenv("PREVIOUS_ENCRYPTION_KEYS", "")
    monkeypatch.setenv("ALIGNMENT_VALUE_A", "2.89")
    monkeypatch.setenv("ALIGNMENT_VALUE_B", "0.1")
    monkeypatch.setenv("ALIGNMENT_VALUE_C", "2.99")

# Allow running tests without `pip install -e .` by making `src/` importable.
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_SRC_DIR = _PROJECT_ROOT / "src"
if str(_SRC_DIR) not in sys.path:
    sys.path.insert(0, str(_SRC_DIR))

from cpad.core.classification.cache import ClassificationCache  # noqa: E402
from cpad.core.pipeline.engine import PaddingPipeline  # noqa: E402
from cpad.core.preferences.store import UserPreferenceStore  # noqa: E402


# ---------------------------------------------------------------------------
# Pipeline fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def cache() -> ClassificationCache:
    return ClassificationCache(capacity=1000)


@pytest.fixture
def store() -> UserPreferenceStore:
    return UserPreferenceStore(capacity=500, history_limit=100)


@pytest.fixture
def pipeline(cache: ClassificationCache, store: UserPreferenceStore) -> PaddingPipeline:
    """A pipeline with fresh in-memory stores and cultural context disabled."""
    return PaddingPipeline(cache, store)


# ---------------------------------------------------------------------------
# In-memory storage fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def preference_db():
    """Create an in-memory PreferenceDatabase for testing."""
    from cpad.core.storage.database import PreferenceDatabase

    db = PreferenceDatabase(":memory:")
    db.initialize()
    yield db
    db.close()


@pytest.fixture
def field_encryptor():
    """Create a FieldEncryptor with a test key."""
    from cryptography.fernet import Fernet

    from cpad.core.storage.encryption import FieldEncryptor

    return FieldEncryptor(Fernet.generate_key().decode())


@pytest.fixture
def preference_repository(preference_db, field_encryptor):
    """Create a PreferenceRepository backed by in-memory SQLite."""
    from cpad.core.storage.repository import PreferenceRepository

    return PreferenceRepository(preference_db, field_encryptor)


@pytest.fixture
def audit_logger(preference_db):
    """Create an AuditLogger backed by in-memory SQLite."""
    from cpad.core.audit.logger import AuditLogger

    return AuditLogger(preference_db)
