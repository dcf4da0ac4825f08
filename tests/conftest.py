"""
Pytest configuration and shared fixtures
"""

import tempfile
from pathlib import Path
from typing import Iterator

import pytest

from history_ledger.kernel.time import TestTimeProvider
from history_ledger.ledger import HistoryLedger
from history_ledger.log.models import UserRecord
from history_ledger.log.repository import LogEntryRepository
from history_ledger.log.resolver import LoaderEntityResolver
from history_ledger.log.store import InMemoryLogEntryStore, SQLiteLogEntryStore
from tests.helpers import BASE_TIME


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "ledger.db"


@pytest.fixture
def sqlite_store(temp_db: Path) -> SQLiteLogEntryStore:
    """Provide a fresh SQLite log store for each test"""
    return SQLiteLogEntryStore(temp_db)


@pytest.fixture
def memory_store() -> InMemoryLogEntryStore:
    return InMemoryLogEntryStore()


@pytest.fixture(params=["sqlite", "memory"])
def store(request: pytest.FixtureRequest, temp_db: Path):
    """Every store implementation must answer queries identically"""
    if request.param == "sqlite":
        return SQLiteLogEntryStore(temp_db)
    return InMemoryLogEntryStore()


@pytest.fixture
def live_entities() -> dict[tuple[str, int], object]:
    """Stand-in for the application's entity tables"""
    return {}


@pytest.fixture
def resolver(live_entities: dict[tuple[str, int], object]) -> LoaderEntityResolver:
    return LoaderEntityResolver(
        {
            "part": lambda element_id: live_entities.get(("part", element_id)),
            "footprint": lambda element_id: live_entities.get(("footprint", element_id)),
        }
    )


@pytest.fixture
def repository(store, resolver: LoaderEntityResolver) -> LogEntryRepository:
    return LogEntryRepository(store, resolver)


@pytest.fixture
def alice() -> UserRecord:
    return UserRecord(id=1, name="alice", full_name="Alice Adams")


@pytest.fixture
def bob() -> UserRecord:
    return UserRecord(id=2, name="bob")


@pytest.fixture
def test_time() -> TestTimeProvider:
    """Controllable clock starting at BASE_TIME (2025-01-15 12:00:00 UTC)"""
    return TestTimeProvider(BASE_TIME)


@pytest.fixture
def ledger(temp_db: Path, resolver: LoaderEntityResolver, test_time: TestTimeProvider) -> HistoryLedger:
    return HistoryLedger(temp_db, resolver=resolver, time_provider=test_time)
