# ABOUTME: Pytest fixtures and configuration for ward bulletin tests.
# ABOUTME: Provides mock settings, local stores, a SQLite database, and sample bulletins.

from collections.abc import AsyncIterator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from ward_bulletin.auth import AuthUser, StaticAuthProvider
from ward_bulletin.config import Settings
from ward_bulletin.db.session import Database
from ward_bulletin.drafts import DraftStore, LocalStorage, TemplateStore
from ward_bulletin.models import (
    Announcement,
    Audience,
    BulletinDocument,
    Leadership,
    MusicalItem,
    SacramentItem,
    SpeakerItem,
)
from ward_bulletin.services.records import RemoteRecordService


@pytest.fixture
def mock_settings(tmp_path: Path) -> Settings:
    """Create mock settings for testing."""
    return Settings(
        database_url_override=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        data_dir=tmp_path / "data",
        save_timeout_seconds=0.5,
        save_max_attempts=2,
        save_retry_base_seconds=0,
        save_retry_max_wait_seconds=0,
        read_timeout_seconds=0.5,
        log_level="INFO",
    )


@pytest.fixture
def storage(mock_settings: Settings) -> LocalStorage:
    return LocalStorage.from_settings(mock_settings)


@pytest.fixture
def drafts(storage: LocalStorage) -> DraftStore:
    return DraftStore(storage)


@pytest.fixture
def templates(storage: LocalStorage) -> TemplateStore:
    return TemplateStore(storage)


@pytest.fixture
async def database(mock_settings: Settings) -> AsyncIterator[Database]:
    """SQLite database with all tables created."""
    db = Database.from_settings(mock_settings)
    await db.init()
    yield db
    await db.close()


@pytest.fixture
def records(database: Database, mock_settings: Settings) -> RemoteRecordService:
    return RemoteRecordService(database, mock_settings)


@pytest.fixture
def signed_in() -> StaticAuthProvider:
    return StaticAuthProvider(AuthUser(id="owner-0001-aaaa", email="clerk@example.com"))


@pytest.fixture
def mock_records() -> AsyncMock:
    """Record service double with every method awaitable."""
    return AsyncMock(spec=RemoteRecordService)


@pytest.fixture
def sample_document() -> BulletinDocument:
    """A filled-in bulletin with an explicit agenda order."""
    return BulletinDocument(
        ward_name="Maple Grove Ward",
        date="2025-03-09",
        theme="Come unto Christ",
        leadership_message="<p>Welcome to sacrament meeting.</p>",
        announcements=[
            Announcement(title="Potluck", content="Bring a dish", audience=Audience.WARD),
            Announcement(
                title="RS Lunch", content="Noon", audience=Audience.RELIEF_SOCIETY
            ),
        ],
        agenda=[
            SpeakerItem(name="Sister Alvarez", speaker_type="youth"),
            SacramentItem(),
            MusicalItem(label="Rest Hymn", hymn_number="98", hymn_title="I Need Thee Every Hour"),
            SpeakerItem(name="Brother Okafor"),
        ],
        leadership=Leadership(
            presiding="Bishop Reyes",
            conducting="Brother Chen",
            chorister="Sister Patel",
            organist="Brother Lund",
        ),
    )
