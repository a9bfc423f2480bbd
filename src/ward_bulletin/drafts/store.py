# ABOUTME: JSON-file persistence for local editor state.
# ABOUTME: Holds the draft, pending draft, per-field defaults, offline bulletins, and last owner id.

from pathlib import Path

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ward_bulletin.config import Settings, get_settings
from ward_bulletin.models import BulletinDocument, DraftRecord, OfflineBulletin, UserDefaults

log = structlog.get_logger()

DRAFT_KEY = "draft_bulletin"
PENDING_DRAFT_KEY = "pending_draft"
DEFAULTS_KEY = "defaults"
OFFLINE_KEY = "offline_bulletins"
LAST_OWNER_KEY = "last_owner_id"

_offline_list = TypeAdapter(list[OfflineBulletin])


class LocalStorage:
    """String key/value store backed by one JSON file per key.

    Last write wins; nothing is shared across machines.
    """

    def __init__(self, base_dir: Path) -> None:
        self.base_dir = base_dir
        self.base_dir.mkdir(parents=True, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "LocalStorage":
        settings = settings or get_settings()
        return cls(settings.data_dir / "local")

    def _path(self, key: str) -> Path:
        return self.base_dir / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self._path(key).write_text(value, encoding="utf-8")

    def remove(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def clear(self) -> None:
        for path in self.base_dir.glob("*.json"):
            path.unlink()


class DraftStore:
    """Local mirror of the in-progress bulletin and related editor state."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    # Draft

    def save_draft(self, document: BulletinDocument, bulletin_id: str | None = None) -> None:
        """Overwrite the draft with the current document."""
        record = DraftRecord(document=document, bulletin_id=bulletin_id)
        self.storage.set(DRAFT_KEY, record.model_dump_json())

    def load_draft(self) -> DraftRecord | None:
        """Return the stored draft, or None when absent or unreadable."""
        raw = self.storage.get(DRAFT_KEY)
        if raw is None:
            return None
        try:
            return DraftRecord.model_validate_json(raw)
        except PydanticValidationError as e:
            log.warning("draft_parse_failed", error=str(e))
            return None

    def has_draft(self) -> bool:
        return self.load_draft() is not None

    def clear_draft(self) -> None:
        self.storage.remove(DRAFT_KEY)
        log.debug("draft_cleared")

    # Pending draft kept across a sign-in prompt

    def stash_pending(self, document: BulletinDocument) -> None:
        self.storage.set(PENDING_DRAFT_KEY, document.model_dump_json())
        log.info("pending_draft_stashed")

    def pop_pending(self) -> BulletinDocument | None:
        """Take the pending draft out of storage."""
        raw = self.storage.get(PENDING_DRAFT_KEY)
        if raw is None:
            return None
        self.storage.remove(PENDING_DRAFT_KEY)
        try:
            return BulletinDocument.model_validate_json(raw)
        except PydanticValidationError as e:
            log.warning("pending_draft_parse_failed", error=str(e))
            return None

    # Per-field defaults

    def get_defaults(self) -> UserDefaults:
        raw = self.storage.get(DEFAULTS_KEY)
        if raw is None:
            return UserDefaults()
        try:
            return UserDefaults.model_validate_json(raw)
        except PydanticValidationError as e:
            log.warning("defaults_parse_failed", error=str(e))
            return UserDefaults()

    def save_defaults(self, defaults: UserDefaults) -> None:
        self.storage.set(DEFAULTS_KEY, defaults.model_dump_json(exclude_none=True))

    def set_default(self, field: str, value: object) -> UserDefaults:
        """Store one default without touching the others."""
        if field not in UserDefaults.model_fields:
            raise KeyError(field)
        data = self.get_defaults().model_dump()
        data[field] = value
        defaults = UserDefaults.model_validate(data)
        self.save_defaults(defaults)
        return defaults

    # Offline bulletins

    def list_offline(self, owner_id: str | None = None) -> list[OfflineBulletin]:
        raw = self.storage.get(OFFLINE_KEY)
        if raw is None:
            return []
        try:
            entries = _offline_list.validate_json(raw)
        except PydanticValidationError as e:
            log.warning("offline_bulletins_parse_failed", error=str(e))
            return []
        if owner_id is None:
            return entries
        return [entry for entry in entries if entry.owner_id == owner_id]

    def add_offline(self, entry: OfflineBulletin) -> None:
        """Insert or replace an offline bulletin by id."""
        entries = [existing for existing in self.list_offline() if existing.id != entry.id]
        entries.append(entry)
        self.storage.set(OFFLINE_KEY, _offline_list.dump_json(entries).decode("utf-8"))
        log.info("offline_bulletin_stored", id=entry.id, owner_id=entry.owner_id)

    def remove_offline(self, bulletin_id: str) -> bool:
        entries = self.list_offline()
        remaining = [entry for entry in entries if entry.id != bulletin_id]
        if len(remaining) == len(entries):
            return False
        self.storage.set(OFFLINE_KEY, _offline_list.dump_json(remaining).decode("utf-8"))
        return True

    # Last known owner

    def get_last_owner_id(self) -> str | None:
        return self.storage.get(LAST_OWNER_KEY)

    def set_last_owner_id(self, owner_id: str) -> None:
        self.storage.set(LAST_OWNER_KEY, owner_id)
