# ABOUTME: Remote record service for bulletins, keyed fields, and owner profiles.
# ABOUTME: Wraps the repositories in transactions and maps database failures onto AppError.

import asyncio
import time
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import date
from typing import TypeVar

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ward_bulletin.config import Settings, get_settings
from ward_bulletin.db.models import Bulletin, User
from ward_bulletin.db.repository import BulletinRepository, KeyedFieldRepository, UserRepository
from ward_bulletin.db.session import Database
from ward_bulletin.errors import (
    NotFoundError,
    OperationTimeoutError,
    ValidationError,
    translate_db_error,
)
from ward_bulletin.models import BulletinDocument, OwnerProfile, StoredBulletin
from ward_bulletin.security import log_security_event, validate_email, validate_profile_slug
from ward_bulletin.services.fields import (
    document_from_fields,
    encode_document,
    field_key,
    field_prefix,
)

log = structlog.get_logger()

T = TypeVar("T")

# Ids the editor assigns to bulletins that never reached the server
LOCAL_ID_PREFIX = "local-"


@dataclass(frozen=True)
class SavedBulletin:
    """Result of a successful save."""

    id: str
    slug: str
    created: bool


def generate_bulletin_slug(owner_id: str, meeting_date: str, millis: int | None = None) -> str:
    """Unique public slug: owner prefix, meeting date, and creation time."""
    if millis is None:
        millis = time.time_ns() // 1_000_000
    return f"{owner_id[:8]}-{meeting_date}-{millis}"


def _owner_profile(user: User) -> OwnerProfile:
    return OwnerProfile(
        owner_id=user.id,
        profile_slug=user.profile_slug,
        active_bulletin_id=user.active_bulletin_id,
    )


class RemoteRecordService:
    """Reads and writes bulletins against the relational store.

    Structured columns live on the bulletin row. Every other document field
    is stored as a keyed blob ``bulletin-<slug>-<field>`` owned by the
    bulletin's creator.
    """

    def __init__(self, database: Database, settings: Settings | None = None) -> None:
        self.database = database
        self.settings = settings or get_settings()

    @asynccontextmanager
    async def _session(self, action: str) -> AsyncIterator[AsyncSession]:
        try:
            async with self.database.session() as session:
                yield session
        except SQLAlchemyError as e:
            log.error("record_service_failed", action=action, error=str(e))
            raise translate_db_error(e, context=action) from e

    async def _load_document(self, session: AsyncSession, bulletin: Bulletin) -> BulletinDocument:
        values: dict[str, str] = {}
        if bulletin.created_by:
            prefix = field_prefix(bulletin.slug)
            fields = await KeyedFieldRepository(session).list_by_prefix(bulletin.created_by, prefix)
            values = {field.key[len(prefix) :]: field.value for field in fields}
        return document_from_fields(
            values, bulletin.meeting_date.isoformat(), bulletin.meeting_type
        )

    async def _to_stored(self, session: AsyncSession, bulletin: Bulletin) -> StoredBulletin:
        profile_slug = None
        if bulletin.created_by:
            owner = await UserRepository(session).get_by_id(bulletin.created_by)
            profile_slug = owner.profile_slug if owner else None
        return StoredBulletin(
            id=bulletin.id,
            slug=bulletin.slug,
            owner_id=bulletin.created_by,
            meeting_date=bulletin.meeting_date.isoformat(),
            meeting_type=bulletin.meeting_type,
            created_at=bulletin.created_at,
            profile_slug=profile_slug,
            document=await self._load_document(session, bulletin),
        )

    # Bulletins

    async def save_bulletin(
        self,
        owner_id: str,
        document: BulletinDocument,
        bulletin_id: str | None = None,
    ) -> SavedBulletin:
        """Create or update a bulletin and all of its keyed fields in one transaction.

        An id that is unknown for this owner, or one assigned locally while
        offline, creates a new bulletin.
        """
        async with self._session("save_bulletin") as session:
            bulletins = BulletinRepository(session)

            bulletin = None
            if bulletin_id and not bulletin_id.startswith(LOCAL_ID_PREFIX):
                bulletin = await bulletins.get_for_owner(bulletin_id, owner_id)
                if bulletin is None:
                    log.warning("bulletin_not_found_creating", bulletin_id=bulletin_id, owner_id=owner_id)

            created = bulletin is None
            if bulletin is None:
                millis = time.time_ns() // 1_000_000
                slug = generate_bulletin_slug(owner_id, document.date, millis)
                while await bulletins.get_by_slug(slug) is not None:
                    millis += 1
                    slug = generate_bulletin_slug(owner_id, document.date, millis)
                bulletin = Bulletin(
                    slug=slug,
                    created_by=owner_id,
                    meeting_date=date.fromisoformat(document.date),
                    meeting_type=document.meeting_type,
                )
            else:
                bulletin.meeting_date = date.fromisoformat(document.date)
                bulletin.meeting_type = document.meeting_type
            await bulletins.save(bulletin)

            values = {
                field_key(bulletin.slug, name): value
                for name, value in encode_document(document).items()
            }
            await KeyedFieldRepository(session).upsert_many(owner_id, values)
            saved = SavedBulletin(id=bulletin.id, slug=bulletin.slug, created=created)

        log.info(
            "bulletin_saved",
            id=saved.id,
            slug=saved.slug,
            created=saved.created,
            owner_id=owner_id,
        )
        return saved

    async def get_bulletin_by_id(self, bulletin_id: str) -> StoredBulletin | None:
        async with self._session("get_bulletin_by_id") as session:
            bulletin = await BulletinRepository(session).get_by_id(bulletin_id)
            if bulletin is None:
                return None
            return await self._to_stored(session, bulletin)

    async def get_bulletins_by_owner(self, owner_id: str) -> list[StoredBulletin]:
        """All bulletins of an owner, newest first."""
        async with self._session("get_bulletins_by_owner") as session:
            rows = await BulletinRepository(session).list_by_owner(owner_id)
            return [await self._to_stored(session, row) for row in rows]

    async def get_latest_bulletin(self, owner_id: str) -> StoredBulletin | None:
        async with self._session("get_latest_bulletin") as session:
            bulletin = await BulletinRepository(session).get_latest_for_owner(owner_id)
            if bulletin is None:
                return None
            return await self._to_stored(session, bulletin)

    async def delete_bulletin(self, owner_id: str, bulletin_id: str) -> bool:
        """Delete a bulletin with its keyed fields.

        Clears the owner's active pointer when it referenced this bulletin.
        """
        async with self._session("delete_bulletin") as session:
            bulletins = BulletinRepository(session)
            bulletin = await bulletins.get_for_owner(bulletin_id, owner_id)
            if bulletin is None:
                return False

            removed_fields = await KeyedFieldRepository(session).delete_by_prefix(
                owner_id, field_prefix(bulletin.slug)
            )
            await bulletins.delete(bulletin_id, owner_id)

            users = UserRepository(session)
            owner = await users.get_by_id(owner_id)
            if owner is not None and owner.active_bulletin_id == bulletin_id:
                await users.set_active_bulletin_id(owner_id, None)

        log.info("bulletin_deleted", id=bulletin_id, owner_id=owner_id, fields=removed_fields)
        return True

    # Owners and profiles

    async def register_owner(
        self, owner_id: str, email: str, profile_slug: str | None = None
    ) -> OwnerProfile:
        """Create the owner row if it does not exist yet.

        Raises:
            ValidationError: The email address is malformed.
        """
        email = email.strip().lower()
        if not validate_email(email):
            raise ValidationError("Invalid email address", context="register_owner")
        async with self._session("register_owner") as session:
            users = UserRepository(session)
            user = await users.get_by_id(owner_id)
            if user is None:
                user = await users.save(
                    User(id=owner_id, email=email, profile_slug=profile_slug)
                )
                log.info("owner_registered", owner_id=owner_id)
            return _owner_profile(user)

    async def get_owner(self, owner_id: str) -> OwnerProfile | None:
        async with self._session("get_owner") as session:
            user = await UserRepository(session).get_by_id(owner_id)
            return _owner_profile(user) if user else None

    async def get_user_by_profile_handle(self, profile_slug: str) -> OwnerProfile | None:
        async with self._session("get_user_by_profile_handle") as session:
            user = await UserRepository(session).get_by_profile_slug(profile_slug)
            return _owner_profile(user) if user else None

    async def set_active_bulletin_id(self, owner_id: str, bulletin_id: str | None) -> None:
        """Point the owner's public link at ``bulletin_id`` (None clears it)."""
        async with self._session("set_active_bulletin_id") as session:
            updated = await UserRepository(session).set_active_bulletin_id(owner_id, bulletin_id)
        if not updated:
            raise NotFoundError("Owner not found", context="set_active_bulletin_id")
        log.info("active_bulletin_set", owner_id=owner_id, bulletin_id=bulletin_id)

    async def is_profile_slug_available(
        self, profile_slug: str, current_owner_id: str | None = None
    ) -> bool:
        async with self._session("is_profile_slug_available") as session:
            user = await UserRepository(session).get_by_profile_slug(profile_slug)
            return user is None or user.id == current_owner_id

    async def update_profile_slug(self, owner_id: str, profile_slug: str) -> OwnerProfile:
        """Change the public handle after checking format and availability."""
        profile_slug = profile_slug.strip().lower()
        if not validate_profile_slug(profile_slug):
            raise ValidationError(
                "Profile handle may only contain lowercase letters, numbers, and hyphens.",
                context="profile",
            )
        if not await self.is_profile_slug_available(profile_slug, owner_id):
            log_security_event(
                "profile_slug_conflict", "Profile handle already taken", owner_id=owner_id
            )
            raise ValidationError("This profile handle is already taken.", context="profile")

        async with self._session("update_profile_slug") as session:
            users = UserRepository(session)
            if not await users.set_profile_slug(owner_id, profile_slug):
                raise NotFoundError("Owner not found", context="profile")
            user = await users.get_by_id(owner_id)

        log.info("profile_slug_updated", owner_id=owner_id, profile_slug=profile_slug)
        return _owner_profile(user)

    # Keyed fields

    async def upsert_keyed_field(self, owner_id: str, key: str, value: str) -> None:
        async with self._session("upsert_keyed_field") as session:
            await KeyedFieldRepository(session).upsert(owner_id, key, value)

    async def get_keyed_field(self, owner_id: str, key: str) -> str | None:
        async with self._session("get_keyed_field") as session:
            field = await KeyedFieldRepository(session).get(owner_id, key)
            return field.value if field else None

    # Public read path

    async def _bounded(self, awaitable: Awaitable[T], action: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.settings.read_timeout_seconds)
        except TimeoutError as e:
            log.error(
                "operation_timed_out",
                action=action,
                timeout_seconds=self.settings.read_timeout_seconds,
            )
            raise OperationTimeoutError(context=action) from e

    async def resolve_public_bulletin(self, profile_slug: str) -> StoredBulletin:
        """Bulletin shown at a public profile link.

        Uses the owner's active pointer, or the most recently created
        bulletin when no pointer is set.

        Raises:
            NotFoundError: No owner has this handle, or there is no bulletin to show.
            OperationTimeoutError: A lookup exceeded the read timeout.
        """
        owner = await self._bounded(
            self.get_user_by_profile_handle(profile_slug), "get_user_by_profile_handle"
        )
        if owner is None:
            raise NotFoundError("User not found", context="public_bulletin")

        if owner.active_bulletin_id:
            bulletin = await self._bounded(
                self.get_bulletin_by_id(owner.active_bulletin_id), "get_bulletin_by_id"
            )
            if bulletin is None or bulletin.owner_id != owner.owner_id:
                raise NotFoundError("Bulletin not found", context="public_bulletin")
            return bulletin

        latest = await self._bounded(
            self.get_latest_bulletin(owner.owner_id), "get_latest_bulletin"
        )
        if latest is None:
            raise NotFoundError("No bulletins found", context="public_bulletin")
        return latest
