# ABOUTME: Service for announcements that repeat in every new bulletin of a profile.
# ABOUTME: Handles create, update, soft delete, conversion, and seeding of new bulletins.

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ward_bulletin.db.models import RecurringAnnouncement as RecurringAnnouncementRow
from ward_bulletin.db.repository import RecurringAnnouncementRepository
from ward_bulletin.db.session import Database
from ward_bulletin.errors import NotFoundError, translate_db_error
from ward_bulletin.models import (
    Announcement,
    AnnouncementImage,
    Audience,
    RecurringAnnouncement,
)
from ward_bulletin.security import sanitize_html

log = structlog.get_logger()

_UPDATABLE = ("title", "content", "audience", "is_active", "images")


def _to_model(row: RecurringAnnouncementRow) -> RecurringAnnouncement:
    return RecurringAnnouncement(
        id=row.id,
        profile_slug=row.profile_slug,
        title=row.title,
        content=row.content,
        audience=row.audience,
        is_active=row.is_active,
        images=row.images or [],
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _dump_images(images: list[AnnouncementImage]) -> list[dict] | None:
    return [image.model_dump() for image in images] or None


class RecurringAnnouncementService:
    """Manages a profile's recurring announcements."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def _repo(self, action: str) -> AsyncIterator[RecurringAnnouncementRepository]:
        try:
            async with self.database.session() as session:
                yield RecurringAnnouncementRepository(session)
        except SQLAlchemyError as e:
            log.error("recurring_announcement_failed", action=action, error=str(e))
            raise translate_db_error(e, context="recurring_announcements") from e

    async def list_active(self, profile_slug: str) -> list[RecurringAnnouncement]:
        """Active entries of a profile, newest first."""
        async with self._repo("list_active") as repo:
            rows = await repo.list_active(profile_slug)
            return [_to_model(row) for row in rows]

    async def create(
        self,
        profile_slug: str,
        title: str,
        content: str,
        audience: Audience = Audience.WARD,
        images: list[AnnouncementImage] | None = None,
    ) -> RecurringAnnouncement:
        async with self._repo("create") as repo:
            row = await repo.save(
                RecurringAnnouncementRow(
                    profile_slug=profile_slug,
                    title=title,
                    content=sanitize_html(content),
                    audience=Audience(audience).value,
                    is_active=True,
                    images=_dump_images(images or []),
                )
            )
            created = _to_model(row)
        log.info("recurring_announcement_created", id=created.id, profile_slug=profile_slug)
        return created

    async def update(self, announcement_id: str, **changes: object) -> RecurringAnnouncement:
        """Apply field changes and bump ``updated_at``.

        Raises:
            KeyError: A change names a field that cannot be updated.
            NotFoundError: No entry with this id.
        """
        unknown = set(changes) - set(_UPDATABLE)
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))

        async with self._repo("update") as repo:
            row = await repo.get_by_id(announcement_id)
            if row is None:
                raise NotFoundError("Recurring announcement not found", context="recurring_announcements")
            for name, value in changes.items():
                if name == "content":
                    value = sanitize_html(str(value))
                elif name == "audience":
                    value = Audience(value).value
                elif name == "images":
                    value = _dump_images(
                        [AnnouncementImage.model_validate(image) for image in value or []]
                    )
                setattr(row, name, value)
            row.updated_at = datetime.now(UTC)
            await repo.save(row)
            updated = _to_model(row)
        log.info("recurring_announcement_updated", id=announcement_id, fields=sorted(changes))
        return updated

    async def deactivate(self, announcement_id: str) -> bool:
        """Soft delete; the row stays but is no longer offered."""
        async with self._repo("deactivate") as repo:
            deactivated = await repo.deactivate(announcement_id)
        log.info("recurring_announcement_deactivated", id=announcement_id, found=deactivated)
        return deactivated

    async def convert_to_recurring(
        self, announcement: Announcement, profile_slug: str
    ) -> RecurringAnnouncement:
        """Keep an existing announcement for future bulletins."""
        return await self.create(
            profile_slug,
            title=announcement.title,
            content=announcement.content,
            audience=announcement.audience,
            images=announcement.images,
        )

    async def announcements_for_new_bulletin(self, profile_slug: str) -> list[Announcement]:
        """Fresh announcement copies of every active entry, each with a new id."""
        return [
            Announcement(
                title=entry.title,
                content=entry.content,
                audience=entry.audience,
                images=entry.images,
            )
            for entry in await self.list_active(profile_slug)
        ]
