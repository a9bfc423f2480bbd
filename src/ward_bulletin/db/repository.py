# ABOUTME: Repository classes for database access patterns.
# ABOUTME: Provides Bulletin, User, KeyedField, Submission, and RecurringAnnouncement repositories.

from collections.abc import Mapping, Sequence
from datetime import UTC, datetime

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from ward_bulletin.db.models import (
    AnnouncementSubmission,
    Bulletin,
    KeyedField,
    RecurringAnnouncement,
    User,
)


class BulletinRepository:
    """Repository for Bulletin rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, bulletin: Bulletin) -> Bulletin:
        """Save a bulletin (insert or update)."""
        self.session.add(bulletin)
        await self.session.flush()
        return bulletin

    async def get_by_id(self, bulletin_id: str) -> Bulletin | None:
        return await self.session.get(Bulletin, bulletin_id)

    async def get_for_owner(self, bulletin_id: str, owner_id: str) -> Bulletin | None:
        """Get a bulletin only if ``owner_id`` created it."""
        result = await self.session.execute(
            select(Bulletin).where(Bulletin.id == bulletin_id).where(Bulletin.created_by == owner_id)
        )
        return result.scalar_one_or_none()

    async def get_by_slug(self, slug: str) -> Bulletin | None:
        result = await self.session.execute(select(Bulletin).where(Bulletin.slug == slug))
        return result.scalar_one_or_none()

    async def list_by_owner(self, owner_id: str) -> Sequence[Bulletin]:
        """List an owner's bulletins, newest first."""
        result = await self.session.execute(
            select(Bulletin)
            .where(Bulletin.created_by == owner_id)
            .order_by(Bulletin.created_at.desc())
        )
        return result.scalars().all()

    async def get_latest_for_owner(self, owner_id: str) -> Bulletin | None:
        """Most recently created bulletin of an owner."""
        result = await self.session.execute(
            select(Bulletin)
            .where(Bulletin.created_by == owner_id)
            .order_by(Bulletin.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def delete(self, bulletin_id: str, owner_id: str) -> bool:
        """Delete an owner's bulletin. Returns True if deleted."""
        result = await self.session.execute(
            delete(Bulletin).where(Bulletin.id == bulletin_id).where(Bulletin.created_by == owner_id)
        )
        return result.rowcount > 0


class UserRepository:
    """Repository for User rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, user: User) -> User:
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_by_id(self, user_id: str) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_profile_slug(self, profile_slug: str) -> User | None:
        result = await self.session.execute(select(User).where(User.profile_slug == profile_slug))
        return result.scalar_one_or_none()

    async def set_active_bulletin_id(self, user_id: str, bulletin_id: str | None) -> bool:
        """Point the user's public link at a bulletin. Returns True if the user exists."""
        result = await self.session.execute(
            update(User).where(User.id == user_id).values(active_bulletin_id=bulletin_id)
        )
        return result.rowcount > 0

    async def set_profile_slug(self, user_id: str, profile_slug: str) -> bool:
        result = await self.session.execute(
            update(User).where(User.id == user_id).values(profile_slug=profile_slug)
        )
        return result.rowcount > 0


class KeyedFieldRepository:
    """Repository for per-owner keyed string blobs."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, owner_id: str, key: str) -> KeyedField | None:
        result = await self.session.execute(
            select(KeyedField).where(KeyedField.key == key).where(KeyedField.created_by == owner_id)
        )
        return result.scalar_one_or_none()

    async def upsert(self, owner_id: str, key: str, value: str) -> KeyedField:
        """Insert or overwrite the value stored under (key, owner)."""
        field = await self.get(owner_id, key)
        if field is None:
            field = KeyedField(key=key, value=value, created_by=owner_id)
            self.session.add(field)
        else:
            field.value = value
        await self.session.flush()
        return field

    async def upsert_many(self, owner_id: str, values: Mapping[str, str]) -> list[KeyedField]:
        """Upsert a batch of keys for one owner."""
        existing = {
            field.key: field
            for field in (
                await self.session.execute(
                    select(KeyedField)
                    .where(KeyedField.created_by == owner_id)
                    .where(KeyedField.key.in_(list(values)))
                )
            )
            .scalars()
            .all()
        }
        fields: list[KeyedField] = []
        for key, value in values.items():
            field = existing.get(key)
            if field is None:
                field = KeyedField(key=key, value=value, created_by=owner_id)
                self.session.add(field)
            else:
                field.value = value
            fields.append(field)
        await self.session.flush()
        return fields

    async def list_by_prefix(self, owner_id: str, prefix: str) -> Sequence[KeyedField]:
        result = await self.session.execute(
            select(KeyedField)
            .where(KeyedField.created_by == owner_id)
            .where(KeyedField.key.startswith(prefix, autoescape=True))
        )
        return result.scalars().all()

    async def delete_by_prefix(self, owner_id: str, prefix: str) -> int:
        result = await self.session.execute(
            delete(KeyedField)
            .where(KeyedField.created_by == owner_id)
            .where(KeyedField.key.startswith(prefix, autoescape=True))
        )
        return result.rowcount


class SubmissionRepository:
    """Repository for announcement submissions."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, submission: AnnouncementSubmission) -> AnnouncementSubmission:
        self.session.add(submission)
        await self.session.flush()
        return submission

    async def get_by_id(self, submission_id: str) -> AnnouncementSubmission | None:
        return await self.session.get(AnnouncementSubmission, submission_id)

    async def list_by_profile(
        self, profile_slug: str, status: str | None = None
    ) -> Sequence[AnnouncementSubmission]:
        """List submissions for a profile, newest first."""
        query = select(AnnouncementSubmission).where(
            AnnouncementSubmission.profile_slug == profile_slug
        )
        if status:
            query = query.where(AnnouncementSubmission.status == status)
        result = await self.session.execute(
            query.order_by(AnnouncementSubmission.created_at.desc())
        )
        return result.scalars().all()

    async def list_pending_by_audience(
        self, profile_slug: str, audience: str
    ) -> Sequence[AnnouncementSubmission]:
        """Pending submissions for one audience, oldest first."""
        result = await self.session.execute(
            select(AnnouncementSubmission)
            .where(AnnouncementSubmission.profile_slug == profile_slug)
            .where(AnnouncementSubmission.audience == audience)
            .where(AnnouncementSubmission.status == "pending")
            .order_by(AnnouncementSubmission.created_at)
        )
        return result.scalars().all()


class RecurringAnnouncementRepository:
    """Repository for recurring announcements."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save(self, announcement: RecurringAnnouncement) -> RecurringAnnouncement:
        self.session.add(announcement)
        await self.session.flush()
        return announcement

    async def get_by_id(self, announcement_id: str) -> RecurringAnnouncement | None:
        return await self.session.get(RecurringAnnouncement, announcement_id)

    async def list_active(self, profile_slug: str) -> Sequence[RecurringAnnouncement]:
        """Active recurring announcements of a profile, newest first."""
        result = await self.session.execute(
            select(RecurringAnnouncement)
            .where(RecurringAnnouncement.profile_slug == profile_slug)
            .where(RecurringAnnouncement.is_active.is_(True))
            .order_by(RecurringAnnouncement.created_at.desc())
        )
        return result.scalars().all()

    async def deactivate(self, announcement_id: str) -> bool:
        """Soft delete. Returns True if a row was updated."""
        result = await self.session.execute(
            update(RecurringAnnouncement)
            .where(RecurringAnnouncement.id == announcement_id)
            .values(is_active=False, updated_at=datetime.now(UTC))
        )
        return result.rowcount > 0
