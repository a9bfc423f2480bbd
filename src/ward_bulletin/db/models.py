# ABOUTME: SQLAlchemy ORM models for the remote record store.
# ABOUTME: Defines users, bulletins, keyed field blobs, submissions, and recurring announcements.

from datetime import UTC, date, datetime
from uuid import uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def _uuid() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class User(Base):
    """An editor account with its public profile handle."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="editor")
    profile_slug: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    active_bulletin_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (Index("ix_users_profile_slug", profile_slug),)

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.profile_slug or '-'})>"


class Bulletin(Base):
    """Indexed part of a saved bulletin. Content lives in keyed fields."""

    __tablename__ = "bulletins"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    slug: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    meeting_date: Mapped[date] = mapped_column(Date, nullable=False)
    meeting_type: Mapped[str] = mapped_column(String(50), nullable=False)
    view_permission: Mapped[str] = mapped_column(String(20), nullable=False, default="public")
    created_by: Mapped[str | None] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (
        Index("ix_bulletins_slug", slug),
        Index("ix_bulletins_created_by_created_at", created_by, created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Bulletin {self.slug} ({self.meeting_date})>"


class KeyedField(Base):
    """A string blob keyed per owner, used for bulletin fields outside the row schema."""

    __tablename__ = "tokens"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    key: Mapped[str] = mapped_column(String(300), nullable=False)
    value: Mapped[str] = mapped_column(Text, nullable=False, default="")
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default="private")
    created_by: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (UniqueConstraint("key", "created_by", name="uq_tokens_key_created_by"),)

    def __repr__(self) -> str:
        return f"<KeyedField {self.key} ({len(self.value)} chars)>"


class AnnouncementSubmission(Base):
    """An announcement sent in through the public form, awaiting review."""

    __tablename__ = "announcement_submissions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_slug: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    audience: Mapped[str] = mapped_column(String(50), nullable=False, default="ward")
    date: Mapped[str | None] = mapped_column(String(20), nullable=True)
    submitter_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    submitter_email: Mapped[str] = mapped_column(String(320), nullable=False, default="")
    submitter_phone: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    status: Mapped[str] = mapped_column(
        Enum("pending", "approved", "rejected", name="submission_status_enum"),
        nullable=False,
        default="pending",
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (
        Index("ix_submissions_profile_slug_status", profile_slug, status),
    )

    def __repr__(self) -> str:
        return f"<AnnouncementSubmission {self.id[:8]} {self.audience} ({self.status})>"


class RecurringAnnouncement(Base):
    """An announcement automatically copied into new bulletins."""

    __tablename__ = "recurring_announcements"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    profile_slug: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(500), nullable=False, default="")
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    audience: Mapped[str] = mapped_column(String(50), nullable=False, default="ward")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    images: Mapped[list[dict] | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_now
    )

    __table_args__ = (Index("ix_recurring_profile_slug_active", profile_slug, is_active),)

    def __repr__(self) -> str:
        return f"<RecurringAnnouncement {self.id[:8]}: {self.title[:40]}>"
