# ABOUTME: Pydantic models for bulletin data structures.
# ABOUTME: Defines BulletinDocument, announcements, agenda items, submissions, templates, and drafts.

import re
from datetime import UTC, date, datetime
from enum import Enum
from typing import Annotated, Literal
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

ISO_DATE_PATTERN = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")


def new_id() -> str:
    """Synthetic identifier for client-created entries."""
    return uuid4().hex


class Audience(str, Enum):
    """Target audience of an announcement. Closed set."""

    WARD = "ward"
    RELIEF_SOCIETY = "relief_society"
    ELDERS_QUORUM = "elders_quorum"
    YOUNG_WOMEN = "young_women"
    YOUNG_MEN = "young_men"
    YOUTH = "youth"
    PRIMARY = "primary"
    STAKE = "stake"
    OTHER = "other"


class SubmissionStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AnnouncementImage(BaseModel):
    image_id: str
    hide_on_print: bool = False


class Announcement(BaseModel):
    """A bulletin announcement. Content is sanitized HTML."""

    id: str = Field(default_factory=new_id)
    title: str = ""
    content: str = ""
    category: str = "general"
    audience: Audience = Audience.WARD
    images: list[AnnouncementImage] = []

    @field_validator("id", mode="before")
    @classmethod
    def _ensure_id(cls, value: str | None) -> str:
        return str(value) if value else new_id()

    @field_validator("audience", mode="before")
    @classmethod
    def _default_audience(cls, value: str | None) -> str:
        return value or Audience.WARD.value

    @field_validator("category", mode="before")
    @classmethod
    def _default_category(cls, value: str | None) -> str:
        return value or "general"


class Meeting(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    time: str = ""
    location: str = ""
    description: str = ""


class SpecialEvent(BaseModel):
    id: str = Field(default_factory=new_id)
    title: str = ""
    date: str = ""
    time: str = ""
    location: str = ""
    description: str = ""
    contact: str = ""


class SpeakerItem(BaseModel):
    type: Literal["speaker"] = "speaker"
    id: str = Field(default_factory=new_id)
    name: str = ""
    speaker_type: Literal["youth", "adult"] = "adult"


class MusicalItem(BaseModel):
    type: Literal["musical"] = "musical"
    id: str = Field(default_factory=new_id)
    label: str = ""
    hymn_number: str = ""
    hymn_title: str = ""
    performers: str = ""


class TestimonyItem(BaseModel):
    type: Literal["testimony"] = "testimony"
    id: str = Field(default_factory=new_id)
    note: str = ""


class SacramentItem(BaseModel):
    type: Literal["sacrament"] = "sacrament"
    id: str = Field(default_factory=new_id)


AgendaItem = Annotated[
    SpeakerItem | MusicalItem | TestimonyItem | SacramentItem,
    Field(discriminator="type"),
]


class Prayers(BaseModel):
    opening: str = ""
    closing: str = ""
    invocation: str = ""
    benediction: str = ""


class HymnSlot(BaseModel):
    number: str = ""
    title: str = ""
    type: Literal["hymn", "childrens"] = "hymn"


class MusicProgram(BaseModel):
    opening: HymnSlot = Field(default_factory=HymnSlot)
    sacrament: HymnSlot = Field(default_factory=HymnSlot)
    closing: HymnSlot = Field(default_factory=HymnSlot)


class Leadership(BaseModel):
    presiding: str = ""
    conducting: str = ""
    chorister: str = ""
    organist: str = ""


class LeadershipRosterEntry(BaseModel):
    title: str
    name: str = ""
    phone: str = ""


class MissionaryEntry(BaseModel):
    name: str = ""
    mission: str = ""
    email: str = ""
    phone: str = ""


class ImagePosition(BaseModel):
    """Background image focal point, in percent of width and height."""

    x: float = Field(default=50.0, ge=0, le=100)
    y: float = Field(default=50.0, ge=0, le=100)


DEFAULT_ROSTER_TITLES = (
    "Bishop",
    "1st Counselor",
    "2nd Counselor",
    "Executive Secretary",
    "Ward Clerk",
    "Elders Quorum President",
    "Relief Society President",
    "Young Women's President",
    "Primary President",
    "Sunday School President",
    "Ward Mission Leader",
    "Building Representative",
    "Temple & Family History",
)


def default_leadership_roster() -> list[LeadershipRosterEntry]:
    return [LeadershipRosterEntry(title=title) for title in DEFAULT_ROSTER_TITLES]


def _today_iso() -> str:
    return date.today().isoformat()


class BulletinDocument(BaseModel):
    """The weekly bulletin being edited."""

    ward_name: str = ""
    date: str = Field(default_factory=_today_iso)
    meeting_type: str = "sacrament"
    theme: str = ""
    leadership_message: str = ""
    announcements: list[Announcement] = []
    meetings: list[Meeting] = []
    special_events: list[SpecialEvent] = []
    agenda: list[AgendaItem] = []
    prayers: Prayers = Field(default_factory=Prayers)
    music_program: MusicProgram = Field(default_factory=MusicProgram)
    leadership: Leadership = Field(default_factory=Leadership)
    leadership_roster: list[LeadershipRosterEntry] = Field(default_factory=default_leadership_roster)
    missionaries: list[MissionaryEntry] = []
    background_image: str | None = None
    image_position: ImagePosition | None = None

    @field_validator("date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        if not ISO_DATE_PATTERN.fullmatch(value):
            raise ValueError("date must be YYYY-MM-DD")
        date.fromisoformat(value)
        return value

    @model_validator(mode="after")
    def _single_sacrament_item(self) -> "BulletinDocument":
        if self.meeting_type != "sacrament":
            return self
        sacrament_seen = False
        agenda = []
        for item in self.agenda:
            if isinstance(item, SacramentItem):
                if sacrament_seen:
                    continue
                sacrament_seen = True
            agenda.append(item)
        if not sacrament_seen:
            agenda.insert(0, SacramentItem())
        self.agenda = agenda
        return self

    def sacrament_items(self) -> list[SacramentItem]:
        return [item for item in self.agenda if isinstance(item, SacramentItem)]


class Submission(BaseModel):
    """An externally submitted announcement awaiting review."""

    id: str
    profile_slug: str = ""
    title: str = ""
    content: str = ""
    category: str = "general"
    audience: Audience = Audience.WARD
    submitter_name: str = ""
    submitter_email: str = ""
    submitter_phone: str = ""
    status: SubmissionStatus = SubmissionStatus.PENDING
    notes: str | None = None
    created_at: datetime | None = None

    @field_validator("audience", mode="before")
    @classmethod
    def _default_audience(cls, value: str | None) -> str:
        return value or Audience.WARD.value


class RecurringAnnouncement(BaseModel):
    """An announcement re-added to every new bulletin of a profile."""

    id: str
    profile_slug: str
    title: str = ""
    content: str = ""
    audience: Audience = Audience.WARD
    is_active: bool = True
    images: list[AnnouncementImage] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None


class Template(BaseModel):
    """Named snapshot used as a starting point for new bulletins."""

    id: str
    name: str
    data: BulletinDocument


class DraftRecord(BaseModel):
    """Most recent unsaved copy of the document."""

    document: BulletinDocument
    bulletin_id: str | None = None
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class OfflineBulletin(BaseModel):
    """A bulletin kept locally because the remote save did not complete."""

    id: str
    owner_id: str
    document: BulletinDocument
    saved_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class UserDefaults(BaseModel):
    """Per-field defaults seeded into blank bulletins. Each is optional."""

    ward_name: str | None = None
    presiding: str | None = None
    conducting: str | None = None
    chorister: str | None = None
    organist: str | None = None
    leadership_roster: list[LeadershipRosterEntry] | None = None
    missionaries: list[MissionaryEntry] | None = None


class OwnerProfile(BaseModel):
    """Owner lookup result for a public profile handle."""

    owner_id: str
    profile_slug: str | None = None
    active_bulletin_id: str | None = None


class StoredBulletin(BaseModel):
    """A bulletin as read back from the remote record service."""

    id: str
    slug: str
    owner_id: str | None
    meeting_date: str
    meeting_type: str
    created_at: datetime | None = None
    profile_slug: str | None = None
    document: BulletinDocument
