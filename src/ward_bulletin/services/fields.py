# ABOUTME: Typed codec between BulletinDocument attributes and keyed string blobs.
# ABOUTME: Every auxiliary field is encoded and decoded through one table at the storage boundary.

from dataclasses import dataclass
from typing import Any

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ward_bulletin.models import (
    Announcement,
    BulletinDocument,
    ImagePosition,
    Leadership,
    LeadershipRosterEntry,
    Meeting,
    MissionaryEntry,
    MusicProgram,
    Prayers,
    SpecialEvent,
)
from ward_bulletin.models import AgendaItem as AgendaItemType

log = structlog.get_logger()


@dataclass(frozen=True)
class FieldCodec:
    """Maps one stored field name to a document attribute.

    ``structured`` fields are JSON encoded; the rest are stored as raw strings.
    """

    name: str
    attr: str
    adapter: TypeAdapter
    structured: bool = True

    def encode(self, value: Any) -> str:
        if not self.structured:
            return value or ""
        return self.adapter.dump_json(value).decode("utf-8")

    def decode(self, raw: str) -> Any:
        if not self.structured:
            return raw
        return self.adapter.validate_json(raw)


_text = TypeAdapter(str)

FIELD_CODECS: tuple[FieldCodec, ...] = (
    FieldCodec("ward_name", "ward_name", _text, structured=False),
    FieldCodec("theme", "theme", _text, structured=False),
    FieldCodec("bishopric", "leadership_message", _text, structured=False),
    FieldCodec("announcements", "announcements", TypeAdapter(list[Announcement])),
    FieldCodec("meetings", "meetings", TypeAdapter(list[Meeting])),
    FieldCodec("events", "special_events", TypeAdapter(list[SpecialEvent])),
    FieldCodec("agenda", "agenda", TypeAdapter(list[AgendaItemType])),
    FieldCodec("prayers", "prayers", TypeAdapter(Prayers)),
    FieldCodec("music", "music_program", TypeAdapter(MusicProgram)),
    FieldCodec("leadership", "leadership", TypeAdapter(Leadership)),
    FieldCodec("ward_leadership", "leadership_roster", TypeAdapter(list[LeadershipRosterEntry])),
    FieldCodec("missionaries", "missionaries", TypeAdapter(list[MissionaryEntry])),
    FieldCodec("image", "background_image", TypeAdapter(str | None)),
    FieldCodec("image_position", "image_position", TypeAdapter(ImagePosition | None)),
)

FIELD_NAMES = tuple(codec.name for codec in FIELD_CODECS)


def field_prefix(slug: str) -> str:
    return f"bulletin-{slug}-"


def field_key(slug: str, name: str) -> str:
    """Storage key of one auxiliary field, e.g. ``bulletin-abc-announcements``."""
    return f"{field_prefix(slug)}{name}"


def encode_document(document: BulletinDocument) -> dict[str, str]:
    """Field name to stored string for every auxiliary field."""
    return {codec.name: codec.encode(getattr(document, codec.attr)) for codec in FIELD_CODECS}


def decode_fields(values: dict[str, str]) -> dict[str, Any]:
    """Decode stored strings into document attribute values.

    Unknown names are ignored. A value that fails to decode is logged and
    skipped so the document falls back to that attribute's default.
    """
    decoded: dict[str, Any] = {}
    for codec in FIELD_CODECS:
        if codec.name not in values:
            continue
        try:
            decoded[codec.attr] = codec.decode(values[codec.name])
        except PydanticValidationError as e:
            log.warning("keyed_field_decode_failed", field=codec.name, error=str(e))
    return decoded


def document_from_fields(
    values: dict[str, str], meeting_date: str, meeting_type: str
) -> BulletinDocument:
    """Rebuild a document from its row columns and keyed fields."""
    data = decode_fields(values)
    data["date"] = meeting_date
    data["meeting_type"] = meeting_type
    return BulletinDocument.model_validate(data)
