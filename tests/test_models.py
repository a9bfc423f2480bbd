# ABOUTME: Tests for the bulletin document model and its invariants.
# ABOUTME: Validates sacrament agenda handling, id generation, audience defaults, and dates.

import pytest
from pydantic import ValidationError

from ward_bulletin import models
from ward_bulletin.models import (
    Announcement,
    Audience,
    BulletinDocument,
    SacramentItem,
    SpeakerItem,
    default_leadership_roster,
)


class TestBulletinDocument:
    """Tests for BulletinDocument."""

    def test_blank_document_has_one_sacrament_item(self) -> None:
        document = BulletinDocument()

        assert len(document.sacrament_items()) == 1
        assert isinstance(document.agenda[0], SacramentItem)

    def test_sacrament_inserted_first_when_missing(self) -> None:
        document = BulletinDocument(agenda=[SpeakerItem(name="Sister Ng")])

        assert [item.type for item in document.agenda] == ["sacrament", "speaker"]

    def test_duplicate_sacrament_items_collapse_to_first(self) -> None:
        first = SacramentItem()
        document = BulletinDocument(
            agenda=[SpeakerItem(name="A"), first, SacramentItem(), SpeakerItem(name="B")]
        )

        assert [item.type for item in document.agenda] == ["speaker", "sacrament", "speaker"]
        assert document.sacrament_items()[0].id == first.id

    def test_non_sacrament_meeting_keeps_agenda(self) -> None:
        document = BulletinDocument(meeting_type="fast_testimony_free", agenda=[])

        assert document.agenda == []

    def test_agenda_items_parse_by_type(self) -> None:
        document = BulletinDocument.model_validate(
            {
                "agenda": [
                    {"type": "speaker", "name": "Brother Diaz", "speaker_type": "youth"},
                    {"type": "testimony", "note": "Open to all"},
                    {"type": "sacrament"},
                ]
            }
        )

        assert [item.type for item in document.agenda] == ["speaker", "testimony", "sacrament"]
        assert isinstance(document.agenda[0], models.SpeakerItem)

    @pytest.mark.parametrize(
        "value", ["03/09/2025", "2025-W10-1", "2025-068", "20250309", "2025-02-30", "2025-3-9"]
    )
    def test_rejects_non_iso_date(self, value: str) -> None:
        with pytest.raises(ValidationError):
            BulletinDocument(date=value)

    def test_default_roster_titles(self) -> None:
        document = BulletinDocument()

        assert document.leadership_roster == default_leadership_roster()
        assert document.leadership_roster[0].title == "Bishop"


class TestAnnouncement:
    """Tests for Announcement."""

    def test_blank_id_is_generated(self) -> None:
        announcement = Announcement.model_validate({"id": "", "title": "Choir"})

        assert announcement.id

    def test_missing_audience_defaults_to_ward(self) -> None:
        announcement = Announcement.model_validate({"title": "Choir", "audience": ""})

        assert announcement.audience == Audience.WARD
        assert announcement.category == "general"

    def test_unknown_audience_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Announcement.model_validate({"title": "Choir", "audience": "bishopric_only"})
