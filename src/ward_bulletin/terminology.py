# ABOUTME: Ward vs. branch wording for labels shown around a bulletin.
# ABOUTME: Pure lookup keyed by the stored unit type preference.

from dataclasses import dataclass
from enum import Enum


class UnitType(str, Enum):
    WARD = "ward"
    BRANCH = "branch"


@dataclass(frozen=True)
class Terminology:
    unit: str
    unit_lowercase: str
    higher_unit: str
    higher_unit_lowercase: str
    leader: str
    leadership_body: str
    unit_possessive: str

    @property
    def unit_name_label(self) -> str:
        return f"{self.unit} Name"

    @property
    def leadership_message_label(self) -> str:
        return f"{self.leadership_body} Message"


TERMINOLOGY: dict[UnitType, Terminology] = {
    UnitType.WARD: Terminology(
        unit="Ward",
        unit_lowercase="ward",
        higher_unit="Stake",
        higher_unit_lowercase="stake",
        leader="Bishop",
        leadership_body="Bishopric",
        unit_possessive="Ward's",
    ),
    UnitType.BRANCH: Terminology(
        unit="Branch",
        unit_lowercase="branch",
        higher_unit="District/Stake",
        higher_unit_lowercase="district/stake",
        leader="Branch President",
        leadership_body="Branch Presidency",
        unit_possessive="Branch's",
    ),
}


def parse_unit_type(value: str | None) -> UnitType:
    """Stored preference to UnitType, falling back to ward."""
    try:
        return UnitType(value) if value else UnitType.WARD
    except ValueError:
        return UnitType.WARD


def terminology_for(unit_type: UnitType | str | None) -> Terminology:
    return TERMINOLOGY[parse_unit_type(unit_type.value if isinstance(unit_type, UnitType) else unit_type)]


_FIXED_AUDIENCE_LABELS = {
    "relief_society": "Relief Society",
    "elders_quorum": "Elders Quorum",
    "young_women": "Young Women",
    "young_men": "Young Men",
    "youth": "Youth",
    "primary": "Primary",
    "other": "Other",
}


def audience_display_name(audience: str, unit_type: UnitType | str | None = None) -> str:
    """Human label for an announcement audience."""
    terms = terminology_for(unit_type)
    if audience in ("ward", "branch"):
        return terms.unit
    if audience in ("stake", "district"):
        return terms.higher_unit
    return _FIXED_AUDIENCE_LABELS.get(audience, audience)
