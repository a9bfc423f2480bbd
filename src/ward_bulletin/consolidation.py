# ABOUTME: Groups announcements by audience and merges each group into a single entry.
# ABOUTME: Per-item titles survive as inline HTML headers inside the merged content.

from collections.abc import Iterable, Sequence
from typing import Protocol

from ward_bulletin.models import Announcement, AnnouncementImage, Audience, new_id

HEADER_STYLE = (
    "font-size: 18px; font-weight: 600; margin-bottom: 8px; color: #111827; margin-top: 16px;"
)
BLOCK_SEPARATOR = "<br><br>"


class TitledContent(Protocol):
    title: str
    content: str


def _header(title: str) -> str:
    return f'<h4 style="{HEADER_STYLE}">{title}</h4>'


def merge_group_content(items: Iterable[TitledContent]) -> str:
    """Join title/content pairs into one HTML body.

    Content is assumed to be sanitized already. Items with neither a title
    nor content are skipped.
    """
    blocks: list[str] = []
    for item in items:
        title = (item.title or "").strip()
        content = (item.content or "").strip()
        if not title and not content:
            continue
        blocks.append((_header(title) if title else "") + content)
    return BLOCK_SEPARATOR.join(blocks)


def _audience_of(entry: Announcement) -> Audience:
    return entry.audience or Audience.WARD


def consolidate_announcements(entries: Sequence[Announcement]) -> list[Announcement]:
    """One announcement per audience, in order of first appearance.

    Single-member groups are returned unchanged. Larger groups become a new
    untitled "general" entry whose content holds every member as a header
    and body block. This replaces the input; there is no way to split back.
    """
    groups: dict[Audience, list[Announcement]] = {}
    for entry in entries:
        groups.setdefault(_audience_of(entry), []).append(entry)

    consolidated: list[Announcement] = []
    for audience, members in groups.items():
        if len(members) == 1:
            consolidated.append(members[0])
            continue

        images: list[AnnouncementImage] = []
        for member in members:
            images.extend(member.images)

        consolidated.append(
            Announcement(
                id=new_id(),
                title="",
                content=merge_group_content(members),
                category="general",
                audience=audience,
                images=images,
            )
        )
    return consolidated
