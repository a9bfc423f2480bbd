# ABOUTME: Main package for the ward bulletin editor and publishing service.
# ABOUTME: Exports settings, the document model, consolidation, and the editing session.

from ward_bulletin.config import get_settings
from ward_bulletin.consolidation import consolidate_announcements
from ward_bulletin.editor import BulletinEditor, LoadSource, SaveStatus
from ward_bulletin.models import Announcement, Audience, BulletinDocument

__all__ = [
    "get_settings",
    "consolidate_announcements",
    "Announcement",
    "Audience",
    "BulletinDocument",
    "BulletinEditor",
    "LoadSource",
    "SaveStatus",
]
