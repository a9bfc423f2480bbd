# ABOUTME: Database module initialization.
# ABOUTME: Exports ORM models and the Database session owner for the persistence layer.

from ward_bulletin.db.models import (
    AnnouncementSubmission,
    Base,
    Bulletin,
    KeyedField,
    RecurringAnnouncement,
    User,
)
from ward_bulletin.db.session import Database

__all__ = [
    "AnnouncementSubmission",
    "Base",
    "Bulletin",
    "Database",
    "KeyedField",
    "RecurringAnnouncement",
    "User",
]
