# ABOUTME: Service layer for remote records, submissions, and recurring announcements.
# ABOUTME: Services receive a Database and open one transaction per operation.

from ward_bulletin.services.records import RemoteRecordService, SavedBulletin
from ward_bulletin.services.recurring import RecurringAnnouncementService
from ward_bulletin.services.submissions import BatchApprovalResult, SubmissionService

__all__ = [
    "BatchApprovalResult",
    "RecurringAnnouncementService",
    "RemoteRecordService",
    "SavedBulletin",
    "SubmissionService",
]
