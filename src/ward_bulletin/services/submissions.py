# ABOUTME: Review workflow for announcements submitted through the public form.
# ABOUTME: Approves or rejects single submissions and merges an audience group into the bulletin.

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError

from ward_bulletin.consolidation import merge_group_content
from ward_bulletin.db.models import AnnouncementSubmission
from ward_bulletin.db.repository import SubmissionRepository
from ward_bulletin.db.session import Database
from ward_bulletin.errors import AppError, NotFoundError, ValidationError, translate_db_error
from ward_bulletin.models import (
    Announcement,
    Audience,
    BulletinDocument,
    Submission,
    SubmissionStatus,
)
from ward_bulletin.security import sanitize_html, strip_tags

log = structlog.get_logger()


def _to_model(row: AnnouncementSubmission) -> Submission:
    return Submission(
        id=row.id,
        profile_slug=row.profile_slug,
        title=row.title,
        content=row.content,
        category=row.category,
        audience=row.audience,
        submitter_name=row.submitter_name,
        submitter_email=row.submitter_email,
        submitter_phone=row.submitter_phone,
        status=row.status,
        notes=row.notes,
        created_at=row.created_at,
    )


def submission_to_announcement(submission: Submission) -> Announcement:
    """Bulletin entry for one approved submission, with sanitized text."""
    return Announcement(
        title=strip_tags(submission.title.strip()),
        content=sanitize_html(submission.content.strip()),
        category=submission.category,
        audience=submission.audience,
    )


@dataclass
class BatchApprovalResult:
    """Outcome of approving every pending submission of one audience."""

    audience: Audience
    document: BulletinDocument
    approved_ids: list[str] = field(default_factory=list)
    failed_ids: list[str] = field(default_factory=list)
    announcement: Announcement | None = None
    added: bool = False

    @property
    def partial(self) -> bool:
        return bool(self.approved_ids) and bool(self.failed_ids)


class SubmissionService:
    """Moves submissions out of ``pending`` and into the bulletin."""

    def __init__(self, database: Database) -> None:
        self.database = database

    @asynccontextmanager
    async def _repo(self, action: str) -> AsyncIterator[SubmissionRepository]:
        try:
            async with self.database.session() as session:
                yield SubmissionRepository(session)
        except SQLAlchemyError as e:
            log.error("submission_update_failed", action=action, error=str(e))
            raise translate_db_error(e, context="submissions") from e

    async def list_for_profile(
        self, profile_slug: str, status: SubmissionStatus | None = None
    ) -> list[Submission]:
        async with self._repo("list_for_profile") as repo:
            rows = await repo.list_by_profile(profile_slug, status.value if status else None)
            return [_to_model(row) for row in rows]

    async def _transition(
        self, submission_id: str, status: SubmissionStatus, notes: str | None
    ) -> Submission:
        async with self._repo(status.value) as repo:
            row = await repo.get_by_id(submission_id)
            if row is None:
                raise NotFoundError("Submission not found", context="submissions")
            if row.status != SubmissionStatus.PENDING.value:
                raise ValidationError(
                    f"Submission is already {row.status}", context="submissions"
                )
            row.status = status.value
            row.notes = (notes or "").strip() or None
            await repo.save(row)
            submission = _to_model(row)
        log.info("submission_reviewed", id=submission_id, status=status.value)
        return submission

    async def approve(self, submission_id: str, notes: str | None = None) -> Submission:
        """Mark a pending submission approved.

        Raises:
            NotFoundError: Unknown submission id.
            ValidationError: The submission was already reviewed.
        """
        return await self._transition(submission_id, SubmissionStatus.APPROVED, notes)

    async def reject(self, submission_id: str, notes: str | None = None) -> Submission:
        return await self._transition(submission_id, SubmissionStatus.REJECTED, notes)

    async def approve_group(
        self,
        profile_slug: str,
        audience: Audience,
        document: BulletinDocument,
        notes: str | None = None,
    ) -> BatchApprovalResult:
        """Approve every pending submission of ``audience`` and merge them into one entry.

        Each submission is updated on its own. Only the ones that were
        approved are merged; failures are reported in the result. The merged
        entry is not appended when one with the same title and content is
        already on the bulletin.
        """
        audience = Audience(audience)
        async with self._repo("list_pending") as repo:
            pending = [
                _to_model(row)
                for row in await repo.list_pending_by_audience(profile_slug, audience.value)
            ]

        result = BatchApprovalResult(audience=audience, document=document)
        if not pending:
            log.info("approve_group_empty", profile_slug=profile_slug, audience=audience.value)
            return result

        approved: list[Submission] = []
        for submission in pending:
            try:
                approved.append(
                    await self._transition(submission.id, SubmissionStatus.APPROVED, notes)
                )
                result.approved_ids.append(submission.id)
            except AppError as e:
                log.warning(
                    "approve_group_item_failed",
                    id=submission.id,
                    code=e.code,
                    error=e.message,
                )
                result.failed_ids.append(submission.id)

        if approved:
            merged = Announcement(
                title="",
                content=merge_group_content(
                    submission_to_announcement(submission) for submission in approved
                ),
                category="general",
                audience=audience,
            )
            result.announcement = merged
            duplicate = any(
                existing.title == merged.title and existing.content == merged.content
                for existing in document.announcements
            )
            if duplicate:
                log.info("approve_group_duplicate_skipped", audience=audience.value)
            else:
                result.document = document.model_copy(
                    update={"announcements": [*document.announcements, merged]}
                )
                result.added = True

        log.info(
            "approve_group_complete",
            profile_slug=profile_slug,
            audience=audience.value,
            approved=len(result.approved_ids),
            failed=len(result.failed_ids),
            added=result.added,
        )
        return result
