# ABOUTME: Editing session that reconciles the local draft with remote bulletin records.
# ABOUTME: Picks the load source by priority and pushes saves with retry, timeout, and offline fallback.

import asyncio
import time
from dataclasses import dataclass, field
from enum import Enum

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from ward_bulletin.auth import AuthProvider
from ward_bulletin.config import Settings, get_settings
from ward_bulletin.consolidation import consolidate_announcements
from ward_bulletin.drafts import DraftStore, TemplateStore
from ward_bulletin.errors import (
    AUTO_CLOSE_SECONDS,
    ERROR_MESSAGES,
    AppError,
    AuthenticationError,
    ErrorReporter,
    ErrorSeverity,
    NotFoundError,
    Notice,
    OperationTimeoutError,
    is_retryable,
)
from ward_bulletin.models import (
    Announcement,
    BulletinDocument,
    Leadership,
    OfflineBulletin,
    StoredBulletin,
    Template,
    UserDefaults,
    default_leadership_roster,
)
from ward_bulletin.security import sanitize_html
from ward_bulletin.services.records import LOCAL_ID_PREFIX, RemoteRecordService, SavedBulletin
from ward_bulletin.services.recurring import RecurringAnnouncementService

log = structlog.get_logger()

OFFLINE_WARNING = (
    "Bulletin saved locally due to connection issues. It will sync when connection is restored."
)


class LoadSource(str, Enum):
    """Where the document shown at editor start came from."""

    DRAFT = "draft"
    TEMPLATE = "template"
    REMOTE = "remote"
    BLANK = "blank"


@dataclass
class LoadResult:
    source: LoadSource
    document: BulletinDocument
    bulletin_id: str | None
    has_unsaved_changes: bool


class SaveStatus(str, Enum):
    SAVED = "saved"
    OFFLINE = "offline"
    AUTH_REQUIRED = "auth_required"
    UNAVAILABLE = "unavailable"


@dataclass
class SaveOutcome:
    status: SaveStatus
    notice: Notice
    bulletin_id: str | None = None
    error: BaseException | None = None

    @property
    def saved(self) -> bool:
        return self.status == SaveStatus.SAVED


@dataclass
class SyncResult:
    """Offline entries pushed by a manual sync, keyed by their local id."""

    synced: dict[str, str] = field(default_factory=dict)
    failed: list[str] = field(default_factory=list)


class BulletinEditor:
    """One editing session over a single in-memory bulletin.

    Every mutation is mirrored into the draft store so a crash or reload
    loses nothing. The remote record service is optional; without it the
    editor still works locally and saves report the service as unavailable.
    """

    def __init__(
        self,
        drafts: DraftStore,
        templates: TemplateStore,
        auth: AuthProvider,
        records: RemoteRecordService | None = None,
        recurring: RecurringAnnouncementService | None = None,
        settings: Settings | None = None,
        reporter: ErrorReporter | None = None,
    ) -> None:
        self.drafts = drafts
        self.templates = templates
        self.auth = auth
        self.records = records
        self.recurring = recurring
        self.settings = settings or get_settings()
        self.reporter = reporter or ErrorReporter()

        self.document = BulletinDocument()
        self.bulletin_id: str | None = None
        self.has_unsaved_changes = False

    # Loading

    def _loaded(
        self,
        source: LoadSource,
        document: BulletinDocument,
        bulletin_id: str | None,
        unsaved: bool,
    ) -> LoadResult:
        self.document = document
        self.bulletin_id = bulletin_id
        self.has_unsaved_changes = unsaved
        log.info("bulletin_loaded", source=source.value, bulletin_id=bulletin_id)
        return LoadResult(source, document, bulletin_id, unsaved)

    def _blank(self) -> BulletinDocument:
        defaults = self.drafts.get_defaults()
        return BulletinDocument(
            ward_name=defaults.ward_name or "",
            leadership=Leadership(
                presiding=defaults.presiding or "",
                conducting=defaults.conducting or "",
                chorister=defaults.chorister or "",
                organist=defaults.organist or "",
            ),
            leadership_roster=defaults.leadership_roster or default_leadership_roster(),
            missionaries=defaults.missionaries or [],
        )

    async def _remote_active(self) -> StoredBulletin | None:
        if self.records is None:
            return None
        user = await self.auth.current_user()
        if user is None:
            return None
        try:
            owner = await self.records.get_owner(user.id)
            if owner is None or not owner.active_bulletin_id:
                return None
            bulletin = await self.records.get_bulletin_by_id(owner.active_bulletin_id)
        except AppError as e:
            self.reporter.handle(e, component="editor", action="load_remote", severity=ErrorSeverity.LOW)
            return None
        if bulletin is None or bulletin.owner_id != user.id:
            return None
        return bulletin

    async def load(self) -> LoadResult:
        """Pick the starting document: draft, then active template, then remote active bulletin, then blank."""
        draft = self.drafts.load_draft()
        if draft is not None:
            return self._loaded(LoadSource.DRAFT, draft.document, draft.bulletin_id, unsaved=True)

        template_id = self.templates.get_active_template_id()
        if template_id:
            template = self.templates.get_template(template_id)
            if template is not None:
                return self._loaded(LoadSource.TEMPLATE, template.data, None, unsaved=False)
            log.warning("active_template_missing", template_id=template_id)

        remote = await self._remote_active()
        if remote is not None:
            self.drafts.clear_draft()
            return self._loaded(LoadSource.REMOTE, remote.document, remote.id, unsaved=False)

        return self._loaded(LoadSource.BLANK, self._blank(), None, unsaved=False)

    def create_blank(self) -> BulletinDocument:
        """Start over from a blank document seeded with defaults."""
        self.drafts.clear_draft()
        self._loaded(LoadSource.BLANK, self._blank(), None, unsaved=False)
        return self.document

    async def new_bulletin(self, profile_slug: str | None = None) -> BulletinDocument:
        """Blank document plus the profile's active recurring announcements."""
        document = self.create_blank()
        if self.recurring is None or not profile_slug:
            return document
        try:
            recurring = await self.recurring.announcements_for_new_bulletin(profile_slug)
        except AppError as e:
            self.reporter.handle(e, component="editor", action="new_bulletin", severity=ErrorSeverity.LOW)
            return document
        if recurring:
            self.document = document.model_copy(update={"announcements": recurring})
            log.info("recurring_announcements_added", count=len(recurring))
        return self.document

    async def load_bulletin(self, bulletin_id: str) -> BulletinDocument:
        """Replace the current document with a saved bulletin."""
        if self.records is None:
            raise NotFoundError("Remote records are not configured", context="load_bulletin")
        bulletin = await self.records.get_bulletin_by_id(bulletin_id)
        if bulletin is None:
            raise NotFoundError("Bulletin not found", context="load_bulletin")
        self.drafts.clear_draft()
        self._loaded(LoadSource.REMOTE, bulletin.document, bulletin.id, unsaved=False)
        return self.document

    # Templates and defaults

    def select_template(self, template_id: str | None) -> Template | None:
        """Make a template active and load it. None deselects."""
        if template_id is None:
            self.templates.set_active_template_id(None)
            return None
        template = self.templates.get_template(template_id)
        if template is None:
            raise NotFoundError("Template not found", context="templates")
        self.templates.set_active_template_id(template.id)
        self.drafts.clear_draft()
        self._loaded(LoadSource.TEMPLATE, template.data, None, unsaved=False)
        return template

    def save_as_template(self, name: str) -> Template:
        return self.templates.save_template(name.strip() or "Untitled template", self.document)

    def remember_defaults(self) -> UserDefaults:
        """Store the current ward name, leaders, roster, and missionaries as defaults."""
        document = self.document
        defaults = UserDefaults(
            ward_name=document.ward_name or None,
            presiding=document.leadership.presiding or None,
            conducting=document.leadership.conducting or None,
            chorister=document.leadership.chorister or None,
            organist=document.leadership.organist or None,
            leadership_roster=document.leadership_roster or None,
            missionaries=document.missionaries or None,
        )
        self.drafts.save_defaults(defaults)
        return defaults

    # Mutations

    def _replace(self, document: BulletinDocument) -> BulletinDocument:
        self.document = document
        self.has_unsaved_changes = True
        self.drafts.save_draft(document, self.bulletin_id)
        return document

    def update(self, **changes: object) -> BulletinDocument:
        """Change top-level document fields and revalidate."""
        unknown = set(changes) - set(BulletinDocument.model_fields)
        if unknown:
            raise KeyError(", ".join(sorted(unknown)))
        data = self.document.model_dump()
        data.update(changes)
        return self._replace(BulletinDocument.model_validate(data))

    def add_announcement(self, announcement: Announcement) -> Announcement:
        entry = announcement.model_copy(update={"content": sanitize_html(announcement.content)})
        self._replace(
            self.document.model_copy(update={"announcements": [*self.document.announcements, entry]})
        )
        return entry

    def remove_announcement(self, announcement_id: str) -> bool:
        remaining = [a for a in self.document.announcements if a.id != announcement_id]
        if len(remaining) == len(self.document.announcements):
            return False
        self._replace(self.document.model_copy(update={"announcements": remaining}))
        return True

    def consolidate(self) -> BulletinDocument:
        """Merge announcements into one entry per audience."""
        before = len(self.document.announcements)
        consolidated = consolidate_announcements(self.document.announcements)
        log.info("announcements_consolidated", before=before, after=len(consolidated))
        return self._replace(self.document.model_copy(update={"announcements": consolidated}))

    # Saving

    async def _save_with_retry(
        self, owner_id: str, document: BulletinDocument, bulletin_id: str | None
    ) -> SavedBulletin:
        retrying = AsyncRetrying(
            retry=retry_if_exception(is_retryable),
            stop=stop_after_attempt(self.settings.save_max_attempts),
            wait=wait_exponential(
                multiplier=self.settings.save_retry_base_seconds,
                max=self.settings.save_retry_max_wait_seconds,
            ),
            before_sleep=lambda retry_state: log.warning(
                "save_retry",
                attempt=retry_state.attempt_number,
                wait=retry_state.next_action.sleep,
            ),
            reraise=True,
        )
        return await retrying(self.records.save_bulletin, owner_id, document, bulletin_id)

    async def _point_active(self, owner_id: str, bulletin_id: str) -> None:
        """Make the bulletin the one shown publicly. A failure is only reported."""
        try:
            await self.records.set_active_bulletin_id(owner_id, bulletin_id)
        except AppError as e:
            self.reporter.handle(
                e, component="editor", action="set_active_bulletin_id", severity=ErrorSeverity.LOW
            )

    def _keep_offline(
        self, owner_id: str, document: BulletinDocument, error: BaseException
    ) -> SaveOutcome:
        offline_id = self.bulletin_id or f"{LOCAL_ID_PREFIX}{time.time_ns() // 1_000_000}"
        self.drafts.add_offline(OfflineBulletin(id=offline_id, owner_id=owner_id, document=document))
        self.bulletin_id = offline_id
        self.drafts.save_draft(document, offline_id)
        self.reporter.handle(error, component="editor", action="save_bulletin")
        return SaveOutcome(
            SaveStatus.OFFLINE,
            Notice("warning", OFFLINE_WARNING, AUTO_CLOSE_SECONDS[ErrorSeverity.HIGH]),
            bulletin_id=offline_id,
            error=error,
        )

    def _require_sign_in(self, notice: Notice) -> SaveOutcome:
        self.drafts.stash_pending(self.document)
        self.drafts.save_draft(self.document, self.bulletin_id)
        return SaveOutcome(SaveStatus.AUTH_REQUIRED, notice, bulletin_id=self.bulletin_id)

    async def save(self) -> SaveOutcome:
        """Push the document to the remote record service.

        Never reports success unless the remote write finished. A timeout or
        a final failure keeps the document in the offline list instead.
        """
        if self.records is None:
            log.warning("save_unavailable")
            return SaveOutcome(
                SaveStatus.UNAVAILABLE, Notice("error", ERROR_MESSAGES["SERVICE_UNAVAILABLE"])
            )

        user = await self.auth.current_user()
        if user is None:
            log.info("save_requires_sign_in")
            return self._require_sign_in(Notice("info", "Please sign in to save your bulletin.", None))

        try:
            await self.auth.refresh_session()
        except AuthenticationError:
            notice = self.reporter.handle(
                AuthenticationError(ERROR_MESSAGES["SESSION_EXPIRED"], context="save"),
                component="editor",
                action="refresh_session",
                severity=ErrorSeverity.HIGH,
            )
            return self._require_sign_in(notice)

        self.drafts.set_last_owner_id(user.id)
        document = self.document
        previous_id = self.bulletin_id
        try:
            saved = await asyncio.wait_for(
                self._save_with_retry(user.id, document, previous_id),
                timeout=self.settings.save_timeout_seconds,
            )
        except TimeoutError:
            log.error("save_timed_out", timeout_seconds=self.settings.save_timeout_seconds)
            return self._keep_offline(
                user.id, document, OperationTimeoutError("Save operation timed out", context="save")
            )
        except (AppError, OSError) as e:
            log.error("save_failed", error=str(e))
            return self._keep_offline(user.id, document, e)

        await self._point_active(user.id, saved.id)
        self.bulletin_id = saved.id
        self.has_unsaved_changes = False
        self.drafts.clear_draft()
        self.drafts.remove_offline(saved.id)
        if previous_id and previous_id != saved.id:
            self.drafts.remove_offline(previous_id)

        message = "Bulletin saved successfully!" if saved.created else "Bulletin updated successfully!"
        return SaveOutcome(
            SaveStatus.SAVED,
            Notice("success", message, AUTO_CLOSE_SECONDS[ErrorSeverity.LOW]),
            bulletin_id=saved.id,
        )

    async def resume_after_sign_in(self) -> SaveOutcome | None:
        """Restore the document stashed before sign-in and save it again."""
        pending = self.drafts.pop_pending()
        if pending is None:
            return None
        log.info("pending_draft_restored")
        self._replace(pending)
        return await self.save()

    async def sync_offline(self, owner_id: str | None = None) -> SyncResult:
        """Retry every offline bulletin of the owner once.

        Afterwards the owner's active bulletin points at the synced copy of the
        bulletin being edited, or else at the most recently queued entry.
        """
        result = SyncResult()
        if self.records is None:
            return result
        if owner_id is None:
            user = await self.auth.current_user()
            owner_id = user.id if user else self.drafts.get_last_owner_id()
        if owner_id is None:
            log.info("sync_offline_no_owner")
            return result

        current_id = self.bulletin_id
        for entry in self.drafts.list_offline(owner_id):
            try:
                saved = await self.records.save_bulletin(owner_id, entry.document, entry.id)
            except AppError as e:
                log.warning("offline_sync_failed", id=entry.id, error=e.message)
                result.failed.append(entry.id)
                continue
            self.drafts.remove_offline(entry.id)
            result.synced[entry.id] = saved.id
            if self.bulletin_id == entry.id:
                self.bulletin_id = saved.id

        if result.synced:
            active_id = result.synced.get(current_id) or list(result.synced.values())[-1]
            await self._point_active(owner_id, active_id)

        log.info("offline_sync_complete", synced=len(result.synced), failed=len(result.failed))
        return result
