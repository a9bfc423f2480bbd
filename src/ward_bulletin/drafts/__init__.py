# ABOUTME: Local editor state module initialization.
# ABOUTME: Exports the draft store, its file-backed storage, and the template store.

from ward_bulletin.drafts.store import DraftStore, LocalStorage
from ward_bulletin.drafts.templates import TemplateStore

__all__ = ["DraftStore", "LocalStorage", "TemplateStore"]
