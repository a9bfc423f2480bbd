# ABOUTME: Named bulletin templates kept in local storage.
# ABOUTME: Supports list, save, rename, delete, and the active template pointer.

import time

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from ward_bulletin.drafts.store import LocalStorage
from ward_bulletin.models import BulletinDocument, Template

log = structlog.get_logger()

TEMPLATES_KEY = "templates"
ACTIVE_TEMPLATE_KEY = "active_template_id"

_template_list = TypeAdapter(list[Template])


class TemplateStore:
    """Templates are independent of any saved bulletin."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage

    def _load(self) -> list[Template]:
        raw = self.storage.get(TEMPLATES_KEY)
        if raw is None:
            return []
        try:
            return _template_list.validate_json(raw)
        except PydanticValidationError as e:
            log.warning("templates_parse_failed", error=str(e))
            return []

    def _store(self, templates: list[Template]) -> None:
        self.storage.set(TEMPLATES_KEY, _template_list.dump_json(templates).decode("utf-8"))

    def list_templates(self) -> list[Template]:
        return self._load()

    def get_template(self, template_id: str) -> Template | None:
        return next((t for t in self._load() if t.id == template_id), None)

    def save_template(self, name: str, document: BulletinDocument) -> Template:
        templates = self._load()
        template = Template(id=f"tmpl-{time.time_ns() // 1_000_000}", name=name, data=document)
        templates.append(template)
        self._store(templates)
        log.info("template_saved", id=template.id, name=name)
        return template

    def rename_template(self, template_id: str, name: str) -> Template | None:
        templates = self._load()
        renamed = None
        for index, template in enumerate(templates):
            if template.id == template_id:
                renamed = template.model_copy(update={"name": name})
                templates[index] = renamed
        self._store(templates)
        return renamed

    def delete_template(self, template_id: str) -> None:
        self._store([t for t in self._load() if t.id != template_id])
        if self.get_active_template_id() == template_id:
            self.set_active_template_id(None)

    def get_active_template_id(self) -> str | None:
        return self.storage.get(ACTIVE_TEMPLATE_KEY)

    def set_active_template_id(self, template_id: str | None) -> None:
        if template_id is None:
            self.storage.remove(ACTIVE_TEMPLATE_KEY)
        else:
            self.storage.set(ACTIVE_TEMPLATE_KEY, template_id)
