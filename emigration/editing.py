from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from emigration.datasets import DatasetDescriptor
from emigration.errors import EditLockError, ValidationError
from emigration.service import DatasetService, record_from_form

logger = logging.getLogger(__name__)


@dataclass
class EditSession:
    """Row edit state for a records table: viewing, or editing exactly one row.

    Only one row may be open at a time; opening a second row while another is
    being edited raises ``EditLockError`` instead of silently switching rows.
    """

    editing_id: Optional[str] = None
    form: Dict[str, str] = field(default_factory=dict)

    @property
    def is_editing(self) -> bool:
        return self.editing_id is not None

    def is_locked(self, record_id: str) -> bool:
        return self.editing_id is not None and self.editing_id != record_id

    def begin(self, record: Mapping[str, Any], fields: List[str]) -> None:
        record_id = str(record.get("id"))
        if self.is_locked(record_id):
            raise EditLockError(f"Finish editing record {self.editing_id} first")
        form = {}
        for f in ["year"] + list(fields):
            value = record.get(f)
            form[f] = "0" if value is None or value == "" else str(value)
        self.editing_id = record_id
        self.form = form
        logger.debug("editing record %s", record_id)

    def set_field(self, name: str, value: object) -> None:
        if not self.is_editing:
            raise ValidationError("No record is being edited")
        self.form[name] = "" if value is None else str(value)

    def to_record(self, descriptor: DatasetDescriptor) -> Dict[str, int]:
        return record_from_form(descriptor, self.form)

    def cancel(self) -> None:
        self.editing_id = None
        self.form = {}

    def save(self, service: DatasetService) -> Dict[str, int]:
        if not self.is_editing:
            raise ValidationError("No record is being edited")
        # On failure the session stays open so the user can retry or cancel.
        record = service.update(self.editing_id, self.form)
        self.cancel()
        return record

    def delete(self, service: DatasetService, record_id: str, *, confirmed: bool) -> None:
        if not confirmed:
            raise ValidationError("Delete requires confirmation")
        service.delete(record_id)
        if self.editing_id == record_id:
            self.cancel()
