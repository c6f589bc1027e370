from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

import pandas as pd

from emigration.aggregator import compute_summary
from emigration.config import Settings
from emigration.datasets import DatasetDescriptor
from emigration.errors import DuplicateYearError, ValidationError
from emigration.importer import CsvSource, ImportResult, coerce_count, coerce_year, import_csv
from emigration.store import DocumentStore

logger = logging.getLogger(__name__)


def record_from_form(descriptor: DatasetDescriptor, form: Mapping[str, Any]) -> Dict[str, int]:
    """Validate an add/edit form (text or numbers) and build a full record."""
    raw_year = form.get("year")
    if raw_year is None or not str(raw_year).strip():
        raise ValidationError("Year is required")
    year = coerce_year(raw_year)
    if year is None:
        raise ValidationError(f"Year must be a whole number, got {raw_year!r}")
    record = {"year": year}
    for f in descriptor.fields:
        record[f] = coerce_count(form.get(f))
    return record


class DatasetService:
    """Store-backed operations for one dataset page.

    The page never patches its local copy: every mutation is followed by ``load()``.
    """

    def __init__(self, store: DocumentStore, descriptor: DatasetDescriptor, settings: Optional[Settings] = None) -> None:
        self.store = store
        self.descriptor = descriptor
        self.settings = settings or Settings()

    @property
    def collection(self) -> str:
        return self.descriptor.collection

    def load(self) -> List[Dict[str, Any]]:
        docs = self.store.list(self.collection)
        return sorted(docs, key=lambda d: (coerce_year(d.get("year")) or 0, str(d.get("id", ""))))

    def _check_year(self, year: int, *, exclude_id: Optional[str] = None) -> None:
        if not self.settings.unique_years:
            return
        for doc in self.store.list(self.collection):
            if doc.get("id") != exclude_id and coerce_year(doc.get("year")) == year:
                raise DuplicateYearError(f"A {self.descriptor.title.lower()} record for {year} already exists")

    def _create(self, record: Dict[str, int]) -> str:
        self._check_year(record["year"])
        return self.store.create(self.collection, record)

    def add(self, form: Mapping[str, Any]) -> str:
        record = record_from_form(self.descriptor, form)
        doc_id = self._create(record)
        logger.info("%s: added record %s for %s", self.descriptor.key, doc_id, record["year"])
        return doc_id

    def update(self, record_id: str, form: Mapping[str, Any]) -> Dict[str, int]:
        record = record_from_form(self.descriptor, form)
        self._check_year(record["year"], exclude_id=record_id)
        self.store.update(self.collection, record_id, record)
        logger.info("%s: updated record %s", self.descriptor.key, record_id)
        return record

    def delete(self, record_id: str) -> None:
        self.store.delete(self.collection, record_id)
        logger.info("%s: deleted record %s", self.descriptor.key, record_id)

    def import_csv(self, source: CsvSource, filename: Optional[str] = None) -> ImportResult:
        return import_csv(self.descriptor, source, self._create, filename=filename)

    def summary(
        self,
        year_filter: object = None,
        *,
        records: Optional[List[Dict[str, Any]]] = None,
        with_charts: bool = True,
    ) -> Dict[str, Any]:
        """Summary over ``records`` when the caller already loaded them, else a fresh ``load()``."""
        docs = self.load() if records is None else records
        return compute_summary(self.descriptor, docs, year_filter, with_charts=with_charts)

    def export_frame(self, records: Optional[List[Dict[str, Any]]] = None) -> pd.DataFrame:
        cols = ["year"] + self.descriptor.fields
        docs = self.load() if records is None else records
        if not docs:
            return pd.DataFrame(columns=cols)
        df = pd.DataFrame(docs)
        for col in cols:
            if col not in df.columns:
                df[col] = 0
        return df[cols].fillna(0)
