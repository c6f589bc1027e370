from __future__ import annotations

from typing import Optional


class EmigrationError(Exception):
    status_code: int = 500


class ValidationError(EmigrationError):
    status_code = 400


class CsvParseError(EmigrationError):
    status_code = 400


class UnknownDatasetError(EmigrationError):
    status_code = 404


class EditLockError(EmigrationError):
    status_code = 409


class DuplicateYearError(EmigrationError):
    status_code = 409


STORE_STATUS = {
    "not-found": 404,
    "permission-denied": 403,
    "invalid-argument": 400,
    "unavailable": 503,
}


class StoreError(EmigrationError):
    """Failure reported by a document store backend.

    ``code`` mirrors the short error codes cloud document stores attach
    (``not-found``, ``permission-denied``, ``invalid-argument``, ``unavailable``).
    """

    def __init__(self, message: str, *, code: str = "unavailable") -> None:
        super().__init__(message)
        self.code = code

    @property
    def status_code(self) -> int:  # type: ignore[override]
        return STORE_STATUS.get(self.code, 500)


class CsvImportError(EmigrationError):
    """A store write failed part-way through an import; earlier rows stay persisted."""

    status_code = 502

    def __init__(self, message: str, *, persisted: int, cause: Optional[StoreError] = None) -> None:
        super().__init__(message)
        self.persisted = persisted
        self.cause = cause


def describe_store_error(exc: Exception) -> str:
    code = getattr(exc, "code", None)
    if not code:
        return "Database error"
    if code == "not-found":
        return "Record not found in database"
    if code == "permission-denied":
        return "Permission denied - check store access rules"
    if code == "invalid-argument":
        return "Invalid data format - check field names"
    return f"Database error: {code}"
