from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

ALL_YEARS = "All"


@dataclass(frozen=True)
class YearFilter:
    selected_year: Optional[int] = None

    @property
    def is_all(self) -> bool:
        return self.selected_year is None

    @property
    def label(self) -> str:
        return ALL_YEARS if self.selected_year is None else str(self.selected_year)


def _as_year(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    s = str(value).strip()
    if not s or s.lower() == ALL_YEARS.lower():
        return None
    try:
        return int(float(s))
    except (TypeError, ValueError):
        return None


def normalize_year_filter(raw: object) -> YearFilter:
    """Accept "All", None, "", an int or a numeric string.

    A year with no records is kept: it simply selects nothing.
    """
    if isinstance(raw, YearFilter):
        return raw
    if isinstance(raw, dict):
        raw = raw.get("selected_year")
    return YearFilter(selected_year=_as_year(raw))


def year_options(available_years: Iterable[int]) -> list:
    return [ALL_YEARS] + sorted({int(y) for y in available_years})
