from __future__ import annotations

import csv
import io
import logging
import math
import re
from dataclasses import dataclass, field
from typing import IO, Callable, Dict, Iterable, List, Optional, Union

import pandas as pd

from emigration.datasets import Category, DatasetDescriptor
from emigration.errors import CsvImportError, CsvParseError, DuplicateYearError, StoreError, ValidationError

logger = logging.getLogger(__name__)

YEAR_HEADERS = ("year", "Year", "YEAR")

CsvSource = Union[str, bytes, IO[str], IO[bytes]]
Row = Dict[str, str]


@dataclass
class ImportResult:
    persisted: int = 0
    skipped: int = 0
    ids: List[str] = field(default_factory=list)


def check_csv_filename(filename: Optional[str]) -> None:
    if not filename or not str(filename).lower().endswith(".csv"):
        raise ValidationError("Please select a CSV file")


def _read_text(source: CsvSource) -> str:
    if hasattr(source, "read"):
        source = source.read()  # type: ignore[union-attr]
    if isinstance(source, bytes):
        try:
            return source.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CsvParseError(f"CSV file is not valid UTF-8: {exc}") from exc
    return str(source)


def parse_csv(source: CsvSource) -> List[Row]:
    """Parse delimited text into one dict per data row, all values as raw text.

    Blank lines are skipped. Rows with surplus cells are accepted when every surplus
    cell is blank (a trailing comma); any other ragged row is a parse error.
    """
    text = _read_text(source)
    if not text.strip():
        raise CsvParseError("CSV file is empty")

    header = next(csv.reader(io.StringIO(text)), [])
    n = len(header)
    bad_lines: List[List[str]] = []

    def _trim(bad_line: List[str]) -> Optional[List[str]]:
        if n and all(not cell.strip() for cell in bad_line[n:]):
            return bad_line[:n]
        bad_lines.append(bad_line)
        return None

    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            index_col=False,
            on_bad_lines=_trim,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, csv.Error) as exc:
        raise CsvParseError(f"Error parsing CSV file: {exc}") from exc

    if bad_lines:
        raise CsvParseError(f"Error parsing CSV file: {len(bad_lines)} malformed row(s), first: {bad_lines[0]!r}")

    df = df.fillna("")
    df.columns = [str(c).strip() for c in df.columns]
    rows = df.to_dict(orient="records")
    logger.info("Parsed CSV: %d row(s), headers=%s", len(rows), list(df.columns))
    return rows


def coerce_count(value: object) -> int:
    """Numeric cast for a category cell. Blank, non-numeric or negative -> 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        num = float(value)
    else:
        s = str(value).strip().replace(",", "")
        if not s:
            return 0
        try:
            num = float(s)
        except ValueError:
            return 0
    if math.isnan(num) or math.isinf(num) or num < 0:
        return 0
    return int(round(num))


def coerce_year(value: object) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    s = str(value).strip()
    if not s:
        return None
    try:
        num = float(s)
    except ValueError:
        return None
    if math.isnan(num) or math.isinf(num) or not num.is_integer():
        return None
    return int(num)


def resolve_year(row: Row) -> Optional[int]:
    for header in YEAR_HEADERS:
        raw = row.get(header)
        if raw is not None and str(raw).strip():
            return coerce_year(raw)
    for header, raw in row.items():
        if _normalize_header(header) == "year" and str(raw).strip():
            return coerce_year(raw)
    return None


def _split_camel(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r" \1", name).strip()


def _normalize_header(name: str) -> str:
    return re.sub(r"[^0-9a-z]", "", str(name).lower())


def header_variants(category: Category) -> List[str]:
    candidates = [
        category.field,
        category.label,
        category.field.lower(),
        category.field[:1].upper() + category.field[1:],
        _split_camel(category.field),
        re.sub(r"\s+", " ", category.label).strip().lower(),
    ]
    for alias in category.aliases:
        candidates.extend([alias, alias.lower()])
    out: List[str] = []
    for c in candidates:
        if c and c not in out:
            out.append(c)
    return out


def resolve_value(row: Row, category: Category) -> int:
    for header in header_variants(category):
        raw = row.get(header)
        if raw is not None and str(raw).strip():
            return coerce_count(raw)
    wanted = {_normalize_header(h) for h in header_variants(category)}
    for header, raw in row.items():
        if _normalize_header(header) in wanted and str(raw).strip():
            return coerce_count(raw)
    return 0


def normalize_rows(descriptor: DatasetDescriptor, rows: Iterable[Row]) -> List[Dict[str, int]]:
    records: List[Dict[str, int]] = []
    for row in rows:
        year = resolve_year(row)
        if year is None:
            continue
        record = {"year": year}
        for category in descriptor.categories:
            record[category.field] = resolve_value(row, category)
        records.append(record)
    return records


def import_csv(
    descriptor: DatasetDescriptor,
    source: CsvSource,
    create: Callable[[Dict[str, int]], str],
    *,
    filename: Optional[str] = None,
) -> ImportResult:
    """Parse, normalize and persist rows one at a time in file order.

    Nothing is written when parsing fails. A write failure stops the import and
    leaves earlier rows in place.
    """
    if filename is not None:
        check_csv_filename(filename)
    rows = parse_csv(source)
    records = normalize_rows(descriptor, rows)
    result = ImportResult(skipped=len(rows) - len(records))
    if result.skipped:
        logger.info("%s import: skipped %d row(s) without a numeric year", descriptor.key, result.skipped)

    for record in records:
        try:
            result.ids.append(create(record))
        except (StoreError, DuplicateYearError) as exc:
            logger.error("%s import stopped after %d row(s): %s", descriptor.key, result.persisted, exc)
            raise CsvImportError(
                f"Import stopped after {result.persisted} record(s): {exc}",
                persisted=result.persisted,
                cause=exc if isinstance(exc, StoreError) else None,
            ) from exc
        result.persisted += 1

    logger.info("%s import: persisted %d record(s)", descriptor.key, result.persisted)
    return result
