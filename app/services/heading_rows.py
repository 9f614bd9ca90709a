"""Column resolution for heading and beforeproof spreadsheets.

Rows arrive as plain cell sequences. The first row is treated as a header when it
contains one of the recognized name-column headers; otherwise every row is data and
cells are read positionally.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, TypeVar

from app.constants.workspace import HeadingStatus, WorkflowStage
from app.services.families import normalize_families, split_families, with_context_family

E = TypeVar("E", bound=Enum)

NAME_HEADERS = ("heading_name", "heading", "classification", "name")
ID_HEADERS = ("heading_id", "classification_id", "id")

_HEADER_STRIP_PATTERN = re.compile(r"[^a-z0-9_]")
_DIGITS_PATTERN = re.compile(r"^\d+$")

# (synonyms, positional fallback index) per field of a production heading sheet.
_IMPORT_COLUMNS: Mapping[str, tuple[tuple[str, ...], Optional[int]]] = {
    "heading_name": (NAME_HEADERS, 0),
    "heading_id": (ID_HEADERS, 1),
    "families": (("family", "families"), 3),
    "grouping_family": (("grouping_family", "grouping"), 4),
    "supported_link": (("supported_link", "site_link", "url"), 6),
    "workflow_stage": (("workflow_stage",), None),
    "status": (("status", "heading_type"), 10),
    "rank_points": (("rank_points",), 4),
    "heading_type": (("heading_type",), None),
    "source_status": (("source_status",), None),
    "source_updated_at": (("source_updated_at",), None),
    "definition": (("definition",), 2),
    "aliases": (("aliases",), None),
    "category": (("category",), 2),
    "companies": (("companies", "company_type"), 5),
}

# Same for a beforeproof ("existing headings") sheet.
_SNAPSHOT_COLUMNS: Mapping[str, tuple[tuple[str, ...], Optional[int]]] = {
    "heading_name": (NAME_HEADERS, 0),
    "heading_id": (ID_HEADERS, 1),
    "definition": (("definition",), 2),
    "category": (("category",), 3),
    "rank_points": (("rank_points",), 4),
    "family": (("family",), 5),
    "company_type": (("company_type",), 6),
    "profile_description": (("profile_description",), 7),
    "site_link": (("site_link", "url"), 8),
    "quality": (("quality",), 9),
    "source_last_updated": (("source_last_updated",), 10),
}


@dataclass
class HeadingImportRow:
    heading_name: str
    heading_id: Optional[int] = None
    families: list[str] = field(default_factory=list)
    grouping_family: Optional[str] = None
    supported_link: Optional[str] = None
    workflow_stage: Optional[WorkflowStage] = None
    status: HeadingStatus = HeadingStatus.ADDITIONAL
    rank_points: Optional[str] = None
    heading_type: Optional[str] = None
    source_status: Optional[str] = None
    source_updated_at: Optional[str] = None
    definition: Optional[str] = None
    aliases: Optional[str] = None
    category: Optional[str] = None
    companies: Optional[str] = None


@dataclass
class SnapshotRow:
    heading_name: str
    heading_id: Optional[int] = None
    rank_points: Optional[str] = None
    definition: Optional[str] = None
    category: Optional[str] = None
    family: Optional[str] = None
    company_type: Optional[str] = None
    profile_description: Optional[str] = None
    site_link: Optional[str] = None
    quality: Optional[str] = None
    source_last_updated: Optional[str] = None

    @property
    def is_ranked(self) -> bool:
        return bool(self.rank_points and self.rank_points.strip())


def normalize_header(value: Any) -> str:
    normalized = str(value if value is not None else "").strip().lower()
    normalized = normalized.replace("-", "_").replace(" ", "_")
    return _HEADER_STRIP_PATTERN.sub("", normalized)


def build_header_map(header_row: Sequence[Any]) -> dict[str, int]:
    header_map: dict[str, int] = {}
    for index, value in enumerate(header_row):
        key = normalize_header(value)
        if key:
            header_map[key] = index
    return header_map


def records_to_rows(records: Sequence[Mapping[str, Any]]) -> list[list[Any]]:
    """Flatten keyed records into a header row followed by value rows."""
    columns: list[str] = []
    for record in records:
        for key in record:
            if key not in columns:
                columns.append(key)
    return [list(columns), *([record.get(column) for column in columns] for record in records)]


def split_header(
    rows: Sequence[Sequence[Any]] | Sequence[Mapping[str, Any]],
) -> tuple[dict[str, int], Sequence[Sequence[Any]]]:
    """Return the header map and the data rows; an empty map means positional reading."""
    if not rows:
        return {}, []
    if isinstance(rows[0], Mapping):
        rows = records_to_rows(rows)  # type: ignore[arg-type]
    header_map = build_header_map(rows[0])
    if any(name in header_map for name in NAME_HEADERS):
        return header_map, rows[1:]
    return {}, rows


def to_nullable_string(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (datetime, date, time)):
        value = value.isoformat()
    elif isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


def to_nullable_int(value: Optional[str]) -> Optional[int]:
    if value is None or not _DIGITS_PATTERN.match(value):
        return None
    return int(value)


def normalize_enum(value: Optional[str], enum_cls: type[E], default: Optional[E]) -> Optional[E]:
    """Case-insensitive match against the allowed values, else ``default``."""
    if value is None:
        return default
    lowered = value.strip().lower()
    for member in enum_cls:
        if member.value.lower() == lowered:
            return member
    return default


def read_cell(
    row: Sequence[Any],
    header_map: Mapping[str, int],
    keys: Sequence[str],
    fallback_index: Optional[int],
) -> Optional[str]:
    """Read a field by header synonym, or by position when the sheet has no header."""
    if header_map:
        for key in keys:
            if key in header_map:
                return _cell(row, header_map[key])
        return None
    if fallback_index is None:
        return None
    return _cell(row, fallback_index)


def _cell(row: Sequence[Any], index: int) -> Optional[str]:
    return to_nullable_string(row[index] if index < len(row) else None)


def _read_fields(
    row: Sequence[Any],
    header_map: Mapping[str, int],
    columns: Mapping[str, tuple[tuple[str, ...], Optional[int]]],
) -> dict[str, Optional[str]]:
    return {
        name: read_cell(row, header_map, synonyms, fallback)
        for name, (synonyms, fallback) in columns.items()
    }


def parse_heading_rows(
    rows: Sequence[Sequence[Any]] | Sequence[Mapping[str, Any]],
    context_family: Optional[str] = None,
) -> list[HeadingImportRow]:
    header_map, data_rows = split_header(rows)
    parsed: list[HeadingImportRow] = []
    for row in data_rows:
        values = _read_fields(row, header_map, _IMPORT_COLUMNS)
        heading_name = values["heading_name"]
        if heading_name is None:
            continue

        families = with_context_family(
            normalize_families(split_families(values["families"])),
            context_family,
        )
        parsed.append(
            HeadingImportRow(
                heading_name=heading_name,
                heading_id=to_nullable_int(values["heading_id"]),
                families=families,
                grouping_family=values["grouping_family"],
                supported_link=values["supported_link"],
                workflow_stage=normalize_enum(values["workflow_stage"], WorkflowStage, None),
                status=normalize_enum(values["status"], HeadingStatus, HeadingStatus.ADDITIONAL),
                rank_points=values["rank_points"],
                heading_type=values["heading_type"],
                source_status=values["source_status"],
                source_updated_at=values["source_updated_at"],
                definition=values["definition"],
                aliases=values["aliases"],
                category=values["category"],
                companies=values["companies"],
            )
        )
    return parsed


def parse_snapshot_rows(rows: Sequence[Sequence[Any]] | Sequence[Mapping[str, Any]]) -> list[SnapshotRow]:
    header_map, data_rows = split_header(rows)
    parsed: list[SnapshotRow] = []
    for row in data_rows:
        values = _read_fields(row, header_map, _SNAPSHOT_COLUMNS)
        heading_name = values.pop("heading_name")
        if heading_name is None:
            continue
        raw_id = values.pop("heading_id")
        parsed.append(SnapshotRow(heading_name=heading_name, heading_id=to_nullable_int(raw_id), **values))
    return parsed


__all__ = [
    "NAME_HEADERS",
    "HeadingImportRow",
    "SnapshotRow",
    "normalize_header",
    "build_header_map",
    "records_to_rows",
    "split_header",
    "to_nullable_string",
    "to_nullable_int",
    "normalize_enum",
    "read_cell",
    "parse_heading_rows",
    "parse_snapshot_rows",
]
