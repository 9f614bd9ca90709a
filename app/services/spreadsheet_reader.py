from __future__ import annotations

import csv
import io
import logging
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Optional, Sequence

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from app.config import get_settings
from app.services.workspace_errors import SpreadsheetReadError

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm"}
TAB_SUFFIXES = {".tsv", ".tab"}


def check_upload_size(size: int) -> None:
    max_bytes = get_settings().max_upload_bytes
    if size > max_bytes:
        raise SpreadsheetReadError(f"Uploaded file exceeds the {max_bytes} byte size limit.")


def read_rows(data: bytes, filename: Optional[str]) -> list[list[Optional[str]]]:
    """Turn an uploaded spreadsheet into trimmed cell rows, blank rows dropped."""
    if not data:
        raise SpreadsheetReadError("Uploaded file is empty.")
    check_upload_size(len(data))

    if is_excel_file(filename):
        rows = _read_excel(data)
    else:
        rows = _read_delimited(data, delimiter=_resolve_delimiter(filename))

    if not rows:
        raise SpreadsheetReadError("Uploaded file contains no data.")
    logger.debug("spreadsheet:read file=%s rows=%d", filename, len(rows))
    return rows


def is_excel_file(filename: Optional[str]) -> bool:
    if not filename:
        return False
    return Path(filename).suffix.lower() in EXCEL_SUFFIXES


def _resolve_delimiter(filename: Optional[str]) -> str:
    if filename and Path(filename).suffix.lower() in TAB_SUFFIXES:
        return "\t"
    return ","


def _decode_bytes(data: bytes) -> str:
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise SpreadsheetReadError("Unable to decode file. Use UTF-8 encoding.")


def _read_delimited(data: bytes, *, delimiter: str) -> list[list[Optional[str]]]:
    reader = csv.reader(io.StringIO(_decode_bytes(data)), delimiter=delimiter)
    return [normalized for normalized in (_normalize_row(row) for row in reader) if normalized]


def _read_excel(data: bytes) -> list[list[Optional[str]]]:
    try:
        workbook = load_workbook(filename=io.BytesIO(data), read_only=True, data_only=True)
    except InvalidFileException as exc:
        raise SpreadsheetReadError("Uploaded Excel file is invalid.") from exc
    except Exception as exc:  # pragma: no cover - corrupted archives surface as assorted zip/xml errors
        raise SpreadsheetReadError("Unable to read the uploaded Excel file.") from exc

    try:
        sheet = workbook.active
        rows: list[list[Optional[str]]] = []
        for row in sheet.iter_rows(values_only=True):
            normalized = _normalize_row([_stringify_excel_cell(cell) for cell in row])
            if normalized:
                rows.append(normalized)
    finally:
        workbook.close()
    return rows


def _normalize_row(row: Sequence[str]) -> list[Optional[str]]:
    cells: list[Optional[str]] = [cell.strip() or None for cell in row]
    while cells and cells[-1] is None:
        cells.pop()
    return cells


def _stringify_excel_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


__all__ = ["check_upload_size", "read_rows", "is_excel_file"]
