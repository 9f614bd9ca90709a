from __future__ import annotations

import logging
from typing import Callable, Optional, TypeVar

from fastapi import Depends, Header, HTTPException, Path, UploadFile, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.database import get_db
from app.schemas.workspace import PageMeta
from app.services.accounts import require_account
from app.services.pagination import Page
from app.services.spreadsheet_reader import check_upload_size
from app.services.workspace_errors import (
    IdentifierConflict,
    NotFound,
    SpreadsheetReadError,
    WorkspaceError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


def get_actor_id(x_actor_id: Optional[str] = Header(default=None)) -> Optional[str]:
    """Opaque identity of the acting user, used only for audit attribution."""
    if x_actor_id is None:
        return None
    return x_actor_id.strip() or None


def get_account_scope(
    account_id: int = Path(..., ge=1),
    db: Session = Depends(get_db),
) -> int:
    return invoke(lambda: require_account(db, account_id))


def error_status(exc: WorkspaceError) -> int:
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, IdentifierConflict):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, SpreadsheetReadError):
        return status.HTTP_400_BAD_REQUEST
    return status.HTTP_422_UNPROCESSABLE_ENTITY


def to_http_exception(exc: WorkspaceError) -> HTTPException:
    errors = {exc.field: [exc.message]} if exc.field else {}
    return HTTPException(
        status_code=error_status(exc),
        detail={"message": exc.message, "errors": errors},
    )


def invoke(call: Callable[[], T]) -> T:
    try:
        return call()
    except WorkspaceError as exc:
        if isinstance(exc, IdentifierConflict):
            logger.warning("identifier:conflict_surfaced entity=%s id=%s", exc.entity_type, exc.identifier)
        raise to_http_exception(exc) from exc


def read_upload(file: UploadFile) -> bytes:
    return invoke(lambda: _read_upload(file))


def _read_upload(file: UploadFile) -> bytes:
    # One byte past the limit is enough to know the upload is too large.
    data = file.file.read(get_settings().max_upload_bytes + 1)
    if not data:
        raise SpreadsheetReadError("Uploaded file is empty.")
    check_upload_size(len(data))
    return data


def page_meta(page: Page) -> PageMeta:
    return PageMeta(
        current_page=page.page,
        last_page=page.last_page,
        per_page=page.per_page,
        total=page.total,
    )
