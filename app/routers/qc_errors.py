from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.constants.workspace import RectificationStatus, ValidationStatus
from app.database import get_db
from app.routers.workspace_common import get_account_scope, get_actor_id, invoke, page_meta
from app.schemas import QcErrorCreate, QcErrorPage, QcErrorRead, QcErrorUpdate
from app.services import qc_errors as qc_error_service

settings = get_settings()

router = APIRouter(prefix="/accounts/{account_id}/qc-errors", tags=["QC Errors"])


@router.get("", response_model=QcErrorPage)
def list_qc_errors(
    rectification_status: Optional[RectificationStatus] = Query(default=None),
    validation_status: Optional[ValidationStatus] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> QcErrorPage:
    result = qc_error_service.list_qc_errors(
        db,
        account_id,
        rectification_status=rectification_status,
        validation_status=validation_status,
        page=page,
        per_page=per_page,
    )
    return QcErrorPage(errors=[QcErrorRead.model_validate(error) for error in result.items], meta=page_meta(result))


@router.post("", response_model=QcErrorRead, status_code=status.HTTP_201_CREATED)
def create_qc_error(
    request: QcErrorCreate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> QcErrorRead:
    return invoke(lambda: qc_error_service.create_qc_error(db, account_id, request, actor_user_id=actor_id))


@router.patch("/{error_id}", response_model=QcErrorRead)
def update_qc_error(
    error_id: int,
    request: QcErrorUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> QcErrorRead:
    return invoke(
        lambda: qc_error_service.update_qc_error(db, account_id, error_id, request, actor_user_id=actor_id)
    )


@router.delete("/{error_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_qc_error(
    error_id: int,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> None:
    invoke(lambda: qc_error_service.delete_qc_error(db, account_id, error_id, actor_user_id=actor_id))
