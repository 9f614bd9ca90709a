from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.constants.workspace import QcStatus
from app.database import get_db
from app.routers.workspace_common import get_account_scope, get_actor_id, invoke, page_meta
from app.schemas import (
    PdmCreate,
    PdmPage,
    PdmQcStatusUpdate,
    PdmRead,
    PdmRectificationUpdate,
    PdmStatusEventRead,
    PdmUpdate,
    PdmUploadedUpdate,
    PdmValidationUpdate,
)
from app.services import pdm_service
from app.services.status_events import list_status_events

settings = get_settings()

router = APIRouter(prefix="/accounts/{account_id}/pdms", tags=["PDMs"])


@router.get("", response_model=PdmPage)
def list_pdms(
    qc_status: Optional[QcStatus] = Query(default=None),
    uploaded: Optional[bool] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> PdmPage:
    result = pdm_service.list_pdms(
        db, account_id, qc_status=qc_status, uploaded=uploaded, page=page, per_page=per_page
    )
    return PdmPage(pdms=[PdmRead.model_validate(pdm) for pdm in result.items], meta=page_meta(result))


@router.post("", response_model=PdmRead, status_code=status.HTTP_201_CREATED)
def create_pdm(
    request: PdmCreate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(lambda: pdm_service.create_pdm(db, account_id, request, actor_user_id=actor_id))


@router.get("/{pdm_id}", response_model=PdmRead)
def get_pdm(
    pdm_id: int,
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(lambda: pdm_service.get_pdm(db, account_id, pdm_id))


@router.patch("/{pdm_id}", response_model=PdmRead)
def update_pdm(
    pdm_id: int,
    request: PdmUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(lambda: pdm_service.update_pdm(db, account_id, pdm_id, request, actor_user_id=actor_id))


@router.delete("/{pdm_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_pdm(
    pdm_id: int,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> None:
    invoke(lambda: pdm_service.delete_pdm(db, account_id, pdm_id, actor_user_id=actor_id))


@router.patch("/{pdm_id}/uploaded", response_model=PdmRead)
def update_uploaded(
    pdm_id: int,
    request: PdmUploadedUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(
        lambda: pdm_service.set_uploaded(db, account_id, pdm_id, request.uploaded, actor_user_id=actor_id)
    )


@router.patch("/{pdm_id}/qc-status", response_model=PdmRead)
def update_qc_status(
    pdm_id: int,
    request: PdmQcStatusUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(
        lambda: pdm_service.set_qc_status(db, account_id, pdm_id, request.qc_status, actor_user_id=actor_id)
    )


@router.patch("/{pdm_id}/rectification", response_model=PdmRead)
def update_rectification(
    pdm_id: int,
    request: PdmRectificationUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(
        lambda: pdm_service.set_rectification_status(
            db, account_id, pdm_id, request.rectification_status, actor_user_id=actor_id
        )
    )


@router.patch("/{pdm_id}/validation", response_model=PdmRead)
def update_validation(
    pdm_id: int,
    request: PdmValidationUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> PdmRead:
    return invoke(
        lambda: pdm_service.set_validation_status(
            db, account_id, pdm_id, request.validation_status, actor_user_id=actor_id
        )
    )


@router.get("/{pdm_id}/status-events", response_model=list[PdmStatusEventRead])
def list_pdm_status_events(
    pdm_id: int,
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> list[PdmStatusEventRead]:
    return invoke(lambda: list_status_events(db, account_id, pdm_id))
