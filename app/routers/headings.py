from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.config import get_settings
from app.constants.workspace import HeadingStatus, WorkflowStage
from app.database import get_db
from app.routers.workspace_common import get_account_scope, get_actor_id, invoke, page_meta, read_upload
from app.schemas import (
    HeadingImportResponse,
    HeadingPage,
    HeadingRead,
    HeadingUpdate,
    ImportBatchRead,
)
from app.services import headings as heading_service
from app.services.heading_import import import_headings
from app.services.spreadsheet_reader import read_rows

settings = get_settings()

router = APIRouter(prefix="/accounts/{account_id}/headings", tags=["Headings"])


@router.get("", response_model=HeadingPage)
def list_headings(
    workflow_stage: Optional[WorkflowStage] = Query(default=None),
    status_filter: Optional[HeadingStatus] = Query(default=None, alias="status"),
    family: Optional[str] = Query(default=None, max_length=255),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> HeadingPage:
    result = heading_service.list_headings(
        db,
        account_id,
        workflow_stage=workflow_stage,
        status=status_filter,
        family=family,
        page=page,
        per_page=per_page,
    )
    return HeadingPage(
        headings=[HeadingRead.model_validate(heading) for heading in result.items],
        meta=page_meta(result),
    )


@router.post("/import", response_model=HeadingImportResponse, status_code=status.HTTP_201_CREATED)
def import_heading_file(
    file: UploadFile = File(...),
    context_family: Optional[str] = Form(default=None, max_length=255),
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> HeadingImportResponse:
    data = read_upload(file)
    rows = invoke(lambda: read_rows(data, file.filename))
    result = invoke(
        lambda: import_headings(
            db,
            account_id,
            rows,
            file_name=file.filename or "upload",
            context_family=context_family,
            actor_user_id=actor_id,
        )
    )
    return HeadingImportResponse(
        batch_id=result.batch_id,
        headings_count=len(result.headings),
        headings=[HeadingRead.model_validate(heading) for heading in result.headings],
    )


@router.get("/families", response_model=list[str])
def list_families(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> list[str]:
    return heading_service.list_families(db, account_id)


@router.get("/import-batches", response_model=list[ImportBatchRead])
def list_import_batches(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> list[ImportBatchRead]:
    return [
        ImportBatchRead.model_validate(summary.batch).model_copy(update={"items_count": summary.items_count})
        for summary in heading_service.list_import_batches(db, account_id)
    ]


@router.patch("/{heading_id}", response_model=HeadingRead)
def update_heading(
    heading_id: int,
    request: HeadingUpdate,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> HeadingRead:
    changes = request.model_dump(exclude_unset=True)
    heading = invoke(
        lambda: heading_service.update_heading(db, account_id, heading_id, changes, actor_user_id=actor_id)
    )
    return HeadingRead.model_validate(heading)


@router.delete("/{heading_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_heading(
    heading_id: int,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> None:
    invoke(lambda: heading_service.delete_heading(db, account_id, heading_id, actor_user_id=actor_id))
