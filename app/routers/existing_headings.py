from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.routers.workspace_common import get_account_scope, get_actor_id, invoke, read_upload
from app.schemas import (
    ActiveSnapshotResponse,
    SnapshotItemRead,
    SnapshotRead,
    SnapshotUploadResponse,
)
from app.services import existing_headings as snapshot_service
from app.services.spreadsheet_reader import read_rows

router = APIRouter(prefix="/accounts/{account_id}/existing-headings", tags=["Existing Headings"])


@router.post("/upload", response_model=SnapshotUploadResponse, status_code=status.HTTP_201_CREATED)
def upload_existing_headings(
    file: UploadFile = File(...),
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> SnapshotUploadResponse:
    data = read_upload(file)
    rows = invoke(lambda: read_rows(data, file.filename))
    result = invoke(
        lambda: snapshot_service.upload_snapshot(
            db,
            account_id,
            rows,
            file_name=file.filename,
            actor_user_id=actor_id,
        )
    )
    return SnapshotUploadResponse(
        snapshot_id=result.snapshot.id,
        items_count=len(result.items),
        items=[SnapshotItemRead.model_validate(item) for item in result.items],
    )


@router.get("/active", response_model=ActiveSnapshotResponse)
def get_active_snapshot(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> ActiveSnapshotResponse:
    active = snapshot_service.get_active_snapshot(db, account_id)
    if active is None:
        return ActiveSnapshotResponse(snapshot=None, items=[])
    snapshot = SnapshotRead.model_validate(active.snapshot).model_copy(update={"items_count": len(active.items)})
    return ActiveSnapshotResponse(
        snapshot=snapshot,
        items=[SnapshotItemRead.model_validate(item) for item in active.items],
    )


@router.get("/snapshots", response_model=list[SnapshotRead])
def list_snapshots(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> list[SnapshotRead]:
    return [
        SnapshotRead.model_validate(summary.snapshot).model_copy(update={"items_count": summary.items_count})
        for summary in snapshot_service.list_snapshots(db, account_id)
    ]
