from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.config import get_settings
from app.constants.workspace import ActivityEntityType
from app.database import get_db
from app.routers.workspace_common import get_account_scope, page_meta
from app.schemas import ActivityLogPage, ActivityLogRead
from app.services.activity_log import list_activity

settings = get_settings()

router = APIRouter(prefix="/accounts/{account_id}/activity-logs", tags=["Activity Log"])


@router.get("", response_model=ActivityLogPage)
def list_activity_logs(
    entity_type: Optional[ActivityEntityType] = Query(default=None),
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=settings.default_page_size, ge=1, le=settings.max_page_size),
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> ActivityLogPage:
    result = list_activity(db, account_id, entity_type=entity_type, page=page, per_page=per_page)
    return ActivityLogPage(
        activity=[ActivityLogRead.model_validate(entry) for entry in result.items],
        meta=page_meta(result),
    )
