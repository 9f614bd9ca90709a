from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.workspace import ActivityEntityType
from app.models import ActivityLog
from app.services.pagination import Page, paginate


def log_activity(
    db: Session,
    account_id: int,
    action: str,
    details: str | None = None,
    actor_user_id: str | None = None,
    entity_type: ActivityEntityType | str | None = None,
    entity_id: str | int | None = None,
) -> ActivityLog:
    """Append an activity entry inside the caller's transaction; the caller commits."""
    if isinstance(entity_type, ActivityEntityType):
        entity_type = entity_type.value

    entry = ActivityLog(
        account_id=account_id,
        action=action,
        details=details,
        actor_user_id=actor_user_id,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
    )
    db.add(entry)
    return entry


def list_activity(
    db: Session,
    account_id: int,
    *,
    entity_type: ActivityEntityType | None = None,
    page: int = 1,
    per_page: int = 50,
) -> Page[ActivityLog]:
    statement = (
        select(ActivityLog)
        .where(ActivityLog.account_id == account_id)
        .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
    )
    if entity_type is not None:
        statement = statement.where(ActivityLog.entity_type == entity_type.value)
    return paginate(db, statement, page=page, per_page=per_page)


__all__ = ["log_activity", "list_activity"]
