from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.constants.workspace import (
    ActivityEntityType,
    QcStatus,
    RectificationStatus,
    ValidationStatus,
)
from app.models import Heading, QcError
from app.schemas.workspace import QcErrorCreate, QcErrorUpdate
from app.services.accounts import require_account
from app.services.activity_log import log_activity
from app.services.pagination import Page, paginate
from app.services.workspace_errors import HeadingOwnershipError, InvalidPayload, NotFound

logger = logging.getLogger(__name__)


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def get_qc_error(db: Session, account_id: int, error_id: int) -> QcError:
    error = db.execute(
        select(QcError)
        .where(QcError.account_id == account_id, QcError.id == error_id)
        .options(selectinload(QcError.heading))
    ).scalar_one_or_none()
    if error is None:
        raise NotFound("qc_error", error_id)
    return error


def list_qc_errors(
    db: Session,
    account_id: int,
    *,
    rectification_status: Optional[RectificationStatus] = None,
    validation_status: Optional[ValidationStatus] = None,
    page: int = 1,
    per_page: int = 50,
) -> Page[QcError]:
    statement = (
        select(QcError)
        .where(QcError.account_id == account_id)
        .options(selectinload(QcError.heading))
        .order_by(QcError.reported_at.desc(), QcError.id.desc())
    )
    if rectification_status is not None:
        statement = statement.where(QcError.rectification_status == rectification_status.value)
    if validation_status is not None:
        statement = statement.where(QcError.validation_status == validation_status.value)
    return paginate(db, statement, page=page, per_page=per_page)


def create_qc_error(
    db: Session,
    account_id: int,
    payload: QcErrorCreate,
    *,
    actor_user_id: Optional[str] = None,
) -> QcError:
    require_account(db, account_id)
    if payload.heading_id is not None:
        owned = db.execute(
            select(Heading.heading_id).where(
                Heading.account_id == account_id,
                Heading.heading_id == payload.heading_id,
            )
        ).scalar_one_or_none()
        if owned is None:
            raise HeadingOwnershipError([payload.heading_id], field="heading_id")

    error = QcError(
        account_id=account_id,
        heading_id=payload.heading_id,
        error_category=payload.error_category,
        comment=payload.comment,
        qc_status=QcStatus.ERROR.value,
        rectification_status=RectificationStatus.PENDING.value,
        validation_status=ValidationStatus.PENDING.value,
        reported_by_user_id=actor_user_id,
    )
    db.add(error)
    db.flush()
    log_activity(
        db,
        account_id,
        "qc_error.created",
        details=f"Created QC error {error.id}",
        actor_user_id=actor_user_id,
        entity_type=ActivityEntityType.QC_ERROR,
        entity_id=error.id,
    )
    db.commit()
    logger.info("qc_error:created account=%s error=%s heading=%s", account_id, error.id, error.heading_id)
    return get_qc_error(db, account_id, error.id)


def update_qc_error(
    db: Session,
    account_id: int,
    error_id: int,
    payload: QcErrorUpdate,
    *,
    actor_user_id: Optional[str] = None,
) -> QcError:
    changes = payload.model_dump(exclude_unset=True)
    error = get_qc_error(db, account_id, error_id)

    resolved_at = changes.get("resolved_at")
    if resolved_at is not None:
        resolved_at = _naive_utc(resolved_at)
        if resolved_at < _naive_utc(error.reported_at):
            raise InvalidPayload("Resolved time cannot precede the reported time.", field="resolved_at")

    for name in ("qc_status", "rectification_status", "validation_status"):
        if changes.get(name) is not None:
            setattr(error, name, changes[name].value)
    if "comment" in changes:
        error.comment = changes["comment"]
    if "resolved_at" in changes:
        error.resolved_at = resolved_at

    log_activity(
        db,
        account_id,
        "qc_error.updated",
        details=f"Updated QC error {error.id}",
        actor_user_id=actor_user_id,
        entity_type=ActivityEntityType.QC_ERROR,
        entity_id=error.id,
    )
    db.commit()
    logger.info("qc_error:updated account=%s error=%s fields=%s", account_id, error_id, sorted(changes))
    return get_qc_error(db, account_id, error_id)


def delete_qc_error(
    db: Session,
    account_id: int,
    error_id: int,
    *,
    actor_user_id: Optional[str] = None,
) -> None:
    error = get_qc_error(db, account_id, error_id)
    db.delete(error)
    log_activity(
        db,
        account_id,
        "qc_error.deleted",
        details=f"Deleted QC error {error_id}",
        actor_user_id=actor_user_id,
        entity_type=ActivityEntityType.QC_ERROR,
        entity_id=error_id,
    )
    db.commit()
    logger.info("qc_error:deleted account=%s error=%s", account_id, error_id)


__all__ = ["get_qc_error", "list_qc_errors", "create_qc_error", "update_qc_error", "delete_qc_error"]
