"""PDM lifecycle: creation, edits, deletion and single-field status transitions.

Every mutation runs in one transaction, appends a status event carrying the
before/after status tuple and writes an activity log entry. Linking a heading to a
PDM moves it to ``assigned``; a heading that is no longer linked to any PDM of the
account falls back to ``supported`` or ``imported`` depending on its reference link.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from app.constants.workspace import ActivityEntityType, PdmStatusEventType, WorkflowStage
from app.models import Heading, Pdm, PdmHeading, PdmQcFeedback
from app.schemas.workspace import PdmCreate, PdmHeadingInput, PdmUpdate
from app.services.accounts import require_account
from app.services.activity_log import log_activity
from app.services.headings import heading_in_use
from app.services.identifiers import flush_allocated, next_pdm_id, run_with_identifier_retry
from app.services.pagination import Page, paginate
from app.services.status_events import record_status_event, status_snapshot
from app.services.workspace_errors import DuplicatePdmId, HeadingOwnershipError, NotFound

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("url", "type_of_proof", "description", "comment", "is_copro", "company_type")


def count_words(description: Optional[str]) -> int:
    if description is None:
        return 0
    return len(description.split())


def resolve_word_count(word_count: Optional[int], description: Optional[str]) -> int:
    if word_count is not None:
        return int(word_count)
    return count_words(description)


def get_pdm(db: Session, account_id: int, pdm_id: int) -> Pdm:
    pdm = db.execute(
        select(Pdm)
        .where(Pdm.account_id == account_id, Pdm.pdm_id == pdm_id)
        .options(
            selectinload(Pdm.pdm_headings).selectinload(PdmHeading.heading),
            selectinload(Pdm.qc_feedback).selectinload(PdmQcFeedback.errors),
        )
    ).scalar_one_or_none()
    if pdm is None:
        raise NotFound("pdm", pdm_id)
    return pdm


def list_pdms(
    db: Session,
    account_id: int,
    *,
    qc_status: Optional[str] = None,
    uploaded: Optional[bool] = None,
    page: int = 1,
    per_page: int = 50,
) -> Page[Pdm]:
    statement = (
        select(Pdm)
        .where(Pdm.account_id == account_id)
        .options(
            selectinload(Pdm.pdm_headings).selectinload(PdmHeading.heading),
            selectinload(Pdm.qc_feedback).selectinload(PdmQcFeedback.errors),
        )
        .order_by(Pdm.created_at.desc(), Pdm.pdm_id.desc())
    )
    if qc_status is not None:
        statement = statement.where(Pdm.qc_status == getattr(qc_status, "value", qc_status))
    if uploaded is not None:
        statement = statement.where(Pdm.uploaded.is_(uploaded))
    return paginate(db, statement, page=page, per_page=per_page)


def create_pdm(
    db: Session,
    account_id: int,
    payload: PdmCreate,
    *,
    actor_user_id: Optional[str] = None,
    today: Optional[date] = None,
) -> Pdm:
    require_account(db, account_id)
    heading_ids = [heading.id for heading in payload.heading_ids]

    def _apply() -> int:
        _assert_account_headings(db, account_id, heading_ids)

        supplied = payload.pdm_id is not None
        if supplied:
            if db.get(Pdm, payload.pdm_id) is not None:
                raise DuplicatePdmId(payload.pdm_id)
            pdm_id = payload.pdm_id
        else:
            pdm_id = next_pdm_id(db, today)

        pdm = Pdm(
            pdm_id=pdm_id,
            account_id=account_id,
            is_copro=payload.is_copro,
            url=payload.url,
            company_type=list(payload.company_type),
            type_of_proof=payload.type_of_proof,
            description=payload.description,
            comment=payload.comment,
            word_count=resolve_word_count(payload.word_count, payload.description),
            created_by_user_id=actor_user_id,
            updated_by_user_id=actor_user_id,
        )
        db.add(pdm)
        if supplied:
            try:
                db.flush()
            except IntegrityError as exc:
                raise DuplicatePdmId(pdm_id) from exc
        else:
            flush_allocated(db, "pdm", pdm_id)

        _replace_pdm_headings(db, pdm, payload.heading_ids)
        _assign_headings(db, account_id, heading_ids, actor_user_id)

        record_status_event(
            db, account_id, pdm_id, PdmStatusEventType.CREATED, None, status_snapshot(pdm), actor_user_id
        )
        _log(db, account_id, "pdm.created", f"Created PDM {pdm_id}", pdm_id, actor_user_id)
        db.commit()
        return pdm_id

    pdm_id = run_with_identifier_retry(db, _apply)
    logger.info("pdm:created account=%s pdm=%s headings=%s", account_id, pdm_id, heading_ids)
    return get_pdm(db, account_id, pdm_id)


def update_pdm(
    db: Session,
    account_id: int,
    pdm_id: int,
    payload: PdmUpdate,
    *,
    actor_user_id: Optional[str] = None,
) -> Pdm:
    """Apply the fields present in ``payload``; a new heading set replaces the old one."""
    changes = payload.model_dump(exclude_unset=True)
    try:
        pdm = get_pdm(db, account_id, pdm_id)
        from_state = status_snapshot(pdm)

        touched = False
        for name in UPDATABLE_FIELDS:
            if name in changes:
                setattr(pdm, name, changes[name])
                touched = True
        if "word_count" in changes or "description" in changes:
            pdm.word_count = resolve_word_count(changes.get("word_count"), pdm.description)
            touched = True
        if touched:
            pdm.updated_by_user_id = actor_user_id

        removed: list[int] = []
        if payload.heading_ids is not None and "heading_ids" in changes:
            previous_ids = pdm.heading_ids
            new_ids = [heading.id for heading in payload.heading_ids]
            _assert_account_headings(db, account_id, new_ids)
            _replace_pdm_headings(db, pdm, payload.heading_ids)
            _assign_headings(db, account_id, new_ids, actor_user_id)
            removed = [heading_id for heading_id in previous_ids if heading_id not in new_ids]
            _revert_unlinked_headings(db, account_id, removed, actor_user_id)

        db.flush()
        record_status_event(
            db, account_id, pdm_id, PdmStatusEventType.UPDATED, from_state, status_snapshot(pdm), actor_user_id
        )
        _log(db, account_id, "pdm.updated", f"Updated PDM {pdm_id}", pdm_id, actor_user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("pdm:updated account=%s pdm=%s fields=%s unlinked=%s", account_id, pdm_id, sorted(changes), removed)
    return get_pdm(db, account_id, pdm_id)


def delete_pdm(
    db: Session,
    account_id: int,
    pdm_id: int,
    *,
    actor_user_id: Optional[str] = None,
) -> None:
    """Delete the PDM; its status events stay behind as the ledger of its history."""
    try:
        pdm = get_pdm(db, account_id, pdm_id)
        heading_ids = pdm.heading_ids
        record_status_event(
            db, account_id, pdm_id, PdmStatusEventType.DELETED, status_snapshot(pdm), None, actor_user_id
        )

        db.delete(pdm)
        db.flush()
        _revert_unlinked_headings(db, account_id, heading_ids, actor_user_id)

        _log(db, account_id, "pdm.deleted", f"Deleted PDM {pdm_id}", pdm_id, actor_user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("pdm:deleted account=%s pdm=%s headings=%s", account_id, pdm_id, heading_ids)


def set_uploaded(
    db: Session, account_id: int, pdm_id: int, uploaded: bool, *, actor_user_id: Optional[str] = None
) -> Pdm:
    return _transition(
        db,
        account_id,
        pdm_id,
        field="uploaded",
        value=bool(uploaded),
        event_type=PdmStatusEventType.PUBLISHED_STATUS_CHANGED,
        action="pdm.uploaded_status_changed",
        label="uploaded status",
        actor_user_id=actor_user_id,
    )


def set_qc_status(
    db: Session, account_id: int, pdm_id: int, qc_status: Any, *, actor_user_id: Optional[str] = None
) -> Pdm:
    return _transition(
        db,
        account_id,
        pdm_id,
        field="qc_status",
        value=getattr(qc_status, "value", qc_status),
        event_type=PdmStatusEventType.QC_STATUS_CHANGED,
        action="pdm.qc_status_changed",
        label="QC status",
        actor_user_id=actor_user_id,
    )


def set_rectification_status(
    db: Session, account_id: int, pdm_id: int, rectification_status: Any, *, actor_user_id: Optional[str] = None
) -> Pdm:
    return _transition(
        db,
        account_id,
        pdm_id,
        field="rectification_status",
        value=getattr(rectification_status, "value", rectification_status),
        event_type=PdmStatusEventType.RECTIFICATION_STATUS_CHANGED,
        action="pdm.rectification_status_changed",
        label="rectification status",
        actor_user_id=actor_user_id,
    )


def set_validation_status(
    db: Session, account_id: int, pdm_id: int, validation_status: Any, *, actor_user_id: Optional[str] = None
) -> Pdm:
    return _transition(
        db,
        account_id,
        pdm_id,
        field="validation_status",
        value=getattr(validation_status, "value", validation_status),
        event_type=PdmStatusEventType.VALIDATION_STATUS_CHANGED,
        action="pdm.validation_status_changed",
        label="validation status",
        actor_user_id=actor_user_id,
    )


def _transition(
    db: Session,
    account_id: int,
    pdm_id: int,
    *,
    field: str,
    value: Any,
    event_type: PdmStatusEventType,
    action: str,
    label: str,
    actor_user_id: Optional[str],
) -> Pdm:
    try:
        pdm = get_pdm(db, account_id, pdm_id)
        from_state = status_snapshot(pdm)
        setattr(pdm, field, value)
        pdm.updated_by_user_id = actor_user_id
        to_state = status_snapshot(pdm)

        record_status_event(db, account_id, pdm_id, event_type, from_state, to_state, actor_user_id)
        shown = str(value).lower() if isinstance(value, bool) else value
        _log(db, account_id, action, f"Updated {label} for PDM {pdm_id} to {shown}", pdm_id, actor_user_id)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info("pdm:%s account=%s pdm=%s from=%s to=%s", field, account_id, pdm_id, from_state[field], to_state[field])
    return get_pdm(db, account_id, pdm_id)


def _assert_account_headings(db: Session, account_id: int, heading_ids: Sequence[int]) -> None:
    found = set(
        db.execute(
            select(Heading.heading_id).where(
                Heading.account_id == account_id,
                Heading.heading_id.in_(heading_ids),
            )
        ).scalars()
    )
    missing = [heading_id for heading_id in heading_ids if heading_id not in found]
    if missing:
        raise HeadingOwnershipError(missing)


def _replace_pdm_headings(db: Session, pdm: Pdm, headings: Iterable[PdmHeadingInput]) -> None:
    db.flush()
    db.expire(pdm, ["pdm_headings"])
    db.execute(
        delete(PdmHeading).where(PdmHeading.pdm_id == pdm.pdm_id),
        execution_options={"synchronize_session": "fetch"},
    )
    db.add_all(
        [PdmHeading(pdm_id=pdm.pdm_id, heading_id=heading.id, sort_order=heading.sort_order) for heading in headings]
    )
    db.flush()


def _assign_headings(db: Session, account_id: int, heading_ids: Sequence[int], actor_user_id: Optional[str]) -> None:
    if not heading_ids:
        return
    db.execute(
        update(Heading)
        .where(Heading.account_id == account_id, Heading.heading_id.in_(heading_ids))
        .values(workflow_stage=WorkflowStage.ASSIGNED.value, updated_by_user_id=actor_user_id),
        execution_options={"synchronize_session": "fetch"},
    )


def _revert_unlinked_headings(
    db: Session, account_id: int, heading_ids: Iterable[int], actor_user_id: Optional[str]
) -> None:
    for heading_id in heading_ids:
        if heading_in_use(db, account_id, heading_id):
            continue
        heading = db.execute(
            select(Heading).where(Heading.account_id == account_id, Heading.heading_id == heading_id)
        ).scalar_one_or_none()
        if heading is None:
            continue
        heading.workflow_stage = (
            WorkflowStage.SUPPORTED if heading.supported_link else WorkflowStage.IMPORTED
        ).value
        heading.updated_by_user_id = actor_user_id
    db.flush()


def _log(
    db: Session, account_id: int, action: str, details: str, pdm_id: int, actor_user_id: Optional[str]
) -> None:
    log_activity(
        db,
        account_id,
        action,
        details=details,
        actor_user_id=actor_user_id,
        entity_type=ActivityEntityType.PDM,
        entity_id=pdm_id,
    )


__all__ = [
    "count_words",
    "resolve_word_count",
    "get_pdm",
    "list_pdms",
    "create_pdm",
    "update_pdm",
    "delete_pdm",
    "set_uploaded",
    "set_qc_status",
    "set_rectification_status",
    "set_validation_status",
]
