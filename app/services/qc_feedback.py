from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from app.constants.workspace import ActivityEntityType, PdmStatusEventType, QcStatus
from app.models import Pdm, PdmFeedbackHistory, PdmQcFeedback, PdmQcFeedbackError
from app.models.entities import utcnow
from app.schemas.workspace import QcFeedbackSubmit
from app.services.activity_log import log_activity
from app.services.families import normalize_tags
from app.services.status_events import record_status_event
from app.services.workspace_errors import NotFound

logger = logging.getLogger(__name__)


def _qc_state(pdm: Pdm) -> dict[str, Any]:
    return {
        "qc_status": pdm.qc_status,
        "is_qc_edited": bool(pdm.is_qc_edited),
        "is_description_updated": bool(pdm.is_description_updated),
    }


def _resolve_pdm(db: Session, account_id: int, pdm_id: int) -> Pdm:
    pdm = db.execute(
        select(Pdm).where(Pdm.account_id == account_id, Pdm.pdm_id == pdm_id)
    ).scalar_one_or_none()
    if pdm is None:
        raise NotFound("pdm", pdm_id)
    return pdm


def submit_feedback(
    db: Session,
    account_id: int,
    pdm_id: int,
    payload: QcFeedbackSubmit,
    *,
    actor_user_id: Optional[str] = None,
) -> PdmQcFeedback:
    """Record a QC review of a PDM.

    The PDM keeps a single current feedback row that is overwritten on every
    submission, while each submission also lands in the feedback history. An
    empty error list marks the PDM ``checked``, anything else ``error``.
    """
    categories = normalize_tags(payload.error_categories)
    try:
        pdm = _resolve_pdm(db, account_id, pdm_id)
        from_state = _qc_state(pdm)
        submitted_at = utcnow()

        feedback = db.execute(
            select(PdmQcFeedback).where(PdmQcFeedback.pdm_id == pdm.pdm_id)
        ).scalar_one_or_none()
        if feedback is None:
            feedback = PdmQcFeedback(pdm_id=pdm.pdm_id)
            db.add(feedback)
        feedback.updated_description = payload.updated_description
        feedback.comment = payload.comment
        feedback.feedback_user_id = actor_user_id
        feedback.feedback_at = submitted_at
        db.flush()

        db.expire(feedback, ["errors"])
        db.execute(
            delete(PdmQcFeedbackError).where(PdmQcFeedbackError.feedback_id == feedback.id),
            execution_options={"synchronize_session": "fetch"},
        )
        db.add_all(
            [PdmQcFeedbackError(feedback_id=feedback.id, error_category=category) for category in categories]
        )

        db.add(
            PdmFeedbackHistory(
                pdm_id=pdm.pdm_id,
                feedback_user_id=actor_user_id,
                feedback_at=submitted_at,
                updated_description=payload.updated_description,
                comment=payload.comment,
                errors_json=categories,
            )
        )

        updated_description = (payload.updated_description or "").strip()
        pdm.qc_status = (QcStatus.ERROR if categories else QcStatus.CHECKED).value
        pdm.is_qc_edited = True
        pdm.is_description_updated = bool(updated_description) and updated_description != (
            pdm.description or ""
        ).strip()
        pdm.updated_by_user_id = actor_user_id

        record_status_event(
            db,
            account_id,
            pdm.pdm_id,
            PdmStatusEventType.QC_FEEDBACK_SUBMITTED,
            from_state,
            _qc_state(pdm),
            actor_user_id,
        )
        log_activity(
            db,
            account_id,
            "pdm.qc_feedback_submitted",
            details=f"Submitted QC feedback for PDM {pdm.pdm_id}",
            actor_user_id=actor_user_id,
            entity_type=ActivityEntityType.PDM,
            entity_id=pdm.pdm_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        "qc_feedback:submitted account=%s pdm=%s errors=%d qc_status=%s",
        account_id,
        pdm_id,
        len(categories),
        pdm.qc_status,
    )
    return get_feedback(db, account_id, pdm_id)


def get_feedback(db: Session, account_id: int, pdm_id: int) -> PdmQcFeedback:
    _resolve_pdm(db, account_id, pdm_id)
    feedback = db.execute(
        select(PdmQcFeedback)
        .where(PdmQcFeedback.pdm_id == pdm_id)
        .options(selectinload(PdmQcFeedback.errors))
    ).scalar_one_or_none()
    if feedback is None:
        raise NotFound("feedback", pdm_id)
    return feedback


def list_feedback_history(db: Session, account_id: int, pdm_id: int) -> list[PdmFeedbackHistory]:
    _resolve_pdm(db, account_id, pdm_id)
    return list(
        db.execute(
            select(PdmFeedbackHistory)
            .where(PdmFeedbackHistory.pdm_id == pdm_id)
            .order_by(PdmFeedbackHistory.feedback_at.desc(), PdmFeedbackHistory.id.desc())
        ).scalars()
    )


__all__ = ["submit_feedback", "get_feedback", "list_feedback_history"]
