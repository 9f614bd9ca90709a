from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.routers.workspace_common import get_account_scope, get_actor_id, invoke
from app.schemas import FeedbackHistoryRead, PdmRead, QcFeedbackRead, QcFeedbackResponse, QcFeedbackSubmit
from app.services import qc_feedback as feedback_service
from app.services.pdm_service import get_pdm

router = APIRouter(prefix="/accounts/{account_id}/pdms/{pdm_id}/qc-feedback", tags=["QC Feedback"])


@router.get("", response_model=QcFeedbackRead)
def get_feedback(
    pdm_id: int,
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> QcFeedbackRead:
    return invoke(lambda: feedback_service.get_feedback(db, account_id, pdm_id))


@router.post("", response_model=QcFeedbackResponse, status_code=status.HTTP_201_CREATED)
def submit_feedback(
    pdm_id: int,
    request: QcFeedbackSubmit,
    account_id: int = Depends(get_account_scope),
    actor_id: Optional[str] = Depends(get_actor_id),
    db: Session = Depends(get_db),
) -> QcFeedbackResponse:
    feedback = invoke(
        lambda: feedback_service.submit_feedback(db, account_id, pdm_id, request, actor_user_id=actor_id)
    )
    pdm = invoke(lambda: get_pdm(db, account_id, pdm_id))
    return QcFeedbackResponse(
        feedback=QcFeedbackRead.model_validate(feedback),
        pdm=PdmRead.model_validate(pdm),
    )


@router.get("/history", response_model=list[FeedbackHistoryRead])
def list_feedback_history(
    pdm_id: int,
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> list[FeedbackHistoryRead]:
    return invoke(lambda: feedback_service.list_feedback_history(db, account_id, pdm_id))
