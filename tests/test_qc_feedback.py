import pytest

from app.models import Heading, Pdm, PdmFeedbackHistory, PdmQcFeedback, PdmQcFeedbackError, PdmStatusEvent
from app.schemas import QcFeedbackSubmit
from app.services.qc_feedback import get_feedback, list_feedback_history, submit_feedback
from app.services.workspace_errors import NotFound

PDM_ID = 26045000


@pytest.fixture()
def pdm(db_session, account_id):
    db_session.add(Heading(heading_id=1, account_id=account_id, heading_name="Pumps", workflow_stage="assigned"))
    pdm = Pdm(
        pdm_id=PDM_ID,
        account_id=account_id,
        is_copro=True,
        company_type=["Manufacturer"],
        description="Original description",
    )
    db_session.add(pdm)
    db_session.commit()
    return pdm


def test_feedback_with_errors_marks_pdm_in_error(db_session, account_id, pdm):
    feedback = submit_feedback(
        db_session,
        account_id,
        PDM_ID,
        QcFeedbackSubmit(
            updated_description="Rewritten description",
            comment="Tone",
            error_categories=["Grammar", " Grammar ", "Accuracy", ""],
        ),
        actor_user_id="qc-1",
    )

    assert feedback.error_categories == ["Grammar", "Accuracy"]
    assert feedback.feedback_user_id == "qc-1"
    db_session.expire_all()
    stored = db_session.get(Pdm, PDM_ID)
    assert stored.qc_status == "error"
    assert stored.is_qc_edited is True
    assert stored.is_description_updated is True

    event = db_session.query(PdmStatusEvent).one()
    assert event.event_type == "qc_feedback_submitted"
    assert event.from_state == {"qc_status": "pending", "is_qc_edited": False, "is_description_updated": False}
    assert event.to_state == {"qc_status": "error", "is_qc_edited": True, "is_description_updated": True}


def test_resubmission_overwrites_current_and_appends_history(db_session, account_id, pdm):
    submit_feedback(db_session, account_id, PDM_ID, QcFeedbackSubmit(error_categories=["Grammar"]))
    feedback = submit_feedback(
        db_session,
        account_id,
        PDM_ID,
        QcFeedbackSubmit(updated_description="  Original description  ", error_categories=[]),
    )

    assert feedback.error_categories == []
    assert db_session.query(PdmQcFeedback).count() == 1
    assert db_session.query(PdmQcFeedbackError).count() == 0
    db_session.expire_all()
    stored = db_session.get(Pdm, PDM_ID)
    assert stored.qc_status == "checked"
    assert stored.is_description_updated is False

    history = list_feedback_history(db_session, account_id, PDM_ID)
    assert len(history) == 2
    assert db_session.query(PdmFeedbackHistory).count() == 2
    assert sorted(entry.errors_json for entry in history) == [[], ["Grammar"]]


def test_feedback_requires_pdm_in_account(db_session, account_id, other_account_id, pdm):
    with pytest.raises(NotFound):
        submit_feedback(db_session, other_account_id, PDM_ID, QcFeedbackSubmit())
    with pytest.raises(NotFound):
        get_feedback(db_session, account_id, PDM_ID)
