from datetime import datetime, timedelta

import pytest
from pydantic import ValidationError

from app.constants.workspace import RectificationStatus
from app.models import ActivityLog, Heading, QcError
from app.schemas import QcErrorCreate, QcErrorUpdate
from app.services.qc_errors import create_qc_error, delete_qc_error, list_qc_errors, update_qc_error
from app.services.workspace_errors import HeadingOwnershipError, InvalidPayload, NotFound


@pytest.fixture()
def headings(db_session, account_id, other_account_id):
    db_session.add_all(
        [
            Heading(heading_id=1, account_id=account_id, heading_name="Pumps"),
            Heading(heading_id=2, account_id=other_account_id, heading_name="Valves"),
        ]
    )
    db_session.commit()


def test_create_starts_in_error_pending(db_session, account_id, headings):
    error = create_qc_error(
        db_session,
        account_id,
        QcErrorCreate(heading_id=1, error_category=" Spelling ", comment="Typo"),
        actor_user_id="qc-1",
    )

    assert error.error_category == "Spelling"
    assert error.qc_status == "error"
    assert error.rectification_status == "Pending"
    assert error.validation_status == "Pending"
    assert error.heading_name == "Pumps"
    assert error.reported_by_user_id == "qc-1"
    assert db_session.query(ActivityLog).filter(ActivityLog.action == "qc_error.created").count() == 1


def test_create_rejects_foreign_heading(db_session, account_id, headings):
    with pytest.raises(HeadingOwnershipError) as excinfo:
        create_qc_error(db_session, account_id, QcErrorCreate(heading_id=2, error_category="Spelling"))
    assert excinfo.value.field == "heading_id"


def test_update_and_filter(db_session, account_id, headings):
    first = create_qc_error(db_session, account_id, QcErrorCreate(error_category="Spelling"))
    create_qc_error(db_session, account_id, QcErrorCreate(error_category="Tone"))

    updated = update_qc_error(
        db_session,
        account_id,
        first.id,
        QcErrorUpdate(rectification_status="Done", resolved_at=first.reported_at + timedelta(hours=1)),
    )

    assert updated.rectification_status == "Done"
    assert updated.resolved_at is not None
    done = list_qc_errors(db_session, account_id, rectification_status=RectificationStatus.DONE)
    assert [error.id for error in done.items] == [first.id]
    assert list_qc_errors(db_session, account_id).total == 2


def test_update_rejects_resolution_before_report(db_session, account_id, headings):
    error = create_qc_error(db_session, account_id, QcErrorCreate(error_category="Spelling"))

    with pytest.raises(InvalidPayload) as excinfo:
        update_qc_error(
            db_session,
            account_id,
            error.id,
            QcErrorUpdate(resolved_at=datetime(2000, 1, 1)),
        )
    assert excinfo.value.field == "resolved_at"


def test_delete_and_scope(db_session, account_id, other_account_id, headings):
    error = create_qc_error(db_session, account_id, QcErrorCreate(error_category="Spelling"))

    with pytest.raises(NotFound):
        delete_qc_error(db_session, other_account_id, error.id)

    delete_qc_error(db_session, account_id, error.id)
    assert db_session.query(QcError).count() == 0


def test_payloads_validate():
    with pytest.raises(ValidationError):
        QcErrorCreate(error_category="   ")
    with pytest.raises(ValidationError):
        QcErrorUpdate(error_category="Other")
