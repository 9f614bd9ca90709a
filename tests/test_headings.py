from datetime import date

import pytest

from app.constants.workspace import WorkflowStage
from app.models import ActivityLog, Heading
from app.schemas import PdmCreate
from app.services.headings import delete_heading, update_heading
from app.services.pdm_service import create_pdm, get_pdm
from app.services.workspace_errors import HeadingInUse


def _seed_assigned_heading(session, account_id) -> int:
    session.add_all(
        [
            Heading(heading_id=1, account_id=account_id, heading_name="Pumps", supported_link="https://example.com"),
            Heading(heading_id=2, account_id=account_id, heading_name="Valves"),
        ]
    )
    session.commit()
    pdm = create_pdm(
        session,
        account_id,
        PdmCreate(
            is_copro=True,
            company_type=["Manufacturer"],
            description="Pumps for municipal water",
            heading_ids=[{"id": 1, "sort_order": 1}],
        ),
        today=date(2026, 2, 14),
    )
    return pdm.pdm_id


def test_delete_refuses_heading_linked_to_pdm(db_session, account_id):
    pdm_id = _seed_assigned_heading(db_session, account_id)

    with pytest.raises(HeadingInUse) as excinfo:
        delete_heading(db_session, account_id, 1, actor_user_id="u-1")

    assert excinfo.value.field == "heading_id"
    assert db_session.get(Heading, 1) is not None
    assert get_pdm(db_session, account_id, pdm_id).heading_ids == [1]
    assert db_session.query(ActivityLog).filter(ActivityLog.action == "heading.deleted").count() == 0


def test_delete_removes_unlinked_heading(db_session, account_id):
    _seed_assigned_heading(db_session, account_id)

    delete_heading(db_session, account_id, 2)

    assert db_session.get(Heading, 2) is None


def test_update_refuses_stage_change_on_linked_heading(db_session, account_id):
    _seed_assigned_heading(db_session, account_id)

    with pytest.raises(HeadingInUse) as excinfo:
        update_heading(
            db_session,
            account_id,
            1,
            {"definition": "Changed", "workflow_stage": WorkflowStage.SUPPORTED},
        )

    assert excinfo.value.field == "workflow_stage"
    db_session.expire_all()
    heading = db_session.get(Heading, 1)
    assert heading.workflow_stage == "assigned"
    assert heading.definition is None


def test_update_edits_linked_heading_without_touching_stage(db_session, account_id):
    _seed_assigned_heading(db_session, account_id)

    heading = update_heading(db_session, account_id, 1, {"definition": "Centrifugal", "families": ["Pumps"]})

    assert heading.definition == "Centrifugal"
    assert heading.workflow_stage == "assigned"
    assert heading.family_names == ["Pumps"]


def test_update_can_change_stage_of_unlinked_heading(db_session, account_id):
    _seed_assigned_heading(db_session, account_id)

    heading = update_heading(db_session, account_id, 2, {"workflow_stage": WorkflowStage.SUPPORTED})

    assert heading.workflow_stage == "supported"
