from datetime import date

import pytest
from pydantic import ValidationError

from app.models import ActivityLog, Heading, Pdm, PdmHeading, PdmStatusEvent
from app.schemas import PdmCreate, PdmUpdate
from app.services import pdm_service
from app.services.identifiers import next_pdm_id
from app.services.pdm_service import (
    count_words,
    create_pdm,
    delete_pdm,
    get_pdm,
    list_pdms,
    set_qc_status,
    set_uploaded,
    update_pdm,
)
from app.services.status_events import list_status_events
from app.services.workspace_errors import DuplicatePdmId, HeadingOwnershipError, NotFound

FEB_14_2026 = date(2026, 2, 14)

INITIAL_STATE = {
    "uploaded": False,
    "qc_status": "pending",
    "rectification_status": "Not Needed",
    "validation_status": "Pending",
}


def _seed_headings(session, account_id, other_account_id):
    session.add_all(
        [
            Heading(heading_id=1, account_id=account_id, heading_name="Pumps", supported_link="https://example.com"),
            Heading(heading_id=2, account_id=account_id, heading_name="Valves"),
            Heading(heading_id=3, account_id=account_id, heading_name="Hoses"),
            Heading(heading_id=9, account_id=other_account_id, heading_name="Foreign"),
        ]
    )
    session.commit()


def _payload(**overrides) -> PdmCreate:
    data = {
        "is_copro": False,
        "url": "https://acme.example.com",
        "company_type": ["Manufacturer"],
        "description": "Industrial pumps and valves for water treatment",
        "heading_ids": [{"id": 1, "sort_order": 1}, {"id": 2, "sort_order": 2}],
    }
    data.update(overrides)
    return PdmCreate(**data)


def _stage(session, heading_id):
    session.expire_all()
    return session.get(Heading, heading_id).workflow_stage


def test_count_words():
    assert count_words("  one two\tthree\nfour ") == 4
    assert count_words(None) == 0


def test_create_pdm_allocates_id_and_assigns_headings(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)

    pdm = create_pdm(db_session, account_id, _payload(), actor_user_id="u-1", today=FEB_14_2026)

    assert pdm.pdm_id == 26045000
    assert pdm.word_count == 7
    assert [(link.heading_id, link.sort_order) for link in pdm.pdm_headings] == [(1, 1), (2, 2)]
    assert _stage(db_session, 1) == "assigned"
    assert _stage(db_session, 2) == "assigned"
    assert _stage(db_session, 3) == "imported"

    event = db_session.query(PdmStatusEvent).one()
    assert event.event_type == "created"
    assert event.from_state is None
    assert event.to_state == INITIAL_STATE
    assert event.actor_user_id == "u-1"

    second = create_pdm(
        db_session,
        account_id,
        _payload(heading_ids=[{"id": 3, "sort_order": 1}]),
        today=FEB_14_2026,
    )
    assert second.pdm_id == 26045001


def test_create_pdm_rejects_foreign_heading(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)

    with pytest.raises(HeadingOwnershipError) as excinfo:
        create_pdm(
            db_session,
            account_id,
            _payload(heading_ids=[{"id": 1, "sort_order": 1}, {"id": 9, "sort_order": 2}]),
            today=FEB_14_2026,
        )

    assert list(excinfo.value.heading_ids) == [9]
    assert db_session.query(Pdm).count() == 0
    assert _stage(db_session, 1) == "imported"


def test_create_pdm_with_taken_id_is_rejected(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    create_pdm(db_session, account_id, _payload(pdm_id=123), today=FEB_14_2026)

    with pytest.raises(DuplicatePdmId):
        create_pdm(
            db_session,
            account_id,
            _payload(pdm_id=123, heading_ids=[{"id": 3, "sort_order": 1}]),
            today=FEB_14_2026,
        )


def test_update_unlinking_heading_reverts_its_stage(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)

    updated = update_pdm(
        db_session,
        account_id,
        pdm.pdm_id,
        PdmUpdate(heading_ids=[{"id": 2, "sort_order": 1}]),
        actor_user_id="u-2",
    )

    assert [link.heading_id for link in updated.pdm_headings] == [2]
    assert _stage(db_session, 1) == "supported"
    assert _stage(db_session, 2) == "assigned"

    event = (
        db_session.query(PdmStatusEvent)
        .filter(PdmStatusEvent.event_type == "updated")
        .one()
    )
    assert event.from_state == INITIAL_STATE
    assert event.to_state == INITIAL_STATE
    assert event.actor_user_id == "u-2"


def test_unlinked_heading_without_link_reverts_to_imported(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)

    update_pdm(db_session, account_id, pdm.pdm_id, PdmUpdate(heading_ids=[{"id": 1, "sort_order": 1}]))

    assert _stage(db_session, 2) == "imported"


def test_heading_shared_by_two_pdms_stays_assigned(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    first = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)
    create_pdm(db_session, account_id, _payload(heading_ids=[{"id": 2, "sort_order": 1}]), today=FEB_14_2026)

    delete_pdm(db_session, account_id, first.pdm_id)

    assert _stage(db_session, 1) == "supported"
    assert _stage(db_session, 2) == "assigned"


def test_update_recomputes_word_count_from_description(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(word_count=99), today=FEB_14_2026)
    assert pdm.word_count == 99

    updated = update_pdm(db_session, account_id, pdm.pdm_id, PdmUpdate(description="Just three words"))

    assert updated.word_count == 3
    assert updated.description == "Just three words"


def test_delete_keeps_status_events(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)
    pdm_id = pdm.pdm_id

    delete_pdm(db_session, account_id, pdm_id, actor_user_id="u-3")

    assert db_session.get(Pdm, pdm_id) is None
    assert db_session.query(PdmHeading).count() == 0
    events = (
        db_session.query(PdmStatusEvent)
        .filter(PdmStatusEvent.pdm_id == pdm_id)
        .order_by(PdmStatusEvent.id)
        .all()
    )
    assert [event.event_type for event in events] == ["created", "deleted"]
    assert events[-1].from_state == INITIAL_STATE
    assert events[-1].to_state is None
    with pytest.raises(NotFound):
        get_pdm(db_session, account_id, pdm_id)


def test_reused_pdm_id_keeps_status_history_per_account(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    first = create_pdm(db_session, account_id, _payload(), actor_user_id="alice", today=FEB_14_2026)
    delete_pdm(db_session, account_id, first.pdm_id, actor_user_id="alice")

    second = create_pdm(
        db_session,
        other_account_id,
        _payload(heading_ids=[{"id": 9, "sort_order": 1}]),
        actor_user_id="bob",
        today=FEB_14_2026,
    )
    assert second.pdm_id == first.pdm_id == 26045000

    seen_by_first = [
        (event.event_type, event.actor_user_id) for event in list_status_events(db_session, account_id, 26045000)
    ]
    seen_by_other = [
        (event.event_type, event.actor_user_id)
        for event in list_status_events(db_session, other_account_id, 26045000)
    ]
    assert seen_by_first == [("created", "alice"), ("deleted", "alice")]
    assert seen_by_other == [("created", "bob")]


def test_create_retries_when_allocated_id_was_taken_concurrently(
    db_session, account_id, other_account_id, monkeypatch
):
    _seed_headings(db_session, account_id, other_account_id)
    create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)
    db_session.expunge_all()

    allocations = []

    def stale_then_fresh(db, today=None):
        allocations.append(today)
        if len(allocations) == 1:
            return 26045000
        return next_pdm_id(db, today)

    monkeypatch.setattr(pdm_service, "next_pdm_id", stale_then_fresh)

    pdm = create_pdm(
        db_session, account_id, _payload(heading_ids=[{"id": 3, "sort_order": 1}]), today=FEB_14_2026
    )

    assert len(allocations) == 2
    assert pdm.pdm_id == 26045001
    assert pdm.heading_ids == [3]
    assert db_session.query(Pdm).count() == 2
    assert get_pdm(db_session, account_id, 26045000).heading_ids == [1, 2]
    assert db_session.query(PdmStatusEvent).filter(PdmStatusEvent.event_type == "created").count() == 2
    assert db_session.query(ActivityLog).filter(ActivityLog.action == "pdm.created").count() == 2


def test_transitions_record_events_and_activity(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)

    set_uploaded(db_session, account_id, pdm.pdm_id, True)
    result = set_qc_status(db_session, account_id, pdm.pdm_id, "checked")

    assert result.uploaded is True
    assert result.qc_status == "checked"
    events = db_session.query(PdmStatusEvent).order_by(PdmStatusEvent.id).all()
    assert [event.event_type for event in events] == ["created", "published_status_changed", "qc_status_changed"]
    assert events[1].from_state["uploaded"] is False
    assert events[1].to_state["uploaded"] is True
    assert events[2].to_state["qc_status"] == "checked"

    details = [
        entry.details
        for entry in db_session.query(ActivityLog).order_by(ActivityLog.id).all()
        if entry.action.startswith("pdm.")
    ]
    assert details == [
        "Created PDM 26045000",
        "Updated uploaded status for PDM 26045000 to true",
        "Updated QC status for PDM 26045000 to checked",
    ]


def test_pdm_of_another_account_is_not_found(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id, other_account_id)
    pdm = create_pdm(db_session, account_id, _payload(), today=FEB_14_2026)

    with pytest.raises(NotFound):
        set_uploaded(db_session, other_account_id, pdm.pdm_id, True)
    assert list_pdms(db_session, other_account_id).total == 0
    assert list_pdms(db_session, account_id).total == 1


def test_payload_validation():
    with pytest.raises(ValidationError):
        _payload(url=None)
    with pytest.raises(ValidationError):
        _payload(heading_ids=[{"id": 1, "sort_order": 1}, {"id": 2, "sort_order": 1}])
    with pytest.raises(ValidationError):
        _payload(heading_ids=[{"id": 1, "sort_order": 1}, {"id": 1, "sort_order": 2}])
    with pytest.raises(ValidationError):
        _payload(heading_ids=[{"id": n, "sort_order": n} for n in range(1, 10)])
    with pytest.raises(ValidationError):
        _payload(description="   ")

    copro = _payload(is_copro=True, url=None, company_type=[" Retail ", "Retail", None])
    assert copro.company_type == ["Retail"]
    with pytest.raises(ValidationError):
        PdmUpdate(pdm_id=5)
