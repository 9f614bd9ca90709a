import pytest

from app.models import ActivityLog, Heading, HeadingFamily, ImportBatch, ImportBatchItem, Pdm, PdmHeading
from app.services import heading_import
from app.services.heading_import import import_headings
from app.services.headings import list_import_batches
from app.services.identifiers import next_heading_id
from app.services.workspace_errors import NoUsableRows, NotFound


def test_import_creates_new_heading_with_defaults(db_session, account_id):
    result = import_headings(
        db_session,
        account_id,
        [{"id": None, "name": "Widgets", "rank_points": ""}],
        file_name="widgets.csv",
    )

    assert len(result.headings) == 1
    heading = result.headings[0]
    assert heading.heading_name == "Widgets"
    assert heading.status == "additional"
    assert heading.workflow_stage == "imported"
    assert heading.rank_points is None

    batch = db_session.get(ImportBatch, result.batch_id)
    assert batch.headings_count == 1
    assert batch.file_name == "widgets.csv"
    log = db_session.query(ActivityLog).filter(ActivityLog.action == "headings.imported").one()
    assert log.details == "Imported 1 heading(s) from widgets.csv"
    assert log.entity_id == str(result.batch_id)


def test_import_overwrites_matched_heading_by_name(db_session, account_id):
    import_headings(
        db_session,
        account_id,
        [["heading_name", "definition", "status"], ["Widgets", "Old", "existing"]],
        file_name="first.csv",
    )

    result = import_headings(
        db_session,
        account_id,
        [["heading_name", "definition"], ["widgets", "New"]],
        file_name="second.csv",
    )

    headings = db_session.query(Heading).filter(Heading.account_id == account_id).all()
    assert len(headings) == 1
    assert headings[0].heading_name == "widgets"
    assert headings[0].definition == "New"
    assert headings[0].status == "additional"
    assert result.headings[0].heading_id == headings[0].heading_id


def test_import_uses_provided_id_when_free(db_session, account_id):
    result = import_headings(
        db_session,
        account_id,
        [["heading_id", "heading_name"], ["9001", "Pumps"]],
        file_name="ids.csv",
    )

    assert result.headings[0].heading_id == 9001


def test_import_reallocates_id_owned_by_another_account(db_session, account_id, other_account_id):
    db_session.add(Heading(heading_id=500, account_id=other_account_id, heading_name="Valves"))
    db_session.commit()

    result = import_headings(
        db_session,
        account_id,
        [["heading_id", "heading_name"], ["500", "Valves"]],
        file_name="clash.csv",
    )

    created = result.headings[0]
    assert created.heading_id == 501
    assert created.account_id == account_id
    assert db_session.get(Heading, 500).account_id == other_account_id


def test_import_families_are_replaced_not_accumulated(db_session, account_id):
    rows = [["heading_name", "family"], ["Pumps", "Fluids, Industrial"]]
    import_headings(db_session, account_id, rows, file_name="a.csv", context_family="Industrial")
    result = import_headings(db_session, account_id, rows, file_name="b.csv", context_family="Industrial")

    heading_id = result.headings[0].heading_id
    families = (
        db_session.query(HeadingFamily.family_name)
        .filter(HeadingFamily.heading_id == heading_id)
        .order_by(HeadingFamily.family_name)
        .all()
    )
    assert [name for (name,) in families] == ["Fluids", "Industrial"]


def test_import_records_each_heading_once_per_batch(db_session, account_id):
    result = import_headings(
        db_session,
        account_id,
        [["heading_name"], ["Pumps"], ["PUMPS"], ["Valves"]],
        file_name="dupes.csv",
    )

    items = db_session.query(ImportBatchItem).filter(ImportBatchItem.batch_id == result.batch_id).all()
    assert len(items) == 2
    assert db_session.get(ImportBatch, result.batch_id).headings_count == 3

    summaries = list_import_batches(db_session, account_id)
    assert [(summary.batch.id, summary.items_count) for summary in summaries] == [(result.batch_id, 2)]


def test_import_keeps_assigned_stage_while_heading_in_use(db_session, account_id):
    db_session.add(Heading(heading_id=5, account_id=account_id, heading_name="Pumps", workflow_stage="assigned"))
    db_session.add(
        Pdm(pdm_id=26045000, account_id=account_id, is_copro=True, company_type=["Retail"], description="Text")
    )
    db_session.flush()
    db_session.add(PdmHeading(pdm_id=26045000, heading_id=5, sort_order=1))
    db_session.commit()

    import_headings(
        db_session,
        account_id,
        [["heading_id", "heading_name", "workflow_stage"], ["5", "Pumps", "imported"]],
        file_name="stage.csv",
    )

    db_session.expire_all()
    assert db_session.get(Heading, 5).workflow_stage == "assigned"


def test_import_without_usable_rows_raises(db_session, account_id):
    with pytest.raises(NoUsableRows):
        import_headings(db_session, account_id, [["heading_name"], [None], ["  "]], file_name="empty.csv")

    assert db_session.query(ImportBatch).count() == 0


def test_import_into_unknown_account_raises(db_session):
    with pytest.raises(NotFound):
        import_headings(db_session, 424242, [["heading_name"], ["Pumps"]], file_name="x.csv")


def test_import_retries_when_allocated_id_was_taken_concurrently(
    db_session, account_id, other_account_id, monkeypatch
):
    db_session.add(Heading(heading_id=5, account_id=other_account_id, heading_name="Valves"))
    db_session.commit()
    db_session.expunge_all()

    allocations = []

    def stale_then_fresh(db):
        allocations.append(len(allocations))
        if len(allocations) == 1:
            return 5
        return next_heading_id(db)

    monkeypatch.setattr(heading_import, "next_heading_id", stale_then_fresh)

    result = import_headings(db_session, account_id, [{"name": "Widgets"}], file_name="widgets.csv")

    assert allocations == [0, 1]
    assert [heading.heading_id for heading in result.headings] == [6]
    assert db_session.query(ImportBatch).count() == 1
    assert db_session.query(ImportBatchItem).count() == 1
    assert db_session.query(Heading).filter(Heading.account_id == account_id).count() == 1
    assert db_session.query(ActivityLog).filter(ActivityLog.action == "headings.imported").count() == 1


def test_import_failing_midway_leaves_nothing_behind(db_session, account_id, monkeypatch):
    db_session.add(Heading(heading_id=1, account_id=account_id, heading_name="Pumps", definition="Original"))
    db_session.add(HeadingFamily(heading_id=1, family_name="Fluids"))
    db_session.commit()

    real_replace = heading_import.replace_heading_families
    calls = []

    def fail_on_second_row(db, heading, families):
        calls.append(heading.heading_name)
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_replace(db, heading, families)

    monkeypatch.setattr(heading_import, "replace_heading_families", fail_on_second_row)

    rows = [["heading_name", "definition", "family"], ["Pumps", "Changed", "Industrial"], ["Widgets", "Fresh", ""]]
    with pytest.raises(RuntimeError):
        import_headings(db_session, account_id, rows, file_name="broken.csv")

    assert calls == ["Pumps", "Widgets"]
    db_session.expire_all()
    pumps = db_session.get(Heading, 1)
    assert pumps.definition == "Original"
    assert pumps.family_names == ["Fluids"]
    assert db_session.query(Heading).count() == 1
    assert db_session.query(ImportBatch).count() == 0
    assert db_session.query(ImportBatchItem).count() == 0
    assert db_session.query(ActivityLog).count() == 0
