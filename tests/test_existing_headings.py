import pytest

from app.models import ActivityLog, ExistingHeadingSnapshot, ExistingHeadingSnapshotItem, Heading
from app.services import existing_headings
from app.services.existing_headings import get_active_snapshot, list_snapshots, upload_snapshot
from app.services.workspace_errors import NoValidRows


def _seed_headings(session, account_id):
    session.add_all(
        [
            Heading(heading_id=1, account_id=account_id, heading_name="Widgets"),
            Heading(heading_id=2, account_id=account_id, heading_name="Gadgets", status="ranked"),
            Heading(heading_id=3, account_id=account_id, heading_name="Sprockets"),
        ]
    )
    session.commit()


def _status(session, heading_id):
    session.expire_all()
    return session.get(Heading, heading_id).status


def test_snapshot_ranks_matched_headings_and_demotes_the_rest(db_session, account_id):
    _seed_headings(db_session, account_id)

    result = upload_snapshot(
        db_session,
        account_id,
        [{"id": None, "name": "Widgets", "rank_points": "150"}, {"id": 3, "name": "Renamed", "rank_points": ""}],
        file_name="beforeproof.csv",
    )

    assert _status(db_session, 1) == "ranked"
    assert _status(db_session, 3) == "existing"
    assert _status(db_session, 2) == "additional"
    assert [item.heading_id for item in result.items] == [1, 3]
    assert [item.source_heading_id for item in result.items] == [None, 3]


def test_reupload_without_heading_demotes_it(db_session, account_id):
    _seed_headings(db_session, account_id)
    upload_snapshot(db_session, account_id, [{"name": "Widgets", "rank_points": "150"}])
    assert _status(db_session, 1) == "ranked"

    upload_snapshot(db_session, account_id, [{"name": "Gadgets", "rank_points": ""}])

    assert _status(db_session, 1) == "additional"
    assert _status(db_session, 2) == "existing"


def test_only_latest_snapshot_is_active(db_session, account_id):
    _seed_headings(db_session, account_id)
    upload_snapshot(db_session, account_id, [["heading"], ["Widgets"]], file_name="one.csv")
    second = upload_snapshot(db_session, account_id, [["heading"], ["Gadgets"], ["Unknown"]], file_name="two.csv")

    active = (
        db_session.query(ExistingHeadingSnapshot)
        .filter(ExistingHeadingSnapshot.account_id == account_id, ExistingHeadingSnapshot.is_active.is_(True))
        .all()
    )
    assert [snapshot.id for snapshot in active] == [second.snapshot.id]

    current = get_active_snapshot(db_session, account_id)
    assert current is not None
    assert current.snapshot.id == second.snapshot.id
    assert [item.heading_name for item in current.items] == ["Gadgets", "Unknown"]
    assert current.items[1].heading_id is None

    summaries = list_snapshots(db_session, account_id)
    assert [(summary.snapshot.file_name, summary.items_count) for summary in summaries] == [
        ("two.csv", 2),
        ("one.csv", 1),
    ]
    log = db_session.query(ActivityLog).filter(ActivityLog.action == "existing_headings.uploaded").all()
    assert len(log) == 2


def test_snapshot_does_not_touch_other_accounts(db_session, account_id, other_account_id):
    _seed_headings(db_session, account_id)
    db_session.add(Heading(heading_id=10, account_id=other_account_id, heading_name="Widgets", status="ranked"))
    db_session.commit()

    upload_snapshot(db_session, account_id, [["heading"], ["Gadgets"]])

    assert _status(db_session, 10) == "ranked"
    assert get_active_snapshot(db_session, other_account_id) is None


def test_snapshot_without_rows_raises(db_session, account_id):
    with pytest.raises(NoValidRows):
        upload_snapshot(db_session, account_id, [["heading", "rank_points"], [None, "10"]])


def test_upload_failing_midway_keeps_previous_baseline(db_session, account_id, monkeypatch):
    _seed_headings(db_session, account_id)
    previous = upload_snapshot(db_session, account_id, [{"name": "Widgets", "rank_points": "150"}])
    previous_id = previous.snapshot.id

    real_match = existing_headings.match_heading
    calls = []

    def fail_on_second_row(db, account, heading_id, heading_name):
        calls.append(heading_name)
        if len(calls) == 2:
            raise RuntimeError("connection lost")
        return real_match(db, account, heading_id, heading_name)

    monkeypatch.setattr(existing_headings, "match_heading", fail_on_second_row)

    with pytest.raises(RuntimeError):
        upload_snapshot(
            db_session,
            account_id,
            [{"name": "Gadgets", "rank_points": ""}, {"name": "Sprockets", "rank_points": "10"}],
        )

    assert calls == ["Gadgets", "Sprockets"]
    db_session.expire_all()
    snapshots = db_session.query(ExistingHeadingSnapshot).all()
    assert [(snapshot.id, snapshot.is_active) for snapshot in snapshots] == [(previous_id, True)]
    assert db_session.query(ExistingHeadingSnapshotItem).count() == 1
    assert _status(db_session, 1) == "ranked"
    assert _status(db_session, 2) == "additional"
    assert db_session.query(ActivityLog).filter(ActivityLog.action == "existing_headings.uploaded").count() == 1
