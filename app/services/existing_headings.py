"""Beforeproof ("existing headings") snapshots and the heading status they drive."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from app.constants.workspace import ActivityEntityType, HeadingStatus
from app.models import ExistingHeadingSnapshot, ExistingHeadingSnapshotItem, Heading
from app.services.accounts import require_account
from app.services.activity_log import log_activity
from app.services.heading_rows import parse_snapshot_rows
from app.services.row_matcher import match_heading
from app.services.workspace_errors import NoValidRows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SnapshotUpload:
    snapshot: ExistingHeadingSnapshot
    items: list[ExistingHeadingSnapshotItem]


@dataclass(frozen=True)
class SnapshotSummary:
    snapshot: ExistingHeadingSnapshot
    items_count: int


def upload_snapshot(
    db: Session,
    account_id: int,
    rows: Sequence[Sequence[Any]] | Sequence[Mapping[str, Any]],
    *,
    file_name: Optional[str] = None,
    actor_user_id: Optional[str] = None,
) -> SnapshotUpload:
    """Replace the account's active baseline and re-derive every heading status.

    Matched headings become ``ranked`` or ``existing`` depending on their rank
    points; every other heading of the account falls back to ``additional``.
    """
    require_account(db, account_id)
    parsed = parse_snapshot_rows(rows)
    if not parsed:
        raise NoValidRows()

    try:
        db.execute(
            update(ExistingHeadingSnapshot)
            .where(
                ExistingHeadingSnapshot.account_id == account_id,
                ExistingHeadingSnapshot.is_active.is_(True),
            )
            .values(is_active=False),
            execution_options={"synchronize_session": False},
        )

        snapshot = ExistingHeadingSnapshot(
            account_id=account_id,
            file_name=file_name,
            uploaded_by_user_id=actor_user_id,
            is_active=True,
        )
        db.add(snapshot)
        db.flush()

        matched_ids: set[int] = set()
        for row in parsed:
            heading = match_heading(db, account_id, row.heading_id, row.heading_name)
            db.add(
                ExistingHeadingSnapshotItem(
                    snapshot_id=snapshot.id,
                    heading_id=heading.heading_id if heading is not None else None,
                    source_heading_id=row.heading_id,
                    heading_name=row.heading_name,
                    rank_points=row.rank_points,
                    definition=row.definition,
                    category=row.category,
                    family=row.family,
                    company_type=row.company_type,
                    profile_description=row.profile_description,
                    site_link=row.site_link,
                    quality=row.quality,
                    source_last_updated=row.source_last_updated,
                )
            )
            if heading is None:
                continue
            matched_ids.add(heading.heading_id)
            heading.status = (HeadingStatus.RANKED if row.is_ranked else HeadingStatus.EXISTING).value
            heading.updated_by_user_id = actor_user_id

        db.flush()
        demote = update(Heading).where(Heading.account_id == account_id)
        if matched_ids:
            demote = demote.where(Heading.heading_id.not_in(matched_ids))
        demoted = db.execute(
            demote.values(status=HeadingStatus.ADDITIONAL.value, updated_by_user_id=actor_user_id),
            execution_options={"synchronize_session": False},
        ).rowcount

        log_activity(
            db,
            account_id,
            "existing_headings.uploaded",
            details=f"Uploaded beforeproof snapshot {snapshot.id}",
            actor_user_id=actor_user_id,
            entity_type=ActivityEntityType.EXISTING_HEADING_SNAPSHOT,
            entity_id=snapshot.id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    items = _snapshot_items(db, snapshot.id)
    logger.info(
        "snapshot:uploaded account=%s snapshot=%s rows=%d matched=%d demoted=%s",
        account_id,
        snapshot.id,
        len(items),
        len(matched_ids),
        demoted,
    )
    return SnapshotUpload(snapshot=snapshot, items=items)


def get_active_snapshot(db: Session, account_id: int) -> Optional[SnapshotUpload]:
    snapshot = db.execute(
        select(ExistingHeadingSnapshot)
        .where(
            ExistingHeadingSnapshot.account_id == account_id,
            ExistingHeadingSnapshot.is_active.is_(True),
        )
        .order_by(ExistingHeadingSnapshot.uploaded_at.desc(), ExistingHeadingSnapshot.id.desc())
        .limit(1)
    ).scalar_one_or_none()
    if snapshot is None:
        return None
    return SnapshotUpload(snapshot=snapshot, items=_snapshot_items(db, snapshot.id))


def list_snapshots(db: Session, account_id: int) -> list[SnapshotSummary]:
    items_count = (
        select(func.count(ExistingHeadingSnapshotItem.id))
        .where(ExistingHeadingSnapshotItem.snapshot_id == ExistingHeadingSnapshot.id)
        .correlate(ExistingHeadingSnapshot)
        .scalar_subquery()
    )
    rows = db.execute(
        select(ExistingHeadingSnapshot, items_count)
        .where(ExistingHeadingSnapshot.account_id == account_id)
        .order_by(ExistingHeadingSnapshot.uploaded_at.desc(), ExistingHeadingSnapshot.id.desc())
    ).all()
    return [SnapshotSummary(snapshot=snapshot, items_count=int(count or 0)) for snapshot, count in rows]


def _snapshot_items(db: Session, snapshot_id: int) -> list[ExistingHeadingSnapshotItem]:
    return list(
        db.execute(
            select(ExistingHeadingSnapshotItem)
            .where(ExistingHeadingSnapshotItem.snapshot_id == snapshot_id)
            .order_by(ExistingHeadingSnapshotItem.id)
        ).scalars()
    )


__all__ = [
    "SnapshotUpload",
    "SnapshotSummary",
    "upload_snapshot",
    "get_active_snapshot",
    "list_snapshots",
]
