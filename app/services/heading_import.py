"""Reconcile a production heading sheet into an account's headings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.constants.workspace import ActivityEntityType, WorkflowStage
from app.models import Heading, ImportBatch, ImportBatchItem
from app.services.accounts import require_account
from app.services.activity_log import log_activity
from app.services.families import replace_heading_families
from app.services.heading_rows import HeadingImportRow, parse_heading_rows
from app.services.headings import heading_in_use
from app.services.identifiers import flush_allocated, next_heading_id, run_with_identifier_retry
from app.services.row_matcher import heading_id_taken, match_heading
from app.services.workspace_errors import NoUsableRows

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImportResult:
    batch_id: int
    headings: list[Heading]


def import_headings(
    db: Session,
    account_id: int,
    rows: Sequence[Sequence[Any]] | Sequence[Mapping[str, Any]],
    *,
    file_name: str,
    context_family: Optional[str] = None,
    actor_user_id: Optional[str] = None,
) -> ImportResult:
    """Create or overwrite one heading per usable row and record the run as a batch.

    Everything happens in a single transaction; a heading id collision with a
    concurrent import re-runs the whole import once before giving up.
    """
    require_account(db, account_id)
    context_family = context_family.strip() if context_family and context_family.strip() else None
    parsed = parse_heading_rows(rows, context_family)
    if not parsed:
        raise NoUsableRows()

    def _apply() -> int:
        batch = ImportBatch(
            account_id=account_id,
            context_family=context_family,
            file_name=file_name,
            headings_count=len(parsed),
            imported_by_user_id=actor_user_id,
        )
        db.add(batch)
        db.flush()

        recorded: set[int] = set()
        for row in parsed:
            heading = _reconcile_row(db, account_id, row, actor_user_id)
            replace_heading_families(db, heading, row.families)
            if heading.heading_id not in recorded:
                recorded.add(heading.heading_id)
                db.add(ImportBatchItem(batch_id=batch.id, heading_id=heading.heading_id))

        log_activity(
            db,
            account_id,
            "headings.imported",
            details=f"Imported {len(parsed)} heading(s) from {file_name}",
            actor_user_id=actor_user_id,
            entity_type=ActivityEntityType.IMPORT_BATCH,
            entity_id=batch.id,
        )
        db.commit()
        return batch.id

    batch_id = run_with_identifier_retry(db, _apply)

    headings = list(
        db.execute(
            select(Heading)
            .join(ImportBatchItem, ImportBatchItem.heading_id == Heading.heading_id)
            .where(ImportBatchItem.batch_id == batch_id)
            .options(selectinload(Heading.families))
            .order_by(Heading.heading_name, Heading.heading_id)
        ).scalars()
    )
    logger.info(
        "headings:imported account=%s batch=%s rows=%d headings=%d file=%s",
        account_id,
        batch_id,
        len(parsed),
        len(headings),
        file_name,
    )
    return ImportResult(batch_id=batch_id, headings=headings)


def _reconcile_row(
    db: Session,
    account_id: int,
    row: HeadingImportRow,
    actor_user_id: Optional[str],
) -> Heading:
    heading = match_heading(db, account_id, row.heading_id, row.heading_name)
    if heading is not None:
        _overwrite(db, account_id, heading, row)
        heading.updated_by_user_id = actor_user_id
        return heading

    if row.heading_id is not None and not heading_id_taken(db, row.heading_id):
        heading_id = row.heading_id
    else:
        heading_id = next_heading_id(db)

    heading = Heading(
        heading_id=heading_id,
        account_id=account_id,
        workflow_stage=(row.workflow_stage or WorkflowStage.IMPORTED).value,
        created_by_user_id=actor_user_id,
        updated_by_user_id=actor_user_id,
    )
    _copy_fields(heading, row)
    db.add(heading)
    flush_allocated(db, "heading", heading_id)
    return heading


def _overwrite(db: Session, account_id: int, heading: Heading, row: HeadingImportRow) -> None:
    _copy_fields(heading, row)
    if row.workflow_stage is None:
        return
    # A heading linked to a PDM stays assigned until the PDM lets go of it.
    if heading.workflow_stage == WorkflowStage.ASSIGNED.value and heading_in_use(
        db, account_id, heading.heading_id
    ):
        return
    heading.workflow_stage = row.workflow_stage.value


def _copy_fields(heading: Heading, row: HeadingImportRow) -> None:
    heading.heading_name = row.heading_name
    heading.grouping_family = row.grouping_family
    heading.supported_link = row.supported_link
    heading.status = row.status.value
    heading.rank_points = row.rank_points
    heading.heading_type = row.heading_type
    heading.source_status = row.source_status
    heading.source_updated_at = row.source_updated_at
    heading.definition = row.definition
    heading.aliases = row.aliases
    heading.category = row.category
    heading.companies = row.companies


__all__ = ["ImportResult", "import_headings"]
