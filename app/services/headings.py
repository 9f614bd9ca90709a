"""Heading queries and direct, row-level heading edits."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from app.constants.workspace import ActivityEntityType, HeadingStatus, WorkflowStage
from app.models import Heading, HeadingFamily, ImportBatch, ImportBatchItem, Pdm, PdmHeading
from app.services.activity_log import log_activity
from app.services.families import replace_heading_families
from app.services.pagination import Page, paginate
from app.services.workspace_errors import HeadingInUse, InvalidPayload, NotFound

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "heading_name",
    "grouping_family",
    "supported_link",
    "workflow_stage",
    "status",
    "rank_points",
    "heading_type",
    "source_status",
    "source_updated_at",
    "definition",
    "aliases",
    "category",
    "companies",
)


@dataclass(frozen=True)
class ImportBatchSummary:
    batch: ImportBatch
    items_count: int


def get_heading(db: Session, account_id: int, heading_id: int) -> Heading:
    heading = db.execute(
        select(Heading)
        .where(Heading.account_id == account_id, Heading.heading_id == heading_id)
        .options(selectinload(Heading.families))
    ).scalar_one_or_none()
    if heading is None:
        raise NotFound("heading", heading_id)
    return heading


def list_headings(
    db: Session,
    account_id: int,
    *,
    workflow_stage: Optional[WorkflowStage] = None,
    status: Optional[HeadingStatus] = None,
    family: Optional[str] = None,
    page: int = 1,
    per_page: int = 50,
) -> Page[Heading]:
    statement = (
        select(Heading)
        .where(Heading.account_id == account_id)
        .options(selectinload(Heading.families))
        .order_by(Heading.heading_name, Heading.heading_id)
    )
    if workflow_stage is not None:
        statement = statement.where(Heading.workflow_stage == workflow_stage.value)
    if status is not None:
        statement = statement.where(Heading.status == status.value)
    if family and family.strip():
        statement = statement.where(
            Heading.families.any(HeadingFamily.family_name == family.strip())
        )
    return paginate(db, statement, page=page, per_page=per_page)


def update_heading(
    db: Session,
    account_id: int,
    heading_id: int,
    changes: Mapping[str, Any],
    *,
    actor_user_id: Optional[str] = None,
) -> Heading:
    """Apply a partial edit; ``families``, when given, replaces the whole set.

    A heading linked to a PDM keeps its ``assigned`` stage until the PDM lets go of it.
    """
    try:
        heading = get_heading(db, account_id, heading_id)

        for name in EDITABLE_FIELDS:
            if name not in changes:
                continue
            value = changes[name]
            if isinstance(value, Enum):
                value = value.value
            if name == "heading_name":
                value = (value or "").strip()
                if not value:
                    raise InvalidPayload("Heading name must not be blank.", field="heading_name")
            if (
                name == "workflow_stage"
                and value != WorkflowStage.ASSIGNED.value
                and heading_in_use(db, account_id, heading_id)
            ):
                raise HeadingInUse(
                    heading_id,
                    f"Heading {heading_id} is assigned to a PDM; unlink it before changing its stage.",
                    field="workflow_stage",
                )
            setattr(heading, name, value)
        heading.updated_by_user_id = actor_user_id

        if "families" in changes:
            replace_heading_families(db, heading, changes["families"] or [])

        log_activity(
            db,
            account_id,
            "heading.updated",
            details=f"Updated heading {heading.heading_id}",
            actor_user_id=actor_user_id,
            entity_type=ActivityEntityType.HEADING,
            entity_id=heading.heading_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(heading)
    logger.info("heading:updated account=%s heading=%s", account_id, heading.heading_id)
    return heading


def delete_heading(
    db: Session,
    account_id: int,
    heading_id: int,
    *,
    actor_user_id: Optional[str] = None,
) -> None:
    """Delete a heading that no PDM links to."""
    try:
        heading = get_heading(db, account_id, heading_id)
        if heading_in_use(db, account_id, heading_id):
            raise HeadingInUse(
                heading_id, f"Heading {heading_id} is assigned to a PDM; unlink it before deleting."
            )
        db.delete(heading)
        log_activity(
            db,
            account_id,
            "heading.deleted",
            details=f"Deleted heading {heading_id}",
            actor_user_id=actor_user_id,
            entity_type=ActivityEntityType.HEADING,
            entity_id=heading_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("heading:deleted account=%s heading=%s", account_id, heading_id)


def list_families(db: Session, account_id: int) -> list[str]:
    statement = (
        select(HeadingFamily.family_name)
        .join(Heading, Heading.heading_id == HeadingFamily.heading_id)
        .where(Heading.account_id == account_id)
        .distinct()
        .order_by(HeadingFamily.family_name)
    )
    return list(db.execute(statement).scalars())


def list_import_batches(db: Session, account_id: int) -> list[ImportBatchSummary]:
    items_count = (
        select(func.count(ImportBatchItem.id))
        .where(ImportBatchItem.batch_id == ImportBatch.id)
        .correlate(ImportBatch)
        .scalar_subquery()
    )
    rows = db.execute(
        select(ImportBatch, items_count)
        .where(ImportBatch.account_id == account_id)
        .order_by(ImportBatch.imported_at.desc(), ImportBatch.id.desc())
    ).all()
    return [ImportBatchSummary(batch=batch, items_count=int(count or 0)) for batch, count in rows]


def heading_in_use(
    db: Session,
    account_id: int,
    heading_id: int,
    *,
    exclude_pdm_id: Optional[int] = None,
) -> bool:
    """Whether any PDM of the account still links to the heading."""
    condition = (
        select(PdmHeading.id)
        .join(Pdm, Pdm.pdm_id == PdmHeading.pdm_id)
        .where(PdmHeading.heading_id == heading_id, Pdm.account_id == account_id)
    )
    if exclude_pdm_id is not None:
        condition = condition.where(PdmHeading.pdm_id != exclude_pdm_id)
    return bool(db.execute(select(condition.exists())).scalar())


__all__ = [
    "EDITABLE_FIELDS",
    "ImportBatchSummary",
    "get_heading",
    "list_headings",
    "update_heading",
    "delete_heading",
    "list_families",
    "list_import_batches",
    "heading_in_use",
]
