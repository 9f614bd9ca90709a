from __future__ import annotations

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.models import Heading


def match_heading(
    db: Session,
    account_id: int,
    heading_id: Optional[int],
    heading_name: str,
) -> Optional[Heading]:
    """Resolve a spreadsheet row to a heading of the account.

    The numeric id is tried first, scoped to the account; an id that belongs to
    another account is ignored and the lookup falls through to a case-insensitive
    name match.
    """
    if heading_id is not None:
        heading = db.execute(
            select(Heading).where(
                Heading.heading_id == heading_id,
                Heading.account_id == account_id,
            )
        ).scalar_one_or_none()
        if heading is not None:
            return heading

    return db.execute(
        select(Heading)
        .where(
            Heading.account_id == account_id,
            func.lower(Heading.heading_name) == heading_name.strip().lower(),
        )
        .order_by(Heading.heading_id)
        .limit(1)
    ).scalar_one_or_none()


def heading_id_taken(db: Session, heading_id: int) -> bool:
    """Whether any account already owns ``heading_id``."""
    return db.get(Heading, heading_id) is not None


__all__ = ["match_heading", "heading_id_taken"]
