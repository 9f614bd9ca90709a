"""Primary key allocation for headings and PDMs.

Neither allocator reserves anything: both read the current maximum and add one, so
two concurrent writers can compute the same value. The primary key constraint is the
backstop; callers translate the resulting ``IntegrityError`` into
``IdentifierConflict`` and re-run the whole operation through
``run_with_identifier_retry``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Callable, Optional, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.models import Heading, Pdm
from app.services.workspace_errors import IdentifierConflict, RangeExhausted

logger = logging.getLogger(__name__)

T = TypeVar("T")

PDM_SEQUENCE_SIZE = 1000


def next_heading_id(db: Session) -> int:
    """Next heading id, global across every account."""
    current = db.execute(select(func.max(Heading.heading_id))).scalar()
    return int(current or 0) + 1


def pdm_id_range(today: Optional[date] = None) -> tuple[int, int]:
    """Inclusive ``[YYDDD000, YYDDD999]`` bounds for the given day."""
    today = today or date.today()
    prefix = (today.year % 100) * 1000 + today.timetuple().tm_yday
    start = prefix * PDM_SEQUENCE_SIZE
    return start, start + PDM_SEQUENCE_SIZE - 1


def next_pdm_id(db: Session, today: Optional[date] = None) -> int:
    range_start, range_end = pdm_id_range(today)
    latest = db.execute(
        select(func.max(Pdm.pdm_id)).where(Pdm.pdm_id.between(range_start, range_end))
    ).scalar()

    next_id = int(latest) + 1 if latest is not None else range_start
    if next_id > range_end:
        raise RangeExhausted(range_start // PDM_SEQUENCE_SIZE)
    return next_id


def flush_allocated(db: Session, entity_type: str, identifier: int) -> None:
    """Flush a row carrying a freshly allocated id, surfacing collisions as conflicts."""
    try:
        db.flush()
    except IntegrityError as exc:
        logger.warning("identifier:conflict entity=%s id=%s", entity_type, identifier)
        raise IdentifierConflict(entity_type, identifier) from exc


def run_with_identifier_retry(
    db: Session,
    operation: Callable[[], T],
    *,
    retries: Optional[int] = None,
) -> T:
    """Run ``operation`` and re-run it in a fresh transaction after an id collision.

    ``operation`` must own its transaction (commit on success); any partial work of a
    failed attempt is rolled back, whether it is retried or the error propagates.
    """
    attempts_left = get_settings().identifier_conflict_retries if retries is None else retries
    while True:
        try:
            return operation()
        except IdentifierConflict as exc:
            db.rollback()
            if attempts_left <= 0:
                raise
            attempts_left -= 1
            logger.warning(
                "identifier:retry entity=%s id=%s remaining=%d",
                exc.entity_type,
                exc.identifier,
                attempts_left,
            )
        except Exception:
            db.rollback()
            raise


__all__ = [
    "PDM_SEQUENCE_SIZE",
    "next_heading_id",
    "pdm_id_range",
    "next_pdm_id",
    "flush_allocated",
    "run_with_identifier_retry",
]
