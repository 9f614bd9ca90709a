"""Append-only ledger of PDM status transitions.

Rows are keyed by account and PDM id without foreign keys, so the history of a
PDM remains readable after the PDM itself has been deleted. PDM ids can be
allocated again once freed, which is why every row also carries its account.
"""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.constants.workspace import PdmStatusEventType
from app.models import Pdm, PdmStatusEvent
from app.services.workspace_errors import NotFound, UnsupportedEventType

StatusState = dict[str, Any]


def status_snapshot(pdm: Pdm) -> StatusState:
    return {
        "uploaded": bool(pdm.uploaded),
        "qc_status": pdm.qc_status,
        "rectification_status": pdm.rectification_status,
        "validation_status": pdm.validation_status,
    }


def record_status_event(
    db: Session,
    account_id: int,
    pdm_id: int,
    event_type: PdmStatusEventType | str,
    from_state: Optional[StatusState],
    to_state: Optional[StatusState],
    actor_user_id: Optional[str] = None,
) -> PdmStatusEvent:
    try:
        event_type = PdmStatusEventType(event_type)
    except ValueError as exc:
        raise UnsupportedEventType(str(event_type)) from exc

    event = PdmStatusEvent(
        account_id=account_id,
        pdm_id=pdm_id,
        event_type=event_type.value,
        from_state=dict(from_state) if from_state is not None else None,
        to_state=dict(to_state) if to_state is not None else None,
        actor_user_id=actor_user_id,
    )
    db.add(event)
    return event


def list_status_events(db: Session, account_id: int, pdm_id: int) -> list[PdmStatusEvent]:
    """Events the account recorded for a PDM id, oldest first."""
    events = list(
        db.execute(
            select(PdmStatusEvent)
            .where(PdmStatusEvent.account_id == account_id, PdmStatusEvent.pdm_id == pdm_id)
            .order_by(PdmStatusEvent.created_at, PdmStatusEvent.id)
        ).scalars()
    )
    if not events:
        raise NotFound("pdm", pdm_id)
    return events


__all__ = ["StatusState", "status_snapshot", "record_status_event", "list_status_events"]
