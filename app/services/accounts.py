from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.constants.workspace import AccountStatus
from app.models import Account
from app.services.workspace_errors import InvalidPayload, NotFound

logger = logging.getLogger(__name__)


def get_account(db: Session, account_id: int) -> Account:
    account = db.get(Account, account_id)
    if account is None:
        raise NotFound("account", account_id)
    return account


def require_account(db: Session, account_id: int) -> int:
    """Resolve the account scope of a request, failing when it does not exist."""
    return get_account(db, account_id).account_id


def list_accounts(db: Session, *, status: Optional[AccountStatus] = None) -> list[Account]:
    statement = select(Account).order_by(Account.account_id)
    if status is not None:
        statement = statement.where(Account.status == status.value)
    return list(db.execute(statement).scalars())


def create_account(
    db: Session,
    account_id: int,
    account_name: str,
    status: AccountStatus = AccountStatus.ASSIGNED,
) -> Account:
    name = account_name.strip()
    if not name:
        raise InvalidPayload("Account name is required.", field="account_name")
    if db.get(Account, account_id) is not None:
        raise InvalidPayload(f"Account {account_id} already exists.", field="account_id")

    account = Account(account_id=account_id, account_name=name, status=status.value)
    db.add(account)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise InvalidPayload(f"Account {account_id} already exists.", field="account_id") from exc

    db.refresh(account)
    logger.info("account:created account=%s", account.account_id)
    return account


def delete_account(db: Session, account_id: int) -> None:
    """Remove an account and, through the cascades, all of its workspace data."""
    account = get_account(db, account_id)
    db.delete(account)
    db.commit()
    logger.info("account:deleted account=%s", account_id)


__all__ = ["get_account", "require_account", "list_accounts", "create_account", "delete_account"]
