from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.constants.workspace import AccountStatus
from app.database import get_db
from app.routers.workspace_common import get_account_scope, invoke
from app.schemas import AccountCreate, AccountRead
from app.services import accounts as account_service

router = APIRouter(prefix="/accounts", tags=["Accounts"])


@router.get("", response_model=list[AccountRead])
def list_accounts(
    status_filter: Optional[AccountStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> list[AccountRead]:
    return account_service.list_accounts(db, status=status_filter)


@router.post("", response_model=AccountRead, status_code=status.HTTP_201_CREATED)
def create_account(request: AccountCreate, db: Session = Depends(get_db)) -> AccountRead:
    return invoke(
        lambda: account_service.create_account(
            db,
            account_id=request.account_id,
            account_name=request.account_name,
            status=request.status,
        )
    )


@router.get("/{account_id}", response_model=AccountRead)
def get_account(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> AccountRead:
    return account_service.get_account(db, account_id)


@router.delete("/{account_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_account(
    account_id: int = Depends(get_account_scope),
    db: Session = Depends(get_db),
) -> None:
    invoke(lambda: account_service.delete_account(db, account_id))
