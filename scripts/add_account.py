import argparse

from app.constants.workspace import AccountStatus
from app.database import SessionLocal
from app.models import Account
from app.services.accounts import create_account


def add_account(account_id: int, name: str, status: str = AccountStatus.ASSIGNED.value) -> None:
    with SessionLocal() as session:
        existing = session.get(Account, account_id)
        if existing:
            print(f"Account already exists: {existing.account_id} ({existing.account_name})")
            return

        account = create_account(session, account_id, name, AccountStatus(status))
        print(f"Created account {account.account_id} ({account.account_name})")


def main() -> None:
    parser = argparse.ArgumentParser(description="Create a client account in the database.")
    parser.add_argument("--id", type=int, required=True, dest="account_id", help="Numeric account id (1-99999999)")
    parser.add_argument("--name", required=True, help="Display name of the account")
    parser.add_argument(
        "--status",
        default=AccountStatus.ASSIGNED.value,
        choices=[status.value for status in AccountStatus],
        help="Optional workflow status for the account",
    )

    args = parser.parse_args()
    add_account(account_id=args.account_id, name=args.name, status=args.status)


if __name__ == "__main__":
    main()
