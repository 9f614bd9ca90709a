from datetime import datetime

import sqlalchemy as sa
from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.constants.workspace import AccountStatus, check_in
from app.database import Base

# BIGINT surrogate keys do not autoincrement on SQLite; the variant keeps tests on the rowid alias.
BigIntId = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    return datetime.utcnow()


class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class Account(Base, TimestampMixin):
    __tablename__ = "accounts"
    __table_args__ = (
        sa.CheckConstraint("account_id BETWEEN 1 AND 99999999", name="ck_accounts_account_id_range"),
        sa.CheckConstraint(check_in("status", AccountStatus), name="ck_accounts_status"),
    )

    account_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    account_name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountStatus.ASSIGNED.value
    )

    headings: Mapped[list["Heading"]] = relationship(
        "Heading",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    pdms: Mapped[list["Pdm"]] = relationship(
        "Pdm",
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    import_batches: Mapped[list["ImportBatch"]] = relationship(
        "ImportBatch",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    snapshots: Mapped[list["ExistingHeadingSnapshot"]] = relationship(
        "ExistingHeadingSnapshot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    qc_errors: Mapped[list["QcError"]] = relationship(
        "QcError",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    activity_logs: Mapped[list["ActivityLog"]] = relationship(
        "ActivityLog",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ActivityLog(Base):
    __tablename__ = "activity_logs"
    __table_args__ = (
        sa.Index("ix_activity_logs_account_created_at", "account_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    action: Mapped[str] = mapped_column(String(255), nullable=False)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    actor_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entity_type: Mapped[str | None] = mapped_column(String(64), nullable=True)
    entity_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
