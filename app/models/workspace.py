from datetime import datetime
from typing import Any, Optional

import sqlalchemy as sa
from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Integer, JSON, SmallInteger, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.constants.workspace import (
    HeadingStatus,
    PDM_HEADING_MAX,
    PDM_HEADING_MIN,
    PdmStatusEventType,
    QcStatus,
    RectificationStatus,
    ValidationStatus,
    WorkflowStage,
    check_in,
)
from app.database import Base
from app.models.entities import Account, BigIntId, TimestampMixin, utcnow


class Heading(Base, TimestampMixin):
    __tablename__ = "headings"
    __table_args__ = (
        sa.CheckConstraint(check_in("workflow_stage", WorkflowStage), name="ck_headings_workflow_stage"),
        sa.CheckConstraint(check_in("status", HeadingStatus), name="ck_headings_status"),
        sa.CheckConstraint("TRIM(heading_name) <> ''", name="ck_headings_heading_name_not_blank"),
        sa.Index("ix_headings_account_workflow_stage", "account_id", "workflow_stage"),
        sa.Index("ix_headings_account_status", "account_id", "status"),
        sa.Index("ix_headings_account_grouping_family", "account_id", "grouping_family"),
    )

    # Globally unique across accounts; allocated by the import engine, never autoincremented.
    heading_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    heading_name: Mapped[str] = mapped_column(String(255), nullable=False)
    families_json: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)
    grouping_family: Mapped[str | None] = mapped_column(String(255), nullable=True)
    supported_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    workflow_stage: Mapped[str] = mapped_column(
        String(20), nullable=False, default=WorkflowStage.IMPORTED.value
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=HeadingStatus.ADDITIONAL.value)
    rank_points: Mapped[str | None] = mapped_column(String(64), nullable=True)
    heading_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_status: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_updated_at: Mapped[str | None] = mapped_column(String(255), nullable=True)
    definition: Mapped[str | None] = mapped_column(Text, nullable=True)
    aliases: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    companies: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    account: Mapped[Account] = relationship("Account", back_populates="headings")
    families: Mapped[list["HeadingFamily"]] = relationship(
        "HeadingFamily",
        back_populates="heading",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="HeadingFamily.id",
    )
    pdm_links: Mapped[list["PdmHeading"]] = relationship(
        "PdmHeading",
        back_populates="heading",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def family_names(self) -> list[str]:
        return [family.family_name for family in self.families]


class HeadingFamily(Base):
    __tablename__ = "heading_families"
    __table_args__ = (
        sa.UniqueConstraint("heading_id", "family_name", name="uq_heading_families_heading_family"),
        sa.CheckConstraint("TRIM(family_name) <> ''", name="ck_heading_families_family_name_not_blank"),
        sa.Index("ix_heading_families_family_name", "family_name"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    heading_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("headings.heading_id", ondelete="CASCADE"), nullable=False
    )
    family_name: Mapped[str] = mapped_column(String(255), nullable=False)

    heading: Mapped[Heading] = relationship("Heading", back_populates="families")


class ImportBatch(Base):
    __tablename__ = "import_batches"
    __table_args__ = (
        sa.CheckConstraint("headings_count > 0", name="ck_import_batches_headings_count_positive"),
        sa.Index("ix_import_batches_account_imported_at", "account_id", "imported_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    context_family: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    headings_count: Mapped[int] = mapped_column(Integer, nullable=False)
    imported_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    imported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)

    items: Mapped[list["ImportBatchItem"]] = relationship(
        "ImportBatchItem",
        back_populates="batch",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ImportBatchItem.id",
    )


class ImportBatchItem(Base):
    __tablename__ = "import_batch_items"
    __table_args__ = (
        sa.UniqueConstraint("batch_id", "heading_id", name="uq_import_batch_items_batch_heading"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    batch_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("import_batches.id", ondelete="CASCADE"), nullable=False
    )
    heading_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("headings.heading_id", ondelete="CASCADE"), nullable=False, index=True
    )

    batch: Mapped[ImportBatch] = relationship("ImportBatch", back_populates="items")


class ExistingHeadingSnapshot(Base):
    __tablename__ = "existing_heading_snapshots"
    __table_args__ = (
        sa.Index("ix_existing_snapshots_account_uploaded_at", "account_id", "uploaded_at"),
        sa.Index("ix_existing_snapshots_account_is_active", "account_id", "is_active"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    file_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uploaded_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    items: Mapped[list["ExistingHeadingSnapshotItem"]] = relationship(
        "ExistingHeadingSnapshotItem",
        back_populates="snapshot",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ExistingHeadingSnapshotItem.id",
    )


class ExistingHeadingSnapshotItem(Base):
    __tablename__ = "existing_heading_snapshot_items"
    __table_args__ = (
        sa.CheckConstraint("TRIM(heading_name) <> ''", name="ck_snapshot_items_heading_name_not_blank"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    snapshot_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("existing_heading_snapshots.id", ondelete="CASCADE"), nullable=False, index=True
    )
    heading_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("headings.heading_id", ondelete="SET NULL"), nullable=True
    )
    source_heading_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    heading_name: Mapped[str] = mapped_column(String(255), nullable=False)
    rank_points: Mapped[str | None] = mapped_column(String(64), nullable=True)
    definition: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(255), nullable=True)
    family: Mapped[str | None] = mapped_column(String(255), nullable=True)
    company_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    profile_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    site_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    quality: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_last_updated: Mapped[str | None] = mapped_column(String(255), nullable=True)

    snapshot: Mapped[ExistingHeadingSnapshot] = relationship("ExistingHeadingSnapshot", back_populates="items")


class Pdm(Base, TimestampMixin):
    __tablename__ = "pdms"
    __table_args__ = (
        sa.CheckConstraint(check_in("qc_status", QcStatus), name="ck_pdms_qc_status"),
        sa.CheckConstraint(
            check_in("rectification_status", RectificationStatus), name="ck_pdms_rectification_status"
        ),
        sa.CheckConstraint(check_in("validation_status", ValidationStatus), name="ck_pdms_validation_status"),
        sa.CheckConstraint("TRIM(description) <> ''", name="ck_pdms_description_not_blank"),
        sa.CheckConstraint("word_count >= 0", name="ck_pdms_word_count_non_negative"),
        sa.Index("ix_pdms_account_created_at", "account_id", "created_at"),
        sa.Index("ix_pdms_account_qc_status", "account_id", "qc_status"),
        sa.Index("ix_pdms_account_uploaded", "account_id", "uploaded"),
    )

    # Date coded YYDDDNNN, see app.services.identifiers.next_pdm_id.
    pdm_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    is_copro: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_type: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    type_of_proof: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    uploaded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    qc_status: Mapped[str] = mapped_column(String(20), nullable=False, default=QcStatus.PENDING.value)
    rectification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RectificationStatus.NOT_NEEDED.value
    )
    validation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ValidationStatus.PENDING.value
    )
    is_qc_edited: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_description_updated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    updated_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)

    account: Mapped[Account] = relationship("Account", back_populates="pdms")
    pdm_headings: Mapped[list["PdmHeading"]] = relationship(
        "PdmHeading",
        back_populates="pdm",
        cascade="all, delete-orphan",
        order_by="PdmHeading.sort_order",
    )
    qc_feedback: Mapped[Optional["PdmQcFeedback"]] = relationship(
        "PdmQcFeedback",
        back_populates="pdm",
        cascade="all, delete-orphan",
        uselist=False,
    )
    feedback_history: Mapped[list["PdmFeedbackHistory"]] = relationship(
        "PdmFeedbackHistory",
        back_populates="pdm",
        cascade="all, delete-orphan",
        order_by="PdmFeedbackHistory.id.desc()",
    )

    @property
    def heading_ids(self) -> list[int]:
        return [link.heading_id for link in self.pdm_headings]


class PdmHeading(Base):
    __tablename__ = "pdm_headings"
    __table_args__ = (
        sa.UniqueConstraint("pdm_id", "heading_id", name="uq_pdm_headings_pdm_heading"),
        sa.UniqueConstraint("pdm_id", "sort_order", name="uq_pdm_headings_pdm_sort_order"),
        sa.CheckConstraint(
            f"sort_order BETWEEN {PDM_HEADING_MIN} AND {PDM_HEADING_MAX}",
            name="ck_pdm_headings_sort_order_range",
        ),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    pdm_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("pdms.pdm_id", ondelete="CASCADE"), nullable=False
    )
    heading_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("headings.heading_id", ondelete="CASCADE"), nullable=False, index=True
    )
    sort_order: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    pdm: Mapped[Pdm] = relationship("Pdm", back_populates="pdm_headings")
    heading: Mapped[Heading] = relationship("Heading", back_populates="pdm_links")

    @property
    def heading_name(self) -> str | None:
        return self.heading.heading_name if self.heading is not None else None


class PdmStatusEvent(Base):
    """Ledger row keyed by account and PDM id; neither is a foreign key so it outlives the PDM."""

    __tablename__ = "pdm_status_events"
    __table_args__ = (
        sa.CheckConstraint(check_in("event_type", PdmStatusEventType), name="ck_pdm_status_events_event_type"),
        sa.Index("ix_pdm_status_events_account_pdm_created_at", "account_id", "pdm_id", "created_at"),
        sa.Index("ix_pdm_status_events_event_type", "event_type"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    pdm_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    from_state: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    to_state: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    actor_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)


class PdmQcFeedback(Base, TimestampMixin):
    __tablename__ = "pdm_qc_feedback"

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    pdm_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("pdms.pdm_id", ondelete="CASCADE"), nullable=False, unique=True
    )
    updated_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    feedback_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    feedback_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True
    )

    pdm: Mapped[Pdm] = relationship("Pdm", back_populates="qc_feedback")
    errors: Mapped[list["PdmQcFeedbackError"]] = relationship(
        "PdmQcFeedbackError",
        back_populates="feedback",
        cascade="all, delete-orphan",
        order_by="PdmQcFeedbackError.id",
    )

    @property
    def error_categories(self) -> list[str]:
        return [error.error_category for error in self.errors]


class PdmQcFeedbackError(Base):
    __tablename__ = "pdm_qc_feedback_errors"
    __table_args__ = (
        sa.UniqueConstraint("feedback_id", "error_category", name="uq_feedback_errors_feedback_category"),
        sa.CheckConstraint("TRIM(error_category) <> ''", name="ck_feedback_errors_category_not_blank"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    feedback_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("pdm_qc_feedback.id", ondelete="CASCADE"), nullable=False
    )
    error_category: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    feedback: Mapped[PdmQcFeedback] = relationship("PdmQcFeedback", back_populates="errors")


class PdmFeedbackHistory(Base):
    __tablename__ = "pdm_feedback_history"
    __table_args__ = (
        sa.Index("ix_pdm_feedback_history_pdm_feedback_at", "pdm_id", "feedback_at"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    pdm_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("pdms.pdm_id", ondelete="CASCADE"), nullable=False
    )
    feedback_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    feedback_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    errors_json: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    pdm: Mapped[Pdm] = relationship("Pdm", back_populates="feedback_history")


class QcError(Base, TimestampMixin):
    __tablename__ = "qc_errors"
    __table_args__ = (
        sa.CheckConstraint(check_in("qc_status", QcStatus), name="ck_qc_errors_qc_status"),
        sa.CheckConstraint(
            check_in("rectification_status", RectificationStatus), name="ck_qc_errors_rectification_status"
        ),
        sa.CheckConstraint(check_in("validation_status", ValidationStatus), name="ck_qc_errors_validation_status"),
        sa.CheckConstraint("TRIM(error_category) <> ''", name="ck_qc_errors_error_category_not_blank"),
        sa.CheckConstraint(
            "resolved_at IS NULL OR resolved_at >= reported_at", name="ck_qc_errors_resolved_after_reported"
        ),
        sa.Index("ix_qc_errors_account_reported_at", "account_id", "reported_at"),
        sa.Index("ix_qc_errors_account_rect_valid", "account_id", "rectification_status", "validation_status"),
    )

    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    account_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("accounts.account_id", ondelete="CASCADE"), nullable=False
    )
    heading_id: Mapped[int | None] = mapped_column(
        BigInteger, ForeignKey("headings.heading_id", ondelete="SET NULL"), nullable=True
    )
    error_category: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    qc_status: Mapped[str] = mapped_column(String(20), nullable=False, default=QcStatus.ERROR.value)
    rectification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=RectificationStatus.PENDING.value
    )
    validation_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ValidationStatus.PENDING.value
    )
    reported_by_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    reported_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    heading: Mapped[Optional[Heading]] = relationship("Heading")

    @property
    def heading_name(self) -> str | None:
        return self.heading.heading_name if self.heading is not None else None
