"""create heading workspace tables

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""

from alembic import op
import sqlalchemy as sa

revision = "20261017_000001"
down_revision = None
branch_labels = None
depends_on = None

ACCOUNT_STATUSES = ("assigned", "inprogress", "onhold", "completed")
WORKFLOW_STAGES = ("imported", "supported", "assigned")
HEADING_STATUSES = ("existing", "ranked", "additional")
QC_STATUSES = ("pending", "checked", "error")
RECTIFICATION_STATUSES = ("Pending", "Done", "Not Needed")
VALIDATION_STATUSES = ("Pending", "Done")
STATUS_EVENT_TYPES = (
    "created",
    "updated",
    "deleted",
    "qc_feedback_submitted",
    "qc_status_changed",
    "rectification_status_changed",
    "validation_status_changed",
    "published_status_changed",
)


def _in(column: str, values: tuple[str, ...]) -> str:
    quoted = ", ".join(f"'{value}'" for value in values)
    return f"{column} IN ({quoted})"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    ]


def upgrade() -> None:
    op.create_table(
        "accounts",
        sa.Column("account_id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("account_name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="assigned"),
        *_timestamps(),
        sa.CheckConstraint("account_id BETWEEN 1 AND 99999999", name="ck_accounts_account_id_range"),
        sa.CheckConstraint(_in("status", ACCOUNT_STATUSES), name="ck_accounts_status"),
    )

    op.create_table(
        "headings",
        sa.Column("heading_id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("heading_name", sa.String(length=255), nullable=False),
        sa.Column("families_json", sa.JSON(), nullable=True),
        sa.Column("grouping_family", sa.String(length=255), nullable=True),
        sa.Column("supported_link", sa.Text(), nullable=True),
        sa.Column("workflow_stage", sa.String(length=20), nullable=False, server_default="imported"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="additional"),
        sa.Column("rank_points", sa.String(length=64), nullable=True),
        sa.Column("heading_type", sa.String(length=255), nullable=True),
        sa.Column("source_status", sa.String(length=255), nullable=True),
        sa.Column("source_updated_at", sa.String(length=255), nullable=True),
        sa.Column("definition", sa.Text(), nullable=True),
        sa.Column("aliases", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("companies", sa.Text(), nullable=True),
        sa.Column("created_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("updated_by_user_id", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
        sa.CheckConstraint(_in("workflow_stage", WORKFLOW_STAGES), name="ck_headings_workflow_stage"),
        sa.CheckConstraint(_in("status", HEADING_STATUSES), name="ck_headings_status"),
        sa.CheckConstraint("TRIM(heading_name) <> ''", name="ck_headings_heading_name_not_blank"),
    )
    op.create_index("ix_headings_account_workflow_stage", "headings", ["account_id", "workflow_stage"])
    op.create_index("ix_headings_account_status", "headings", ["account_id", "status"])
    op.create_index("ix_headings_account_grouping_family", "headings", ["account_id", "grouping_family"])

    op.create_table(
        "heading_families",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("heading_id", sa.BigInteger(), nullable=False),
        sa.Column("family_name", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["heading_id"], ["headings.heading_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("heading_id", "family_name", name="uq_heading_families_heading_family"),
        sa.CheckConstraint("TRIM(family_name) <> ''", name="ck_heading_families_family_name_not_blank"),
    )
    op.create_index("ix_heading_families_family_name", "heading_families", ["family_name"])

    op.create_table(
        "import_batches",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("context_family", sa.String(length=255), nullable=True),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("headings_count", sa.Integer(), nullable=False),
        sa.Column("imported_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("imported_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
        sa.CheckConstraint("headings_count > 0", name="ck_import_batches_headings_count_positive"),
    )
    op.create_index("ix_import_batches_account_imported_at", "import_batches", ["account_id", "imported_at"])

    op.create_table(
        "import_batch_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("batch_id", sa.BigInteger(), nullable=False),
        sa.Column("heading_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["batch_id"], ["import_batches.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["heading_id"], ["headings.heading_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("batch_id", "heading_id", name="uq_import_batch_items_batch_heading"),
    )
    op.create_index("ix_import_batch_items_heading_id", "import_batch_items", ["heading_id"])

    op.create_table(
        "existing_heading_snapshots",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=True),
        sa.Column("uploaded_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("uploaded_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
    )
    op.create_index(
        "ix_existing_snapshots_account_uploaded_at", "existing_heading_snapshots", ["account_id", "uploaded_at"]
    )
    op.create_index(
        "ix_existing_snapshots_account_is_active", "existing_heading_snapshots", ["account_id", "is_active"]
    )

    op.create_table(
        "existing_heading_snapshot_items",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("snapshot_id", sa.BigInteger(), nullable=False),
        sa.Column("heading_id", sa.BigInteger(), nullable=True),
        sa.Column("source_heading_id", sa.BigInteger(), nullable=True),
        sa.Column("heading_name", sa.String(length=255), nullable=False),
        sa.Column("rank_points", sa.String(length=64), nullable=True),
        sa.Column("definition", sa.Text(), nullable=True),
        sa.Column("category", sa.String(length=255), nullable=True),
        sa.Column("family", sa.String(length=255), nullable=True),
        sa.Column("company_type", sa.String(length=255), nullable=True),
        sa.Column("profile_description", sa.Text(), nullable=True),
        sa.Column("site_link", sa.Text(), nullable=True),
        sa.Column("quality", sa.String(length=255), nullable=True),
        sa.Column("source_last_updated", sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint(["snapshot_id"], ["existing_heading_snapshots.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["heading_id"], ["headings.heading_id"], ondelete="SET NULL"),
        sa.CheckConstraint("TRIM(heading_name) <> ''", name="ck_snapshot_items_heading_name_not_blank"),
    )
    op.create_index(
        "ix_existing_heading_snapshot_items_snapshot_id", "existing_heading_snapshot_items", ["snapshot_id"]
    )

    op.create_table(
        "pdms",
        sa.Column("pdm_id", sa.BigInteger(), primary_key=True, autoincrement=False, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("is_copro", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("url", sa.Text(), nullable=True),
        sa.Column("company_type", sa.JSON(), nullable=False),
        sa.Column("type_of_proof", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("word_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("uploaded", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("qc_status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("rectification_status", sa.String(length=20), nullable=False, server_default="Not Needed"),
        sa.Column("validation_status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("is_qc_edited", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_description_updated", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("updated_by_user_id", sa.String(length=255), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
        sa.CheckConstraint(_in("qc_status", QC_STATUSES), name="ck_pdms_qc_status"),
        sa.CheckConstraint(_in("rectification_status", RECTIFICATION_STATUSES), name="ck_pdms_rectification_status"),
        sa.CheckConstraint(_in("validation_status", VALIDATION_STATUSES), name="ck_pdms_validation_status"),
        sa.CheckConstraint("TRIM(description) <> ''", name="ck_pdms_description_not_blank"),
        sa.CheckConstraint("word_count >= 0", name="ck_pdms_word_count_non_negative"),
    )
    op.create_index("ix_pdms_account_created_at", "pdms", ["account_id", "created_at"])
    op.create_index("ix_pdms_account_qc_status", "pdms", ["account_id", "qc_status"])
    op.create_index("ix_pdms_account_uploaded", "pdms", ["account_id", "uploaded"])

    op.create_table(
        "pdm_headings",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("pdm_id", sa.BigInteger(), nullable=False),
        sa.Column("heading_id", sa.BigInteger(), nullable=False),
        sa.Column("sort_order", sa.SmallInteger(), nullable=False),
        sa.ForeignKeyConstraint(["pdm_id"], ["pdms.pdm_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["heading_id"], ["headings.heading_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("pdm_id", "heading_id", name="uq_pdm_headings_pdm_heading"),
        sa.UniqueConstraint("pdm_id", "sort_order", name="uq_pdm_headings_pdm_sort_order"),
        sa.CheckConstraint("sort_order BETWEEN 1 AND 8", name="ck_pdm_headings_sort_order_range"),
    )
    op.create_index("ix_pdm_headings_heading_id", "pdm_headings", ["heading_id"])

    op.create_table(
        "pdm_status_events",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("pdm_id", sa.BigInteger(), nullable=False),
        sa.Column("event_type", sa.String(length=40), nullable=False),
        sa.Column("from_state", sa.JSON(), nullable=True),
        sa.Column("to_state", sa.JSON(), nullable=True),
        sa.Column("actor_user_id", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(_in("event_type", STATUS_EVENT_TYPES), name="ck_pdm_status_events_event_type"),
    )
    op.create_index(
        "ix_pdm_status_events_account_pdm_created_at",
        "pdm_status_events",
        ["account_id", "pdm_id", "created_at"],
    )
    op.create_index("ix_pdm_status_events_event_type", "pdm_status_events", ["event_type"])

    op.create_table(
        "pdm_qc_feedback",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("pdm_id", sa.BigInteger(), nullable=False),
        sa.Column("updated_description", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("feedback_user_id", sa.String(length=255), nullable=True),
        sa.Column("feedback_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        *_timestamps(),
        sa.ForeignKeyConstraint(["pdm_id"], ["pdms.pdm_id"], ondelete="CASCADE"),
        sa.UniqueConstraint("pdm_id", name="uq_pdm_qc_feedback_pdm_id"),
    )
    op.create_index("ix_pdm_qc_feedback_feedback_at", "pdm_qc_feedback", ["feedback_at"])

    op.create_table(
        "pdm_qc_feedback_errors",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("feedback_id", sa.BigInteger(), nullable=False),
        sa.Column("error_category", sa.String(length=255), nullable=False),
        sa.ForeignKeyConstraint(["feedback_id"], ["pdm_qc_feedback.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("feedback_id", "error_category", name="uq_feedback_errors_feedback_category"),
        sa.CheckConstraint("TRIM(error_category) <> ''", name="ck_feedback_errors_category_not_blank"),
    )
    op.create_index("ix_pdm_qc_feedback_errors_error_category", "pdm_qc_feedback_errors", ["error_category"])

    op.create_table(
        "pdm_feedback_history",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("pdm_id", sa.BigInteger(), nullable=False),
        sa.Column("feedback_user_id", sa.String(length=255), nullable=True),
        sa.Column("feedback_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_description", sa.Text(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("errors_json", sa.JSON(), nullable=True),
        sa.ForeignKeyConstraint(["pdm_id"], ["pdms.pdm_id"], ondelete="CASCADE"),
    )
    op.create_index("ix_pdm_feedback_history_pdm_feedback_at", "pdm_feedback_history", ["pdm_id", "feedback_at"])

    op.create_table(
        "qc_errors",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("heading_id", sa.BigInteger(), nullable=True),
        sa.Column("error_category", sa.String(length=255), nullable=False),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("qc_status", sa.String(length=20), nullable=False, server_default="error"),
        sa.Column("rectification_status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("validation_status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("reported_by_user_id", sa.String(length=255), nullable=True),
        sa.Column("reported_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["heading_id"], ["headings.heading_id"], ondelete="SET NULL"),
        sa.CheckConstraint(_in("qc_status", QC_STATUSES), name="ck_qc_errors_qc_status"),
        sa.CheckConstraint(
            _in("rectification_status", RECTIFICATION_STATUSES), name="ck_qc_errors_rectification_status"
        ),
        sa.CheckConstraint(_in("validation_status", VALIDATION_STATUSES), name="ck_qc_errors_validation_status"),
        sa.CheckConstraint("TRIM(error_category) <> ''", name="ck_qc_errors_error_category_not_blank"),
        sa.CheckConstraint(
            "resolved_at IS NULL OR resolved_at >= reported_at", name="ck_qc_errors_resolved_after_reported"
        ),
    )
    op.create_index("ix_qc_errors_account_reported_at", "qc_errors", ["account_id", "reported_at"])
    op.create_index(
        "ix_qc_errors_account_rect_valid", "qc_errors", ["account_id", "rectification_status", "validation_status"]
    )

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("account_id", sa.BigInteger(), nullable=False),
        sa.Column("action", sa.String(length=255), nullable=False),
        sa.Column("details", sa.Text(), nullable=True),
        sa.Column("actor_user_id", sa.String(length=255), nullable=True),
        sa.Column("entity_type", sa.String(length=64), nullable=True),
        sa.Column("entity_id", sa.String(length=128), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["account_id"], ["accounts.account_id"], ondelete="CASCADE"),
    )
    op.create_index("ix_activity_logs_account_created_at", "activity_logs", ["account_id", "created_at"])


def downgrade() -> None:
    op.drop_table("activity_logs")
    op.drop_table("qc_errors")
    op.drop_table("pdm_feedback_history")
    op.drop_table("pdm_qc_feedback_errors")
    op.drop_table("pdm_qc_feedback")
    op.drop_table("pdm_status_events")
    op.drop_table("pdm_headings")
    op.drop_table("pdms")
    op.drop_table("existing_heading_snapshot_items")
    op.drop_table("existing_heading_snapshots")
    op.drop_table("import_batch_items")
    op.drop_table("import_batches")
    op.drop_table("heading_families")
    op.drop_table("headings")
    op.drop_table("accounts")
