from enum import Enum


class AccountStatus(str, Enum):
    ASSIGNED = "assigned"
    IN_PROGRESS = "inprogress"
    ON_HOLD = "onhold"
    COMPLETED = "completed"


class WorkflowStage(str, Enum):
    IMPORTED = "imported"
    SUPPORTED = "supported"
    ASSIGNED = "assigned"


class HeadingStatus(str, Enum):
    EXISTING = "existing"
    RANKED = "ranked"
    ADDITIONAL = "additional"


class QcStatus(str, Enum):
    PENDING = "pending"
    CHECKED = "checked"
    ERROR = "error"


class RectificationStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"
    NOT_NEEDED = "Not Needed"


class ValidationStatus(str, Enum):
    PENDING = "Pending"
    DONE = "Done"


class PdmStatusEventType(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    QC_FEEDBACK_SUBMITTED = "qc_feedback_submitted"
    QC_STATUS_CHANGED = "qc_status_changed"
    RECTIFICATION_STATUS_CHANGED = "rectification_status_changed"
    VALIDATION_STATUS_CHANGED = "validation_status_changed"
    PUBLISHED_STATUS_CHANGED = "published_status_changed"


class ActivityEntityType(str, Enum):
    PDM = "pdm"
    HEADING = "heading"
    QC_ERROR = "qc_error"
    IMPORT_BATCH = "import_batch"
    EXISTING_HEADING_SNAPSHOT = "existing_heading_snapshot"


PDM_HEADING_MIN = 1
PDM_HEADING_MAX = 8


def enum_values(enum_cls: type[Enum]) -> tuple[str, ...]:
    return tuple(member.value for member in enum_cls)


def check_in(column: str, enum_cls: type[Enum]) -> str:
    """Render a SQL ``IN`` check expression for an enumeration column."""
    quoted = ", ".join(f"'{value}'" for value in enum_values(enum_cls))
    return f"{column} IN ({quoted})"
