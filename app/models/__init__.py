from app.models.entities import Account, ActivityLog, TimestampMixin
from app.models.workspace import (
    ExistingHeadingSnapshot,
    ExistingHeadingSnapshotItem,
    Heading,
    HeadingFamily,
    ImportBatch,
    ImportBatchItem,
    Pdm,
    PdmFeedbackHistory,
    PdmHeading,
    PdmQcFeedback,
    PdmQcFeedbackError,
    PdmStatusEvent,
    QcError,
)

__all__ = [
    "Account",
    "ActivityLog",
    "TimestampMixin",
    "ExistingHeadingSnapshot",
    "ExistingHeadingSnapshotItem",
    "Heading",
    "HeadingFamily",
    "ImportBatch",
    "ImportBatchItem",
    "Pdm",
    "PdmFeedbackHistory",
    "PdmHeading",
    "PdmQcFeedback",
    "PdmQcFeedbackError",
    "PdmStatusEvent",
    "QcError",
]
