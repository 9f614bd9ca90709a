from app.schemas.workspace import (
    OrmSchema,
    TimestampSchema,
    PageMeta,
    AccountCreate,
    AccountRead,
    HeadingRead,
    HeadingUpdate,
    HeadingPage,
    HeadingImportResponse,
    ImportBatchRead,
    SnapshotRead,
    SnapshotItemRead,
    SnapshotUploadResponse,
    ActiveSnapshotResponse,
    PdmHeadingInput,
    PdmCreate,
    PdmUpdate,
    PdmUploadedUpdate,
    PdmQcStatusUpdate,
    PdmRectificationUpdate,
    PdmValidationUpdate,
    PdmHeadingRead,
    QcFeedbackRead,
    PdmRead,
    PdmPage,
    PdmStatusEventRead,
    QcFeedbackSubmit,
    FeedbackHistoryRead,
    QcFeedbackResponse,
    QcErrorCreate,
    QcErrorUpdate,
    QcErrorRead,
    QcErrorPage,
    ActivityLogRead,
    ActivityLogPage,
)

__all__ = [
    "OrmSchema",
    "TimestampSchema",
    "PageMeta",
    "AccountCreate",
    "AccountRead",
    "HeadingRead",
    "HeadingUpdate",
    "HeadingPage",
    "HeadingImportResponse",
    "ImportBatchRead",
    "SnapshotRead",
    "SnapshotItemRead",
    "SnapshotUploadResponse",
    "ActiveSnapshotResponse",
    "PdmHeadingInput",
    "PdmCreate",
    "PdmUpdate",
    "PdmUploadedUpdate",
    "PdmQcStatusUpdate",
    "PdmRectificationUpdate",
    "PdmValidationUpdate",
    "PdmHeadingRead",
    "QcFeedbackRead",
    "PdmRead",
    "PdmPage",
    "PdmStatusEventRead",
    "QcFeedbackSubmit",
    "FeedbackHistoryRead",
    "QcFeedbackResponse",
    "QcErrorCreate",
    "QcErrorUpdate",
    "QcErrorRead",
    "QcErrorPage",
    "ActivityLogRead",
    "ActivityLogPage",
]
