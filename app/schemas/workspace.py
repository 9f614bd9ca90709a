from datetime import datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.constants.workspace import (
    AccountStatus,
    ActivityEntityType,
    HeadingStatus,
    PDM_HEADING_MAX,
    PDM_HEADING_MIN,
    PdmStatusEventType,
    QcStatus,
    RectificationStatus,
    ValidationStatus,
    WorkflowStage,
)


class OrmSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class TimestampSchema(OrmSchema):
    created_at: datetime
    updated_at: datetime


class PageMeta(BaseModel):
    current_page: int
    last_page: int
    per_page: int
    total: int


# Accounts


class AccountCreate(BaseModel):
    account_id: int = Field(..., ge=1, le=99_999_999)
    account_name: str = Field(..., min_length=1, max_length=255)
    status: AccountStatus = AccountStatus.ASSIGNED


class AccountRead(TimestampSchema):
    account_id: int
    account_name: str
    status: AccountStatus


# Headings


class HeadingRead(TimestampSchema):
    heading_id: int
    account_id: int
    heading_name: str
    families: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("family_names", "families")
    )
    grouping_family: Optional[str] = None
    supported_link: Optional[str] = None
    workflow_stage: WorkflowStage
    status: HeadingStatus
    rank_points: Optional[str] = None
    heading_type: Optional[str] = None
    source_status: Optional[str] = None
    source_updated_at: Optional[str] = None
    definition: Optional[str] = None
    aliases: Optional[str] = None
    category: Optional[str] = None
    companies: Optional[str] = None
    created_by_user_id: Optional[str] = None
    updated_by_user_id: Optional[str] = None


class HeadingUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    heading_name: Optional[str] = Field(None, max_length=255)
    families: Optional[list[Optional[str]]] = None
    grouping_family: Optional[str] = Field(None, max_length=255)
    supported_link: Optional[str] = None
    workflow_stage: Optional[WorkflowStage] = None
    status: Optional[HeadingStatus] = None
    rank_points: Optional[str] = Field(None, max_length=64)
    heading_type: Optional[str] = Field(None, max_length=255)
    source_status: Optional[str] = Field(None, max_length=255)
    source_updated_at: Optional[str] = Field(None, max_length=255)
    definition: Optional[str] = None
    aliases: Optional[str] = None
    category: Optional[str] = Field(None, max_length=255)
    companies: Optional[str] = None

    @field_validator("heading_name")
    @classmethod
    def _heading_name_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Heading name cannot be null.")
        value = value.strip()
        if not value:
            raise ValueError("Heading name cannot be blank.")
        return value

    @field_validator("workflow_stage", "status")
    @classmethod
    def _enum_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Value cannot be null.")
        return value


class HeadingPage(BaseModel):
    headings: list[HeadingRead]
    meta: PageMeta


class HeadingImportResponse(BaseModel):
    batch_id: int
    headings_count: int
    headings: list[HeadingRead]


class ImportBatchRead(OrmSchema):
    id: int
    account_id: int
    context_family: Optional[str] = None
    file_name: str
    headings_count: int
    imported_by_user_id: Optional[str] = None
    imported_at: datetime
    items_count: int = 0


# Beforeproof snapshots


class SnapshotRead(OrmSchema):
    id: int
    account_id: int
    file_name: Optional[str] = None
    uploaded_by_user_id: Optional[str] = None
    uploaded_at: datetime
    is_active: bool
    items_count: Optional[int] = None


class SnapshotItemRead(OrmSchema):
    id: int
    snapshot_id: int
    heading_id: Optional[int] = None
    source_heading_id: Optional[int] = None
    heading_name: str
    rank_points: Optional[str] = None
    definition: Optional[str] = None
    category: Optional[str] = None
    family: Optional[str] = None
    company_type: Optional[str] = None
    profile_description: Optional[str] = None
    site_link: Optional[str] = None
    quality: Optional[str] = None
    source_last_updated: Optional[str] = None


class SnapshotUploadResponse(BaseModel):
    snapshot_id: int
    items_count: int
    items: list[SnapshotItemRead]


class ActiveSnapshotResponse(BaseModel):
    snapshot: Optional[SnapshotRead] = None
    items: list[SnapshotItemRead] = Field(default_factory=list)


# PDMs


class PdmHeadingInput(BaseModel):
    id: int = Field(..., ge=1)
    sort_order: int = Field(..., ge=PDM_HEADING_MIN, le=PDM_HEADING_MAX)


def _validate_heading_inputs(headings: list[PdmHeadingInput]) -> list[PdmHeadingInput]:
    sort_orders = [heading.sort_order for heading in headings]
    if len(sort_orders) != len(set(sort_orders)):
        raise ValueError("Sort order values must be unique.")
    heading_ids = [heading.id for heading in headings]
    if len(heading_ids) != len(set(heading_ids)):
        raise ValueError("Heading IDs must be unique.")
    return headings


def _normalize_company_types(values: list[Optional[str]]) -> list[str]:
    normalized: list[str] = []
    for value in values:
        if value is None:
            continue
        value = value.strip()
        if value and value not in normalized:
            normalized.append(value)
    if not normalized:
        raise ValueError("At least one company type is required.")
    return normalized


def _strip_optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


class PdmCreate(BaseModel):
    pdm_id: Optional[int] = Field(None, ge=1)
    is_copro: bool
    url: Optional[str] = None
    company_type: list[Optional[str]] = Field(..., min_length=1)
    type_of_proof: Optional[str] = Field(None, max_length=255)
    description: str
    comment: Optional[str] = None
    word_count: Optional[int] = Field(None, ge=0)
    heading_ids: list[PdmHeadingInput] = Field(..., min_length=PDM_HEADING_MIN, max_length=PDM_HEADING_MAX)

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Description cannot be blank.")
        return value

    @field_validator("company_type")
    @classmethod
    def _company_type(cls, value: list[Optional[str]]) -> list[str]:
        return _normalize_company_types(value)

    @field_validator("url", "type_of_proof", "comment")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return _strip_optional(value)

    @field_validator("heading_ids")
    @classmethod
    def _heading_ids(cls, value: list[PdmHeadingInput]) -> list[PdmHeadingInput]:
        return _validate_heading_inputs(value)

    @model_validator(mode="after")
    def _url_required_without_copro(self) -> "PdmCreate":
        if not self.is_copro and self.url is None:
            raise ValueError("URL is required when is_copro is false.")
        return self


class PdmUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    is_copro: Optional[bool] = None
    url: Optional[str] = None
    company_type: Optional[list[Optional[str]]] = Field(None, min_length=1)
    type_of_proof: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    comment: Optional[str] = None
    word_count: Optional[int] = Field(None, ge=0)
    heading_ids: Optional[list[PdmHeadingInput]] = Field(
        None, min_length=PDM_HEADING_MIN, max_length=PDM_HEADING_MAX
    )

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Description cannot be null.")
        value = value.strip()
        if not value:
            raise ValueError("Description cannot be blank.")
        return value

    @field_validator("company_type")
    @classmethod
    def _company_type(cls, value: Optional[list[Optional[str]]]) -> list[str]:
        if value is None:
            raise ValueError("Company type cannot be null.")
        return _normalize_company_types(value)

    @field_validator("url", "type_of_proof", "comment")
    @classmethod
    def _strip(cls, value: Optional[str]) -> Optional[str]:
        return _strip_optional(value)

    @field_validator("heading_ids")
    @classmethod
    def _heading_ids(cls, value: Optional[list[PdmHeadingInput]]) -> list[PdmHeadingInput]:
        if value is None:
            raise ValueError("Heading IDs cannot be null.")
        return _validate_heading_inputs(value)

    @field_validator("is_copro")
    @classmethod
    def _is_copro_not_null(cls, value: Optional[bool]) -> bool:
        if value is None:
            raise ValueError("is_copro cannot be null.")
        return value


class PdmUploadedUpdate(BaseModel):
    uploaded: bool


class PdmQcStatusUpdate(BaseModel):
    qc_status: QcStatus


class PdmRectificationUpdate(BaseModel):
    rectification_status: RectificationStatus


class PdmValidationUpdate(BaseModel):
    validation_status: ValidationStatus


class PdmHeadingRead(OrmSchema):
    heading_id: int
    sort_order: int
    heading_name: Optional[str] = None


class QcFeedbackRead(OrmSchema):
    id: int
    pdm_id: int
    updated_description: Optional[str] = None
    comment: Optional[str] = None
    error_categories: list[str] = Field(default_factory=list)
    feedback_user_id: Optional[str] = None
    feedback_at: datetime


class PdmRead(TimestampSchema):
    pdm_id: int
    account_id: int
    is_copro: bool
    url: Optional[str] = None
    company_type: list[str] = Field(default_factory=list)
    type_of_proof: Optional[str] = None
    description: str
    comment: Optional[str] = None
    word_count: int
    uploaded: bool
    qc_status: QcStatus
    rectification_status: RectificationStatus
    validation_status: ValidationStatus
    is_qc_edited: bool
    is_description_updated: bool
    created_by_user_id: Optional[str] = None
    updated_by_user_id: Optional[str] = None
    headings: list[PdmHeadingRead] = Field(
        default_factory=list, validation_alias=AliasChoices("pdm_headings", "headings")
    )
    qc_feedback: Optional[QcFeedbackRead] = None


class PdmPage(BaseModel):
    pdms: list[PdmRead]
    meta: PageMeta


class PdmStatusEventRead(OrmSchema):
    id: int
    pdm_id: int
    event_type: PdmStatusEventType
    from_state: Optional[dict[str, Any]] = None
    to_state: Optional[dict[str, Any]] = None
    actor_user_id: Optional[str] = None
    created_at: datetime


# QC feedback


class QcFeedbackSubmit(BaseModel):
    updated_description: Optional[str] = None
    comment: Optional[str] = None
    error_categories: list[Optional[str]] = Field(default_factory=list)


class FeedbackHistoryRead(OrmSchema):
    id: int
    pdm_id: int
    feedback_user_id: Optional[str] = None
    feedback_at: datetime
    updated_description: Optional[str] = None
    comment: Optional[str] = None
    error_categories: list[str] = Field(
        default_factory=list, validation_alias=AliasChoices("errors_json", "error_categories")
    )

    @field_validator("error_categories", mode="before")
    @classmethod
    def _null_categories(cls, value: Any) -> Any:
        return value or []


class QcFeedbackResponse(BaseModel):
    feedback: Optional[QcFeedbackRead] = None
    pdm: Optional[PdmRead] = None


# QC errors


class QcErrorCreate(BaseModel):
    heading_id: Optional[int] = Field(None, ge=1)
    error_category: str = Field(..., max_length=255)
    comment: Optional[str] = None

    @field_validator("error_category")
    @classmethod
    def _category_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Error category cannot be blank.")
        return value


class QcErrorUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    qc_status: Optional[QcStatus] = None
    rectification_status: Optional[RectificationStatus] = None
    validation_status: Optional[ValidationStatus] = None
    resolved_at: Optional[datetime] = None
    comment: Optional[str] = None


class QcErrorRead(TimestampSchema):
    id: int
    account_id: int
    heading_id: Optional[int] = None
    heading_name: Optional[str] = None
    error_category: str
    comment: Optional[str] = None
    qc_status: QcStatus
    rectification_status: RectificationStatus
    validation_status: ValidationStatus
    reported_by_user_id: Optional[str] = None
    reported_at: datetime
    resolved_at: Optional[datetime] = None


# Activity log


class ActivityLogRead(OrmSchema):
    id: int
    account_id: int
    action: str
    details: Optional[str] = None
    actor_user_id: Optional[str] = None
    entity_type: Optional[ActivityEntityType] = None
    entity_id: Optional[str] = None
    created_at: datetime


class ActivityLogPage(BaseModel):
    activity: list[ActivityLogRead]
    meta: PageMeta


class QcErrorPage(BaseModel):
    errors: list[QcErrorRead]
    meta: PageMeta
