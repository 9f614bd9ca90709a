"""Error taxonomy shared by the heading, snapshot, PDM and QC services.

Every error names the request field it can be attributed to so the routers can
return a field-scoped message instead of a generic failure.
"""

from __future__ import annotations

from typing import Iterable, Sequence


class WorkspaceError(Exception):
    field: str | None = None

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if field is not None:
            self.field = field


class NoUsableRows(WorkspaceError):
    field = "file"

    def __init__(self, message: str = "The file does not contain any usable heading rows.") -> None:
        super().__init__(message)


class NoValidRows(WorkspaceError):
    field = "file"

    def __init__(self, message: str = "Upload did not contain any valid heading rows.") -> None:
        super().__init__(message)


class HeadingOwnershipError(WorkspaceError):
    field = "heading_ids"

    def __init__(self, heading_ids: Iterable[int], *, field: str | None = None) -> None:
        self.heading_ids: Sequence[int] = sorted(set(heading_ids))
        listed = ", ".join(str(heading_id) for heading_id in self.heading_ids)
        super().__init__(f"Headings do not belong to this account: {listed}.", field=field)


class RangeExhausted(WorkspaceError):
    field = "pdm_id"

    def __init__(self, prefix: int) -> None:
        self.prefix = prefix
        super().__init__(f"Daily PDM id limit reached for {prefix:05d}. Try again tomorrow.")


class NotFound(WorkspaceError):
    def __init__(self, entity_type: str, entity_id: object, *, field: str | None = None) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        label = entity_type.replace("_", " ").capitalize()
        super().__init__(f"{label} {entity_id} not found.", field=field or entity_type)


class UnsupportedEventType(WorkspaceError):
    field = "event_type"

    def __init__(self, event_type: str) -> None:
        self.event_type = event_type
        super().__init__(f"Unsupported status event type: {event_type}")


class IdentifierConflict(WorkspaceError):
    """Raised when a freshly allocated id collides with a concurrently committed row."""

    def __init__(self, entity_type: str, identifier: int) -> None:
        self.entity_type = entity_type
        self.identifier = identifier
        super().__init__(
            f"{entity_type.replace('_', ' ').capitalize()} id {identifier} was allocated concurrently.",
            field=f"{entity_type}_id",
        )


class DuplicatePdmId(WorkspaceError):
    field = "pdm_id"

    def __init__(self, pdm_id: int) -> None:
        self.pdm_id = pdm_id
        super().__init__("A PDM with this id already exists.")


class HeadingInUse(WorkspaceError):
    field = "heading_id"

    def __init__(self, heading_id: int, message: str, *, field: str | None = None) -> None:
        self.heading_id = heading_id
        super().__init__(message, field=field)


class InvalidPayload(WorkspaceError):
    """Business rule violation on an otherwise well-formed payload."""


class SpreadsheetReadError(WorkspaceError):
    field = "file"


__all__ = [
    "WorkspaceError",
    "NoUsableRows",
    "NoValidRows",
    "HeadingOwnershipError",
    "RangeExhausted",
    "NotFound",
    "UnsupportedEventType",
    "IdentifierConflict",
    "DuplicatePdmId",
    "HeadingInUse",
    "InvalidPayload",
    "SpreadsheetReadError",
]
