from __future__ import annotations

import re
from typing import Iterable, Optional

from sqlalchemy import delete
from sqlalchemy.orm import Session

from app.models import Heading, HeadingFamily

_FAMILY_SPLIT_PATTERN = re.compile(r"\s*,\s*")


def split_families(value: Optional[str]) -> list[str]:
    if value is None or not value.strip():
        return []
    return [token for token in _FAMILY_SPLIT_PATTERN.split(value) if token]


def normalize_tags(tags: Iterable[object]) -> list[str]:
    """Trim, drop empties and dedupe (case-sensitive) keeping first-seen order."""
    normalized: list[str] = []
    seen: set[str] = set()
    for tag in tags:
        if tag is None:
            continue
        value = str(tag).strip()
        if not value or value in seen:
            continue
        seen.add(value)
        normalized.append(value)
    return normalized


normalize_families = normalize_tags


def with_context_family(families: list[str], context_family: Optional[str]) -> list[str]:
    if context_family is None:
        return families
    context = context_family.strip()
    if not context or context in families:
        return families
    return [*families, context]


def replace_heading_families(db: Session, heading: Heading, families: Iterable[str]) -> None:
    """Delete every family row of the heading and reinsert the given set."""
    normalized = normalize_families(families)
    db.flush()
    db.expire(heading, ["families"])
    db.execute(
        delete(HeadingFamily).where(HeadingFamily.heading_id == heading.heading_id),
        execution_options={"synchronize_session": "fetch"},
    )
    db.add_all([HeadingFamily(heading_id=heading.heading_id, family_name=name) for name in normalized])
    heading.families_json = normalized
    db.flush()


__all__ = [
    "split_families",
    "normalize_tags",
    "normalize_families",
    "with_context_family",
    "replace_heading_families",
]
