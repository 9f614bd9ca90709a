from __future__ import annotations

from dataclasses import dataclass
from math import ceil
from typing import Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session

T = TypeVar("T")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: list[T]
    page: int
    per_page: int
    total: int

    @property
    def last_page(self) -> int:
        return max(1, ceil(self.total / self.per_page)) if self.per_page else 1


def paginate(db: Session, statement: Select, *, page: int = 1, per_page: int = 50) -> Page:
    page = max(page, 1)
    total = db.execute(select(func.count()).select_from(statement.order_by(None).subquery())).scalar_one()
    rows = db.execute(statement.offset((page - 1) * per_page).limit(per_page)).scalars().unique()
    return Page(items=list(rows), page=page, per_page=per_page, total=total)
