"""
Page/limit pagination shared by every list endpoint.

Pages are 1-based. The response envelope is
``{items, totalPages, currentPage, total}`` with ``totalPages = ceil(total / limit)``.
"""
import math
from dataclasses import dataclass
from typing import Any, List, Sequence

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql import Select

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps (page - 1) * limit inside a signed 64-bit OFFSET for every store
MAX_PAGE = (2**63 - 1) // MAX_LIMIT


@dataclass(frozen=True)
class PageParams:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class PageResult:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def to_dict(self) -> dict:
        return {
            "items": self.items,
            "total_pages": self.total_pages,
            "current_page": self.page,
            "total": self.total,
        }


def search_clause(columns: Sequence[Any], term: str | None):
    """Case-insensitive substring match across columns, OR-combined.

    Returns None when there is nothing to search for. Wildcards in the term
    are escaped so it always matches literally.
    """
    term = (term or "").strip()
    if not term:
        return None
    return or_(*(column.icontains(term, autoescape=True) for column in columns))


def paginate(db: Session, stmt: Select, params: PageParams) -> PageResult:
    """Run ``stmt`` for one page and count the full filtered result"""
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = db.scalar(count_stmt) or 0
    items = db.scalars(stmt.offset(params.offset).limit(params.limit)).unique().all()
    return PageResult(items=list(items), total=total, page=params.page, limit=params.limit)
