"""
Offset pagination shared by every list view.

Two strategies produce the same ``Page``: ``paginate_query`` pushes
OFFSET/LIMIT into the SQL statement, ``paginate_sequence`` slices a list
that has already been materialised and ordered in memory.
"""
import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import get_settings

settings = get_settings()

RawNumber = Union[str, int, None]


def _to_int(value: RawNumber) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


@dataclass(frozen=True)
class PageParams:
    page: int = 1
    limit: int = settings.DEFAULT_PAGE_SIZE

    @classmethod
    def from_raw(cls, page: RawNumber = None, limit: RawNumber = None) -> "PageParams":
        """Build params from untrusted input. Bad values are clamped or defaulted, never rejected."""
        page_num = _to_int(page)
        if page_num is None or page_num < 1:
            page_num = 1

        limit_num = _to_int(limit)
        if limit_num is None:
            limit_num = settings.DEFAULT_PAGE_SIZE
        limit_num = min(max(limit_num, 1), settings.MAX_PAGE_SIZE)

        return cls(page=page_num, limit=limit_num)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


@dataclass
class Page:
    docs: List[Any]
    total_docs: int
    params: PageParams = field(default_factory=PageParams)

    @property
    def total_pages(self) -> int:
        return max(1, math.ceil(self.total_docs / self.params.limit))

    @property
    def has_next_page(self) -> bool:
        return self.params.page * self.params.limit < self.total_docs

    @property
    def has_prev_page(self) -> bool:
        return self.params.page > 1

    def to_dict(self, docs_key: str = "docs", **extra: Any) -> Dict[str, Any]:
        return {
            docs_key: self.docs,
            **extra,
            "totalDocs": self.total_docs,
            "limit": self.params.limit,
            "page": self.params.page,
            "totalPages": self.total_pages,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
            "nextPage": self.params.page + 1 if self.has_next_page else None,
            "prevPage": self.params.page - 1 if self.has_prev_page else None,
        }


async def paginate_query(
    db: AsyncSession,
    stmt: Select,
    params: PageParams,
    row_mapper: Callable[[Any], Any],
) -> Page:
    """Window an ordered SELECT in the database.

    ``stmt`` must already carry its ORDER BY; the total is counted over the
    same filtered statement with ordering stripped.
    """
    count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
    total = (await db.execute(count_stmt)).scalar_one()

    result = await db.execute(stmt.offset(params.offset).limit(params.limit))
    docs = [row_mapper(row) for row in result.all()]

    return Page(docs=docs, total_docs=total, params=params)


def paginate_sequence(items: Sequence[Any], params: PageParams, total_docs: Optional[int] = None) -> Page:
    """Window an already ordered, materialised sequence.

    Pass ``total_docs`` when ``items`` is a capped prefix of a larger result.
    """
    window = list(items[params.offset:params.offset + params.limit])
    total = len(items) if total_docs is None else max(total_docs, len(items))
    return Page(docs=window, total_docs=total, params=params)
