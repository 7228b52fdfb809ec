from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, List, Sequence

from core.filters import SearchQuery
from core.mapping import Record


@dataclass(frozen=True)
class SearchResult:
    page: List[Record] = field(default_factory=list)
    total_records: int = 0
    total_pages: int = 0
    current_page: int = 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "matched_records": [r.to_dict() for r in self.page],
            "total_records": self.total_records,
            "total_pages": self.total_pages,
            "current_page": self.current_page,
        }


def to_sheet_date(value: date) -> str:
    """2025-03-05 -> "05/03/2025", the format dates are stored under."""
    return value.strftime("%d/%m/%Y")


def match_text(records: Sequence[Record], text: str) -> List[Record]:
    # Customer names are deliberately not searched; only the two ID columns.
    needle = text.lower()
    return [r for r in records if any(needle in ident.lower() for ident in r.identifiers)]


def match_date(records: Sequence[Record], target: date) -> List[Record]:
    # Exact string comparison: "5/3/2025" does not match "05/03/2025".
    wanted = to_sheet_date(target)
    return [r for r in records if r.due_date == wanted]


def match_status(records: Sequence[Record], status: str) -> List[Record]:
    if status == "filled":
        return [r for r in records if r.reason.strip()]
    if status == "empty":
        return [r for r in records if not r.reason.strip()]
    return list(records)


def paginate(records: Sequence[Record], page: int, page_size: int) -> SearchResult:
    total = len(records)
    total_pages = math.ceil(total / page_size) if total else 0
    current = max(1, min(page, max(total_pages, 1)))
    start = (current - 1) * page_size
    return SearchResult(
        page=list(records[start:start + page_size]),
        total_records=total,
        total_pages=total_pages,
        current_page=current,
    )


def search(records: Sequence[Record], query: SearchQuery) -> SearchResult:
    if not query.text.strip():
        return SearchResult()

    matched = match_text(records, query.text)
    if query.date_filter is not None:
        matched = match_date(matched, query.date_filter)
    matched = match_status(matched, query.status_filter)
    return paginate(matched, query.page, query.page_size)
