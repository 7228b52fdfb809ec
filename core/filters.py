from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Literal, Optional

from core.config import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

StatusFilter = Literal["all", "filled", "empty"]
STATUS_FILTERS = ("all", "filled", "empty")


@dataclass(frozen=True)
class SearchQuery:
    text: str = ""
    date_filter: Optional[date] = None
    status_filter: StatusFilter = "all"
    page: int = 1
    page_size: int = DEFAULT_PAGE_SIZE

    def __post_init__(self) -> None:
        if self.page_size < 1:
            raise ValueError(f"page_size must be positive, got {self.page_size}")


def _as_date(value: object) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return default


def normalize_query(raw: dict, *, default_page_size: int = DEFAULT_PAGE_SIZE) -> SearchQuery:
    """Coerce a loosely-typed request body into a SearchQuery.

    ``value`` is accepted as an alias of ``text``. Out-of-range pages are kept
    as-is; the query engine clamps them once the result size is known.
    """
    text = raw.get("text")
    if text is None:
        text = raw.get("value")
    text = "" if text is None else str(text)

    status = str(raw.get("status_filter") or "all").strip().lower()
    if status not in STATUS_FILTERS:
        status = "all"

    page = _as_int(raw.get("page"), 1)
    page_size = _as_int(raw.get("page_size"), default_page_size)
    page_size = max(1, min(MAX_PAGE_SIZE, page_size))

    return SearchQuery(
        text=text,
        date_filter=_as_date(raw.get("date_filter")),
        status_filter=status,  # type: ignore[arg-type]
        page=page,
        page_size=page_size,
    )
