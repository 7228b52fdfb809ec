from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from core.cache import RowCache
from core.config import CATEGORIES, CategoryPolicy
from core.errors import Forbidden, UnknownCategory
from core.filters import SearchQuery
from core.mapping import RawRow, Record, count_complete, normalize_rows
from core.query import SearchResult, search
from core.sources import RecordSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Category:
    id: str
    label: str
    occupancy: int

    def to_dict(self) -> Dict[str, object]:
        return {"room_id": self.id, "label": self.label, "occupancy": self.occupancy}


@dataclass(frozen=True)
class UpdateResult:
    category_id: str
    row_ref: str
    column: str
    value: str

    def to_dict(self) -> Dict[str, str]:
        return {"status": "ok", "row_ref": self.row_ref, "reason": self.value}


class DashboardService:
    """Answers dashboard requests from cached sheet rows.

    The cache is keyed by category id; every accepted write invalidates the
    written category's entry and nothing else.
    """

    def __init__(
        self,
        source: RecordSource,
        cache: RowCache,
        categories: Sequence[CategoryPolicy] = CATEGORIES,
    ) -> None:
        self.source = source
        self.cache = cache
        self.categories: Dict[str, CategoryPolicy] = {c.category_id: c for c in categories}

    def policy(self, category_id: str) -> CategoryPolicy:
        try:
            return self.categories[category_id]
        except KeyError:
            raise UnknownCategory(category_id) from None

    def _rows(self, policy: CategoryPolicy) -> Tuple[RawRow, ...]:
        return self.cache.get_or_fetch(
            policy.category_id,
            lambda: self.source.fetch_rows(policy.sheet_name, policy.column_range),
        )

    def init_dashboard(self) -> List[Category]:
        out: List[Category] = []
        for policy in self.categories.values():
            rows = self._rows(policy)
            out.append(Category(id=policy.category_id, label=policy.label, occupancy=count_complete(rows, policy.variant)))
        return out

    def list_all_records(self, category_id: str) -> List[Record]:
        policy = self.policy(category_id)
        return normalize_rows(self._rows(policy), policy.variant)

    def enter_category(self, category_id: str, query: SearchQuery) -> SearchResult:
        policy = self.policy(category_id)
        if not query.text.strip():
            return search([], query)
        records = normalize_rows(self._rows(policy), policy.variant)
        result = search(records, query)
        logger.debug(
            "[%s] search %r date=%s status=%s -> %d hits",
            category_id,
            query.text,
            query.date_filter,
            query.status_filter,
            result.total_records,
        )
        return result

    def update_field(
        self,
        category_id: str,
        row_ref: str,
        new_value: str,
        field: Optional[str] = None,
    ) -> UpdateResult:
        policy = self.policy(category_id)
        if policy.enforce_field and (field or "").strip().upper() != policy.editable_column:
            raise Forbidden(f"Edit only allowed on column {policy.editable_column} (REASON) for {policy.label}.")

        self.source.write_cell(policy.sheet_name, row_ref, policy.editable_column, new_value)
        self.cache.invalidate(policy.category_id)
        logger.info('Audit: [%s] Row %s updated to "%s"', category_id, row_ref, new_value)
        return UpdateResult(category_id=category_id, row_ref=str(row_ref), column=policy.editable_column, value=new_value)
