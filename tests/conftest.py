"""Shared fakes for the dashboard tests.

FakeSource stands in for the spreadsheet; FakeClock drives cache expiry.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest

from core.cache import RowCache
from core.dashboard import DashboardService
from core.errors import BackingStoreUnavailable, WriteRejected


class FakeClock:
    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSource:
    def __init__(self, sheets: Dict[Optional[str], List[List[Any]]]) -> None:
        self.sheets = sheets
        self.fetches: List[Tuple[Optional[str], str]] = []
        self.writes: List[Tuple[Optional[str], str, str, str]] = []
        self.fail_fetch = False
        self.reject_writes = False

    def fetch_rows(self, sheet_name: Optional[str], column_range: str) -> List[List[Any]]:
        self.fetches.append((sheet_name, column_range))
        if self.fail_fetch:
            raise BackingStoreUnavailable("store offline")
        return [list(row) for row in self.sheets.get(sheet_name, [])]

    def write_cell(self, sheet_name: Optional[str], row_ref: str, column: str, value: str) -> None:
        if self.reject_writes:
            raise WriteRejected("store refused the update")
        self.writes.append((sheet_name, row_ref, column, value))


def default_row(**overrides: Any) -> List[Any]:
    """A complete 11-cell row for the first sheet (A..K)."""
    row = {
        "A": "R01",
        "B": "ID-1001",
        "C": "CX-2001",
        "D": datetime(2025, 3, 1),
        "E": "KTR-01",
        "F": "Budi Santoso",
        "G": "05/03/2025",
        "H": "1500000",
        "I": "3",
        "J": "MOTOR",
        "K": "",
    }
    row.update(overrides)
    return [row[c] for c in "ABCDEFGHIJK"]


def ba_row(**overrides: Any) -> List[Any]:
    """A complete 12-cell row for the BA sheet (B..M)."""
    row = {
        "B": "BA-3001",
        "C": "BX-4001",
        "D": "Kantor",
        "E": "Jakarta",
        "F": "KTR-90",
        "G": "Siti Aminah",
        "H": "Jl. Merdeka 1",
        "I": "10/04/2025",
        "J": "2000000",
        "K": "2",
        "L": "MOBIL",
        "M": "",
    }
    row.update(overrides)
    return [row[c] for c in "BCDEFGHIJKLM"]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> RowCache:
    return RowCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource(
        {
            None: [
                default_row(),
                default_row(B="ID-1002", C="CX-2002", K="customer paid"),
                default_row(B="ID-1003", C="", G="5/3/2025"),
            ],
            "BA": [
                ba_row(),
                ba_row(B="BA-3002", M="visited"),
            ],
        }
    )


@pytest.fixture
def service(source: FakeSource, cache: RowCache) -> DashboardService:
    return DashboardService(source, cache)
