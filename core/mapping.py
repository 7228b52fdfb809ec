"""Row normalization for the two sheet layouts.

Rows arrive as positional cell lists (``A2:K`` for the default sheet, ``B2:M``
for BA). The category decides which mapper runs; row content never does.
Every mapped field is a string, empty when the cell is missing.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Literal, Sequence

from core.config import HEADER_OFFSET, Variant

RawRow = Sequence[Any]

DEFAULT_REQUIRED_SLOTS = 10
BA_REQUIRED_SLOTS = 11


def normalize_date(value: object) -> str:
    """Render a native date as DD/MM/YYYY; strings pass through unchanged."""
    if value is None:
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%d/%m/%Y")
    return _cell_text(value)


def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return str(value).upper()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date)):
        return normalize_date(value)
    return str(value)


def _slot(row: RawRow, idx: int) -> str:
    return _cell_text(row[idx]) if idx < len(row) else ""


def _row_ref(index: int) -> str:
    return str(index + HEADER_OFFSET)


@dataclass(frozen=True)
class DefaultRecord:
    row_ref: str
    a: str
    b: str
    c: str
    d: str
    e: str
    f: str
    g: str
    h: str
    i: str
    j: str
    k: str
    variant: Literal["default"] = "default"

    @property
    def contract(self) -> str:
        return self.e

    @property
    def customer(self) -> str:
        return self.f

    @property
    def due_date(self) -> str:
        return self.g

    @property
    def install_amount(self) -> str:
        return self.h

    @property
    def line_of_business(self) -> str:
        return self.j

    @property
    def reason(self) -> str:
        return self.k

    @property
    def date_filter_key(self) -> str:
        return self.d

    @property
    def identifiers(self) -> tuple[str, str]:
        return (self.b, self.c)

    def to_dict(self) -> Dict[str, str]:
        return {
            "row_ref": self.row_ref,
            "type": self.variant,
            "A": self.a,
            "B": self.b,
            "C": self.c,
            "D": self.d,
            "E": self.e,
            "F": self.f,
            "G": self.g,
            "H": self.h,
            "I": self.i,
            "J": self.j,
            "K": self.k,
            **_projection(self),
        }


@dataclass(frozen=True)
class BARecord:
    row_ref: str
    b: str
    c: str
    d: str
    e: str
    f: str
    g: str
    h: str
    i: str
    j: str
    k: str
    l: str  # noqa: E741
    m: str
    variant: Literal["ba"] = "ba"

    @property
    def contract(self) -> str:
        return self.f

    @property
    def customer(self) -> str:
        return self.g

    @property
    def due_date(self) -> str:
        return self.i

    @property
    def install_amount(self) -> str:
        return self.j

    @property
    def line_of_business(self) -> str:
        return self.l

    @property
    def reason(self) -> str:
        return self.m

    @property
    def date_filter_key(self) -> str:
        return self.i

    @property
    def charge(self) -> str:
        return self.d

    @property
    def branch(self) -> str:
        return self.e

    @property
    def address(self) -> str:
        return self.h

    @property
    def occurrence_code(self) -> str:
        return self.k

    @property
    def identifiers(self) -> tuple[str, str]:
        return (self.b, self.c)

    def to_dict(self) -> Dict[str, str]:
        return {
            "row_ref": self.row_ref,
            "type": self.variant,
            "B": self.b,
            "C": self.c,
            "D": self.d,
            "E": self.e,
            "F": self.f,
            "G": self.g,
            "H": self.h,
            "I": self.i,
            "J": self.j,
            "K": self.k,
            "L": self.l,
            "M": self.m,
            **_projection(self),
            "charge": self.charge,
            "branch": self.branch,
            "address": self.address,
            "occurrence_code": self.occurrence_code,
        }


Record = DefaultRecord | BARecord


def _projection(record: Record) -> Dict[str, str]:
    return {
        "contract": record.contract,
        "customer": record.customer,
        "due_date": record.due_date,
        "install_amount": record.install_amount,
        "line_of_business": record.line_of_business,
        "reason": record.reason,
        "date_filter_key": record.date_filter_key,
    }


def normalize_default(row: RawRow, index: int) -> DefaultRecord:
    return DefaultRecord(
        row_ref=_row_ref(index),
        a=_slot(row, 0),
        b=_slot(row, 1),
        c=_slot(row, 2),
        d=normalize_date(row[3]) if len(row) > 3 else "",
        e=_slot(row, 4),
        f=_slot(row, 5),
        g=normalize_date(row[6]) if len(row) > 6 else "",
        h=_slot(row, 7),
        i=_slot(row, 8),
        j=_slot(row, 9),
        k=_slot(row, 10),
    )


def normalize_ba(row: RawRow, index: int) -> BARecord:
    return BARecord(
        row_ref=_row_ref(index),
        b=_slot(row, 0),
        c=_slot(row, 1),
        d=_slot(row, 2),
        e=_slot(row, 3),
        f=_slot(row, 4),
        g=_slot(row, 5),
        h=_slot(row, 6),
        i=normalize_date(row[7]) if len(row) > 7 else "",
        j=_slot(row, 8),
        k=_slot(row, 9),
        l=_slot(row, 10),
        m=_slot(row, 11),
    )


MAPPERS: Dict[str, Callable[[RawRow, int], Record]] = {
    "default": normalize_default,
    "ba": normalize_ba,
}

REQUIRED_SLOTS: Dict[str, int] = {
    "default": DEFAULT_REQUIRED_SLOTS,
    "ba": BA_REQUIRED_SLOTS,
}


def normalize_rows(rows: Sequence[RawRow], variant: Variant) -> List[Record]:
    mapper = MAPPERS[variant]
    return [mapper(row, idx) for idx, row in enumerate(rows)]


def is_complete(row: RawRow, variant: Variant) -> bool:
    """True when every slot except the trailing reason column holds a value."""
    required = REQUIRED_SLOTS[variant]
    if len(row) < required:
        return False
    return all(_slot(row, idx) != "" for idx in range(required))


def count_complete(rows: Sequence[RawRow], variant: Variant) -> int:
    return sum(1 for row in rows if is_complete(row, variant))
