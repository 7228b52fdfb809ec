from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class EnterCategoryRequest(BaseModel):
    value: Optional[str] = None
    text: Optional[str] = None
    date_filter: Optional[date] = None
    status_filter: Literal["all", "filled", "empty"] = "all"
    page: int = 1
    page_size: Optional[int] = Field(default=None, gt=0)

    @field_validator("date_filter", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value: object) -> object:
        # The room page posts "" until a date is picked.
        if isinstance(value, str) and not value.strip():
            return None
        return value


class UpdateFieldRequest(BaseModel):
    room_id: str = "nbot"
    new_value: str = ""
    field: Optional[str] = None
