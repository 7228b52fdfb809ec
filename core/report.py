from __future__ import annotations

from typing import Any, Dict, Literal, Sequence

import numpy as np
import pandas as pd

from core.charts import period_bar_chart
from core.mapping import Record

Period = Literal["daily", "weekly", "monthly", "yearly"]
PERIODS = ("daily", "weekly", "monthly", "yearly")


def records_frame(records: Sequence[Record]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame()
    return pd.DataFrame([r.to_dict() for r in records])


def period_keys(due_dates: pd.Series, period: str) -> pd.Series:
    """Bucket DD/MM/YYYY strings; unparsable dates are dropped."""
    parsed = pd.to_datetime(due_dates, format="%d/%m/%Y", errors="coerce").dropna()
    if parsed.empty:
        return pd.Series(dtype=str)
    if period == "daily":
        return parsed.dt.strftime("%d/%m")
    if period == "monthly":
        return parsed.dt.strftime("%m/%Y")
    if period == "yearly":
        return parsed.dt.strftime("%Y")
    # Days elapsed since 1 January, rounded up to whole weeks.
    weeks = np.ceil((parsed.dt.dayofyear - 1) / 7).astype(int)
    return "W" + weeks.astype(str)


def build_report(records: Sequence[Record], period: str = "daily") -> Dict[str, Any]:
    if period not in PERIODS:
        raise ValueError(f"period must be one of {', '.join(PERIODS)}")

    due = pd.Series([r.due_date for r in records], dtype=str)
    keys = period_keys(due[due != ""], period)
    counts = keys.value_counts().sort_index()
    frame = pd.DataFrame({"label": counts.index.astype(str), "count": counts.values})

    return {
        "period": period,
        "labels": frame["label"].tolist(),
        "counts": [int(c) for c in frame["count"].tolist()],
        "total_records": int(len(records)),
        "chart": period_bar_chart(frame, f"Records by Period ({period.upper()})"),
    }
