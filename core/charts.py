from __future__ import annotations

from typing import Any, Dict

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def period_bar_chart(counts: pd.DataFrame, title: str) -> Dict[str, Any]:
    chart = (
        alt.Chart(counts)
        .mark_bar(color="#3b82f6")
        .encode(
            x=alt.X("label:N", title="Period", sort=None),
            y=alt.Y("count:Q", title="Total Records"),
            tooltip=["label", alt.Tooltip("count:Q", format=",")],
        )
        .properties(title=title)
    )
    return to_vega_spec(chart)
