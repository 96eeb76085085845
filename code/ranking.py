"""
ranking.py

Ranked practice table for the report:

- top_practices: highest inhaler rates, stable order on ties
- style_ranking: pandas Styler with 2-decimal rates and highlighted outlier rows
"""

from typing import Iterable, Optional

import pandas as pd
from pandas.io.formats.style import Styler

TABLE_COLUMNS = {
    "PracticeName": "Practice",
    "GPCluster": "Cluster",
    "Rate": "Rate",
    "Decile": "SIMD decile",
}

HIGHLIGHT_STYLE = "background-color: #fde0dd; font-weight: bold"


def top_practices(rates: pd.DataFrame, n: int = 12) -> pd.DataFrame:
    """
    Top-n practices by rate, descending.

    Practices with a null rate are left out. Ties keep their input order.
    """
    ranked = (
        rates.dropna(subset=["Rate"])
        .sort_values("Rate", ascending=False, kind="stable")
        .head(n)
    )
    table = ranked[list(TABLE_COLUMNS)].rename(columns=TABLE_COLUMNS)
    table.index = pd.RangeIndex(1, len(table) + 1, name="Rank")
    return table


def style_ranking(table: pd.DataFrame, highlight: Optional[Iterable[str]] = None) -> Styler:
    """Format rates to 2 decimals and highlight the named practices."""
    names = set(highlight or [])

    def _row_style(row: pd.Series):
        style = HIGHLIGHT_STYLE if row["Practice"] in names else ""
        return [style] * len(row)

    return (
        table.style
        .format({"Rate": "{:.2f}", "SIMD decile": "{:.0f}"})
        .apply(_row_style, axis=1)
        .set_caption("Practices with the highest inhaler items per patient")
    )
