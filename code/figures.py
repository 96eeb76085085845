"""
figures.py

Static figures for the inhaler / deprivation report:

- Boxplot: practice inhaler rate by SIMD decile
- Map: health board mean rate (choropleth) with practices coloured by decile

All functions return matplotlib Figure objects and leave their inputs
unchanged. save_figure writes a PNG and closes the figure.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

logger = logging.getLogger(__name__)

DECILES = list(range(1, 11))

# Decile 1 (most deprived) darkest -> decile 10 (least deprived) lightest
DECILE_COLOURS = [
    "#2d004b", "#3f007d", "#54278f", "#6a51a3", "#807dba",
    "#9e9ac8", "#bcbddc", "#dadaeb", "#efedf5", "#fcfbfd",
]

BOARD_CMAP = "Blues"
PRACTICE_CMAP = "plasma"


# ---------------------------------------------------------------------
# Boxplot: rate by decile
# ---------------------------------------------------------------------

def boxplot_data(rates: pd.DataFrame, exclude: Optional[Iterable[str]] = None) -> pd.DataFrame:
    """
    Rows drawn on the decile boxplot.

    Drops practices with no decile or rate, and those named in 'exclude'.
    """
    exclude = set(exclude or [])
    df = rates.dropna(subset=["Decile", "Rate"])
    dropped = df["PracticeName"].isin(exclude)
    if dropped.any():
        logger.info("Boxplot: excluding %d practice(s): %s", int(dropped.sum()),
                    ", ".join(df.loc[dropped, "PracticeName"]))
    df = df[~dropped].copy()
    df["Decile"] = df["Decile"].astype(int)
    return df


def decile_boxplot(
    rates: pd.DataFrame,
    exclude: Optional[Iterable[str]] = None,
    title: str = "Inhaler items per patient by SIMD decile",
) -> plt.Figure:
    """
    Boxplot of practice inhaler rate for each SIMD decile (1 = most deprived).

    Parameters
    ----------
    rates : DataFrame
        Practice rates with 'Decile', 'Rate' and 'PracticeName'.
    exclude : iterable of str, optional
        Practice names left out of this view only.
    title : str
        Figure title.
    """
    df = boxplot_data(rates, exclude)
    df["DecileLabel"] = df["Decile"].astype(str)
    order = [str(d) for d in DECILES]
    palette = dict(zip(order, DECILE_COLOURS))

    fig, ax = plt.subplots(figsize=(10, 6))
    sns.boxplot(
        data=df,
        x="DecileLabel",
        y="Rate",
        hue="DecileLabel",
        order=order,
        hue_order=order,
        palette=palette,
        legend=False,
        ax=ax,
    )
    ax.set_title(title)
    ax.set_xlabel("SIMD decile (1 = most deprived)")
    ax.set_ylabel("Inhaler items per registered patient")
    ax.grid(True, axis="y", alpha=0.3)
    fig.tight_layout()
    return fig


# ---------------------------------------------------------------------
# Map: board choropleth + practice points
# ---------------------------------------------------------------------

def rate_map(
    boards: gpd.GeoDataFrame,
    board_rates: pd.DataFrame,
    points: gpd.GeoDataFrame,
    rates: pd.DataFrame,
    title: str = "Inhaler items per patient by health board",
) -> plt.Figure:
    """
    Health boards filled by mean practice rate, practices on top coloured
    by SIMD decile.
    """
    board_layer = boards.merge(board_rates[["HB", "MeanRate"]], on="HB", how="left")

    practices = rates.dropna(subset=["Decile"])[["PracticeCode", "Postcode", "Decile"]]
    point_layer = points.merge(practices, on="Postcode", how="inner")
    missing = len(practices) - point_layer["PracticeCode"].nunique()
    if missing:
        logger.info("Map: %d practice(s) without a point location", missing)
    point_layer["Decile"] = point_layer["Decile"].astype(float)

    fig, ax = plt.subplots(figsize=(8, 10))
    board_layer.plot(
        column="MeanRate",
        cmap=BOARD_CMAP,
        legend=True,
        legend_kwds={"label": "Mean items per patient", "shrink": 0.5},
        missing_kwds={"color": "lightgrey"},
        edgecolor="white",
        linewidth=0.5,
        ax=ax,
    )
    if len(point_layer):
        point_layer.plot(
            column="Decile",
            cmap=PRACTICE_CMAP,
            vmin=1,
            vmax=10,
            markersize=6,
            legend=True,
            legend_kwds={"label": "Practice SIMD decile", "shrink": 0.5},
            ax=ax,
        )
    ax.set_title(title)
    ax.set_axis_off()
    fig.tight_layout()
    return fig


def save_figure(fig: plt.Figure, path: Path, dpi: int = 150) -> Path:
    """Write the figure as PNG and close it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(path, dpi=dpi, bbox_inches="tight")
    plt.close(fig)
    logger.info("Wrote figure: %s", path)
    return path
