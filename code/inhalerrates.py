r"""
InhalerRadar — Join sources and compute inhaler rates

Joins the inhaler prescription lines to the practice registry (by practice
code) and to the SIMD deciles (by data zone), then derives:

    practice rates      TotalItems / ListSize per practice, with its decile
    health board rates  mean practice rate per board, with a representative decile

Final Columns:
    practice rates: PracticeCode, PracticeName, GPCluster, HB, Postcode,
                    ListSize, Decile, TotalItems, Rate
    board rates:    HB, MeanRate, Practices, Decile
"""

from __future__ import annotations

import logging
from typing import List

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

# Attributes that describe a practice and must not vary within its group
PRACTICE_ATTRIBUTES = ["PracticeName", "GPCluster", "HB", "Postcode", "ListSize", "Decile"]

PRACTICE_RATE_COLUMNS = [
    "PracticeCode", "PracticeName", "GPCluster", "HB", "Postcode",
    "ListSize", "Decile", "TotalItems", "Rate",
]


class InconsistentGroupError(ValueError):
    """An attribute expected to be constant within a group has several values."""


# ------------------------------------------------------------
# Join
# ------------------------------------------------------------
def join_sources(
    prescriptions: pd.DataFrame,
    practices: pd.DataFrame,
    simd: pd.DataFrame,
) -> pd.DataFrame:
    """
    One denormalized row per prescription line.

    Lines whose practice code is not in the registry are dropped (and
    counted). The SIMD join is outer, so practices in an unknown data zone
    keep a null Decile.
    """
    logger.info("--- Joining prescriptions, practices and SIMD ---")
    presc = prescriptions.rename(columns={"HB": "HB_presc"})

    known = presc["PracticeCode"].isin(practices["PracticeCode"])
    if (~known).any():
        logger.warning(
            "Dropped %s prescription line(s) for %d practice code(s) not in the registry",
            f"{int((~known).sum()):,}",
            presc.loc[~known, "PracticeCode"].nunique(),
        )

    m1 = presc.merge(practices, how="inner", on="PracticeCode", validate="many_to_one")
    m1["_line"] = np.arange(len(m1))
    # Outer merges sort on the key; restore prescription line order
    m2 = (
        m1.merge(simd, how="outer", on="DataZone", validate="many_to_one")
        .sort_values("_line", kind="stable", na_position="last")
        .drop(columns="_line")
        .reset_index(drop=True)
    )

    matched = m2["PracticeCode"].notna()
    no_decile = m2.loc[matched & m2["Decile"].isna(), "PracticeCode"].nunique()
    logger.info("Joined rows: %s", f"{int(matched.sum()):,}")
    logger.info("Practices with unresolved decile: %d", no_decile)
    return m2


# ------------------------------------------------------------
# Aggregate
# ------------------------------------------------------------
def check_constant(grouped: pd.core.groupby.DataFrameGroupBy, columns: List[str], key: str) -> None:
    """Raise InconsistentGroupError if any column varies within a group."""
    counts = grouped[columns].nunique(dropna=False)
    for col in columns:
        bad = counts.index[counts[col] > 1]
        if len(bad):
            logger.error("%s varies within %d %s group(s): %s", col, len(bad), key, list(bad[:5]))
            raise InconsistentGroupError(
                f"{col} is not constant within {key} for: {list(bad[:5])}"
            )


def practice_rates(joined: pd.DataFrame) -> pd.DataFrame:
    """
    Items per registered patient for each practice.

    Rate is null when the decile is unresolved or the list size is missing
    or zero.
    """
    logger.info("--- Computing practice rates ---")
    rows = joined[joined["PracticeCode"].notna()]
    grouped = rows.groupby("PracticeCode", sort=False, dropna=True)
    check_constant(grouped, PRACTICE_ATTRIBUTES, "PracticeCode")

    rates = grouped.agg(
        PracticeName=("PracticeName", "first"),
        GPCluster=("GPCluster", "first"),
        HB=("HB", "first"),
        Postcode=("Postcode", "first"),
        ListSize=("ListSize", "first"),
        Decile=("Decile", "first"),
        TotalItems=("NumberOfPaidItems", "sum"),
    ).reset_index()

    list_size = rates["ListSize"].astype("float64")
    valid = list_size.gt(0) & rates["Decile"].notna()
    rates["Rate"] = np.where(valid, rates["TotalItems"].astype("float64") / list_size.where(valid), np.nan)
    rates["TotalItems"] = rates["TotalItems"].astype("int64")

    # QA summary
    logger.info("Practices: %d", len(rates))
    logger.info("Practices with null rate: %d", int(rates["Rate"].isna().sum()))
    return rates[PRACTICE_RATE_COLUMNS]


def health_board_rates(rates: pd.DataFrame) -> pd.DataFrame:
    """
    Unweighted mean practice rate per health board.

    The board Decile is the first non-null practice decile in the board. It
    is an approximation: boards span many deciles, and the number of such
    boards is logged.
    """
    logger.info("--- Computing health board rates ---")
    grouped = rates.groupby("HB", sort=False, dropna=True)
    boards = grouped.agg(
        MeanRate=("Rate", "mean"),
        Practices=("Rate", "count"),
        Decile=("Decile", "first"),
    ).reset_index()

    mixed = grouped["Decile"].nunique() > 1
    if mixed.any():
        logger.warning(
            "Representative decile is approximate for %d of %d health board(s)",
            int(mixed.sum()), len(boards),
        )
    logger.info("Health boards: %d", len(boards))
    return boards
