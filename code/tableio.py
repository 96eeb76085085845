r"""
InhalerRadar — Shared table loading helpers

Every source file in the report is read through these helpers so that header
clean-up, encoding fallback, column resolution and per-row type checks behave
the same way for the SIMD table, the practice registry and the monthly
prescribing extracts.

A schema maps each canonical column to the list of header names it may appear
under in the published files, plus the kind of value it holds:

    SCHEMA = {
        "PracticeCode": (["PracticeCode", "GPPractice"], "id"),
        "ListSize":     (["PracticeListSize", "ListSize"], "positive_int"),
    }
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Dict, List, Tuple

import numpy as np
import pandas as pd

logger = logging.getLogger(__name__)

NA_VALUES = ["", "NA", "NaN", "N/A", ":"]

# Value kinds a schema column may declare.
KINDS = ("str", "id", "int", "positive_int", "non_negative_int", "decile")

Schema = Dict[str, Tuple[List[str], str]]


class SchemaError(ValueError):
    """A source file lacks one or more required columns."""


# ------------------------------------------------------------
# Reading
# ------------------------------------------------------------
def read_table(path: Path) -> pd.DataFrame:
    """Read CSV with trimmed column names/values and string dtypes."""
    path = Path(path)
    if not path.exists():
        logger.error("Missing file: %s", path)
        raise FileNotFoundError(f"Missing file: {path}")

    read_kw = dict(dtype=str, keep_default_na=False, na_values=NA_VALUES, low_memory=False)
    try:
        df = pd.read_csv(path, encoding="utf-8-sig", **read_kw)
    except UnicodeDecodeError:
        # Older PHS extracts are latin1
        logger.warning("UTF-8 decoding failed for %s. Trying latin1 encoding.", path.name)
        df = pd.read_csv(path, encoding="latin1", **read_kw)

    df = df.rename(columns=lambda c: c.strip() if isinstance(c, str) else c)
    for c in df.columns:
        if pd.api.types.is_string_dtype(df[c]) or df[c].dtype == "object":
            df[c] = df[c].str.strip()
    return df


def pick_col(df: pd.DataFrame, candidates: List[str]) -> str | None:
    """
    Return the actual column name in df matching any of 'candidates'
    case-insensitively, ignoring extra spaces. Returns None if not found.
    """
    norm = {re.sub(r"\s+", " ", str(c).strip().lower()): c for c in df.columns}
    for cand in candidates:
        key = re.sub(r"\s+", " ", cand.strip().lower())
        if key in norm:
            return norm[key]
    return None


def format_postcode(pc) -> str:
    """
    Normalize UK postcode to 'OUTCODE INCODE' (upper, single space).
    If value isn't a string, returns NaN.
    """
    if not isinstance(pc, str):
        return np.nan
    s = re.sub(r"\s+", "", pc.upper())
    if not s:
        return np.nan
    if len(s) >= 5:
        return s[:-3] + " " + s[-3:]
    return s


# ------------------------------------------------------------
# Schema checks
# ------------------------------------------------------------
def _coerce(series: pd.Series, kind: str) -> Tuple[pd.Series, pd.Series]:
    """Return (coerced values, mask of rows that failed the check)."""
    if kind == "str":
        return series, pd.Series(False, index=series.index)
    if kind == "id":
        # Blank or missing join keys
        bad = series.isna() | (series.astype(str).str.strip() == "")
        return series.where(~bad), bad

    cleaned = series.astype(str).str.replace(",", "", regex=False).str.strip()
    num = pd.to_numeric(cleaned, errors="coerce").astype("float64")
    bad = num.isna() | (num % 1 != 0)
    if kind == "positive_int":
        bad |= num <= 0
    elif kind == "non_negative_int":
        bad |= num < 0
    elif kind == "decile":
        bad |= ~num.between(1, 10)

    values = num.where(~bad).round().astype("Int64")
    return values, bad


def apply_schema(df: pd.DataFrame, schema: Schema, source: str) -> pd.DataFrame:
    """
    Resolve, rename and type-check the schema columns of one source file.

    Required columns that cannot be resolved raise SchemaError. Rows with a
    value that fails its type/range check are dropped and counted; the
    returned frame holds only canonical columns, in schema order.
    """
    resolved = {}
    missing = []
    for target, (candidates, kind) in schema.items():
        if kind not in KINDS:
            raise ValueError(f"Unknown column kind '{kind}' for {target}")
        found = pick_col(df, candidates)
        if found is None:
            missing.append(target)
        else:
            resolved[target] = found
    if missing:
        logger.error("%s is missing columns: %s", source, missing)
        raise SchemaError(f"{source} is missing columns: {missing}")
    logger.debug("Column mapping (%s): %s", source, resolved)

    out = df[list(resolved.values())].copy()
    out.columns = list(resolved.keys())

    rejected = pd.Series(False, index=out.index)
    for target, (_, kind) in schema.items():
        values, bad = _coerce(out[target], kind)
        if bad.any():
            logger.warning(
                "%s: %d row(s) with invalid %s (%s) skipped",
                source, int(bad.sum()), target, kind,
            )
        out[target] = values
        rejected |= bad

    out = out[~rejected].reset_index(drop=True)
    logger.info("%s rows kept: %s of %s", source, f"{len(out):,}", f"{len(df):,}")
    return out
