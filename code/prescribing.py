"""
InhalerRadar – Monthly prescribing extracts
Purpose:
    Read every monthly "Prescriptions in the Community" extract in a folder,
    keep the inhaler lines, and stack them into one table:
        YearMonth (YYYYMM), HB, PracticeCode, DrugDescription, NumberOfPaidItems

Notes:
    - Months are concatenated as-is; a practice/drug pair seen in several
      months contributes one row per month and is summed later.
    - Inhaler lines are picked by a fixed, case-sensitive substring list.
    - Malformed item counts are skipped row by row; a missing folder or file
      is fatal.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

import pandas as pd

from tableio import Schema, apply_schema, pick_col, read_table

logger = logging.getLogger(__name__)

# Expected schema (subset we actually use)
PRESCRIPTION_SCHEMA: Schema = {
    "HB": (["HBT", "HB", "HBT2014", "HBCode"], "str"),
    "PracticeCode": (["GPPractice", "PracticeCode", "Practice Code", "PracticeID"], "id"),
    "DrugDescription": (["BNFItemDescription", "DrugDescription", "Drug Description"], "str"),
    "NumberOfPaidItems": (["NumberOfPaidItems", "NumberofPaidItems", "PaidItems", "Items"], "non_negative_int"),
}

PAID_MONTH_CANDIDATES = ["PaidDateMonth", "PaidMonth", "YearMonth"]

# Inhaler allow-list (matched as case-sensitive substrings of the drug description)
INHALER_DRUGS = (
    "SALBUTAMOL",
    "BECLOMETASONE",
    "BUDESONIDE",
    "FLUTICASONE",
    "TERBUTALINE",
)

OUTPUT_COLUMNS = ["YearMonth", "HB", "PracticeCode", "DrugDescription", "NumberOfPaidItems"]


# ----------------------------
# Helpers
# ----------------------------
def year_month_from_filename(filename: str) -> str | None:
    """Extracts YYYYMM from filenames like 'pitc202304.csv'."""
    match = re.search(r"(20\d{2})(0[1-9]|1[0-2])(?!\d)", filename)
    if match:
        return "".join(match.groups())
    logger.warning("Could not extract YearMonth from filename: %s", filename)
    return None


def filter_inhalers(df: pd.DataFrame) -> pd.DataFrame:
    """Keep rows whose DrugDescription contains one of INHALER_DRUGS."""
    desc = df["DrugDescription"].fillna("")
    mask = pd.Series(False, index=df.index)
    for drug in INHALER_DRUGS:
        mask |= desc.str.contains(drug, case=True, regex=False)
    return df[mask].reset_index(drop=True)


def read_month(path: Path) -> pd.DataFrame:
    """
    Read a single monthly file with strict schema and return the inhaler rows.
    """
    raw = read_table(path)
    schema = dict(PRESCRIPTION_SCHEMA)
    month_col = pick_col(raw, PAID_MONTH_CANDIDATES)
    if month_col:
        schema["YearMonth"] = ([month_col], "str")

    df = apply_schema(raw, schema, path.name)
    if month_col:
        df["YearMonth"] = df["YearMonth"].str.slice(0, 6)
    else:
        df["YearMonth"] = year_month_from_filename(path.name)

    inhalers = filter_inhalers(df)
    logger.info("%s: %s inhaler line(s)", path.name, f"{len(inhalers):,}")
    return inhalers[OUTPUT_COLUMNS]


def discover_months(folder: Path) -> List[Path]:
    """Monthly extract files in name order."""
    folder = Path(folder)
    if not folder.is_dir():
        logger.error("Prescribing folder not found: %s", folder)
        raise FileNotFoundError(f"Prescribing folder not found: {folder}")
    files = sorted(folder.glob("*.csv"))
    if not files:
        logger.error("No CSV files found in directory: %s", folder)
        raise FileNotFoundError(f"No files found in: {folder}")
    return files


def load_prescriptions(folder: Path, expected_months: int | None = 12) -> pd.DataFrame:
    """
    Read, filter and concatenate every monthly extract in 'folder'.
    """
    logger.info("--- Loading monthly prescribing extracts ---")
    files = discover_months(folder)
    logger.info("Discovered %d file(s).", len(files))
    if expected_months and len(files) != expected_months:
        logger.warning("Expected %d monthly files, found %d.", expected_months, len(files))

    parts: List[pd.DataFrame] = []
    for f in files:
        logger.info("Reading %s", f.name)
        parts.append(read_month(f))

    combined = pd.concat(parts, ignore_index=True)
    logger.info("Combined inhaler lines: %s", f"{len(combined):,}")
    logger.info("Months covered: %s", ", ".join(sorted(combined["YearMonth"].dropna().unique())))
    return combined
