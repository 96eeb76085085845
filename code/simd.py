r"""
InhalerRadar — Load SIMD deciles per data zone

Reads the Scottish Index of Multiple Deprivation lookup and keeps only the
data zone code and the overall decile (1 = most deprived 10% of zones).

Input:
- SIMD lookup CSV (e.g. SIMD2020v2 data zone lookup)

Final Columns:
- DataZone, Decile
"""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from tableio import Schema, apply_schema, read_table

logger = logging.getLogger(__name__)

# Target column -> possible source names, value kind.
# Covers the 2016 and 2020 (v2) lookup releases.
SIMD_SCHEMA: Schema = {
    "DataZone": (["DataZone", "Data_Zone", "DZ", "DataZone2011", "Data Zone"], "id"),
    "Decile": (
        [
            "SIMD2020v2_Decile",
            "SIMD2020_Decile",
            "SIMD2016_Decile",
            "Decile",
            "SIMD Decile",
        ],
        "decile",
    ),
}


def load_simd(path: Path) -> pd.DataFrame:
    """Load the SIMD table as one row per data zone."""
    logger.info("--- Loading SIMD deciles ---")
    logger.info("Loading SIMD data from: %s", path)
    raw = read_table(path)
    simd = apply_schema(raw, SIMD_SCHEMA, Path(path).name)

    dupes = simd.duplicated("DataZone")
    if dupes.any():
        logger.warning("Dropping %d duplicate data zone row(s); first kept.", int(dupes.sum()))
        simd = simd[~dupes].reset_index(drop=True)

    logger.info("Data zones loaded: %s", f"{len(simd):,}")
    return simd
