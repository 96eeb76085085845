r"""
GP practice registry (Public Health Scotland practice contact details)
- Reads the practice list CSV
- Resolves the canonical columns across releases (HB vs HB2019 etc.)
- Normalizes postcodes for the point-location join
- Keeps one row per practice code
"""

import logging
from pathlib import Path

import pandas as pd

from tableio import Schema, apply_schema, format_postcode, read_table

logger = logging.getLogger(__name__)

# Practice column mapping
PRACTICE_SCHEMA: Schema = {
    "PracticeCode": (["PracticeCode", "Practice Code", "GPPractice", "PracticeID"], "id"),
    "DataZone": (["DataZone", "DataZone2011", "Data Zone", "DZ"], "str"),
    "HB": (["HB", "HBT", "HB2019", "HBCode", "HealthBoard"], "str"),
    "ListSize": (["PracticeListSize", "ListSize", "Practice List Size", "Population"], "non_negative_int"),
    "PracticeName": (["GPPracticeName", "PracticeName", "Practice Name", "Name"], "str"),
    "GPCluster": (["GPCluster", "Cluster", "GP Cluster"], "str"),
    "Postcode": (["Postcode", "Post Code", "PostCode", "Postal Code"], "str"),
}


def load_practices(path: Path) -> pd.DataFrame:
    """Load the practice registry with one row per PracticeCode."""
    logger.info("--- Loading GP practice registry ---")
    logger.info("Loading practice file: %s", path)
    raw = read_table(path)
    logger.info("Practice rows: %s | cols: %s", f"{len(raw):,}", f"{len(raw.columns)}")

    practices = apply_schema(raw, PRACTICE_SCHEMA, Path(path).name)
    practices["Postcode"] = practices["Postcode"].apply(format_postcode)

    dupes = practices.duplicated("PracticeCode")
    if dupes.any():
        logger.warning("Dropping %d duplicate practice code row(s); first kept.", int(dupes.sum()))
        practices = practices[~dupes].reset_index(drop=True)

    logger.info("Sample practice rows:\n%s", practices.head(3).to_string(index=False))
    logger.info("Practices without a postcode: %d", int(practices["Postcode"].isna().sum()))
    logger.info("Practices without a data zone: %d", int(practices["DataZone"].isna().sum()))
    return practices
