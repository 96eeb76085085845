"""
InhalerRadar — Report configuration

Input locations, output folder and the practice name lists used by the
report views live in a YAML file (config/report.yaml) rather than in code.
Relative paths are resolved against the folder holding the YAML file.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Union

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path("config") / "report.yaml"


class InputPaths(BaseModel):
    """Source files read by the report build."""

    simd: Path = Path("data/simd2020v2_datazone_lookup.csv")
    practices: Path = Path("data/practice_contactdetails.csv")
    prescriptions_dir: Path = Path("data/prescriptions")
    practice_points: Path = Path("data/practice_points.gpkg")
    health_boards: Path = Path("data/health_boards.gpkg")


class ReportConfig(BaseModel):
    """Settings for one report build."""

    inputs: InputPaths = Field(default_factory=InputPaths)
    output_dir: Path = Path("output")
    crs: str = "EPSG:27700"
    expected_months: Optional[int] = Field(default=12, ge=1)
    top_n: int = Field(default=12, ge=1)
    # Dropped from the decile boxplot only (atypical list size denominators)
    boxplot_exclude: List[str] = Field(default_factory=list)
    # Highlighted, not removed, in the ranked practice table
    table_highlight: List[str] = Field(default_factory=list)
    title: str = "Inhaler prescribing and deprivation in Scottish GP practices"

    def resolve(self, base: Path) -> "ReportConfig":
        """Copy with every relative path anchored at 'base'."""
        def anchor(p: Path) -> Path:
            return p if p.is_absolute() else base / p

        inputs = self.inputs.model_copy(
            update={name: anchor(value) for name, value in self.inputs.model_dump().items()}
        )
        return self.model_copy(update={"inputs": inputs, "output_dir": anchor(self.output_dir)})


def load_config(path: Union[str, Path, None] = None) -> ReportConfig:
    """
    Load and validate the report configuration.

    Raises:
        FileNotFoundError: If the config file doesn't exist
        ValidationError: If a value fails validation
    """
    path = Path(path) if path else DEFAULT_CONFIG
    if not path.exists():
        logger.error("Config file not found: %s", path)
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    logger.info("Loaded config: %s", path)

    return ReportConfig.model_validate(raw).resolve(path.resolve().parent)
