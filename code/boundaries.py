r"""
InhalerRadar — Practice points and health board polygons

Loads the two geospatial layers drawn on the report map:

    practice points   one point per postcode (practice location)
    health boards     one polygon per health board code

Any format geopandas can read (shapefile, GeoPackage, GeoJSON) is accepted.
Both layers are reprojected to the report CRS when they arrive in another one.

Final Columns:
    points: Postcode, geometry
    boards: HB, [HBName], geometry
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import geopandas as gpd

from tableio import format_postcode, pick_col

logger = logging.getLogger(__name__)

DEFAULT_CRS = "EPSG:27700"

POSTCODE_CANDIDATES = ["Postcode", "PostCode", "pcd", "pcds", "Post Code", "PC"]
HB_CANDIDATES = ["HB", "HBCode", "HB2019", "HB2019Code", "HBT", "HealthBoard"]
HB_NAME_CANDIDATES = ["HBName", "HB2019Name", "HealthBoardName", "Name"]


def _read_layer(path: Path) -> gpd.GeoDataFrame:
    path = Path(path)
    if not path.exists():
        logger.error("Missing file: %s", path)
        raise FileNotFoundError(f"Missing file: {path}")
    gdf = gpd.read_file(path)
    return gdf.rename(columns=lambda c: c.strip() if isinstance(c, str) and c != "geometry" else c)


def _to_crs(gdf: gpd.GeoDataFrame, crs: str, name: str) -> gpd.GeoDataFrame:
    if gdf.crs is None:
        logger.warning("%s has no CRS; assuming %s", name, crs)
        return gdf.set_crs(crs)
    if gdf.crs != crs:
        logger.info("Reprojecting %s from %s to %s", name, gdf.crs, crs)
        return gdf.to_crs(crs)
    return gdf


def _require(gdf: gpd.GeoDataFrame, candidates: List[str], target: str, name: str) -> str:
    col = pick_col(gdf, candidates)
    if col is None:
        logger.error("%s is missing a %s column (tried %s)", name, target, candidates)
        raise ValueError(f"{name} is missing a {target} column")
    return col


def load_practice_points(path: Path, crs: str = DEFAULT_CRS) -> gpd.GeoDataFrame:
    """Practice locations keyed by normalized postcode."""
    logger.info("Loading practice points: %s", path)
    gdf = _read_layer(path)
    pc_col = _require(gdf, POSTCODE_CANDIDATES, "postcode", Path(path).name)

    points = gpd.GeoDataFrame(
        {"Postcode": gdf[pc_col].apply(format_postcode)},
        geometry=gdf.geometry,
        crs=gdf.crs,
    )
    points = points[points["Postcode"].notna() & points.geometry.notna()]

    dupes = points.duplicated("Postcode")
    if dupes.any():
        logger.warning("Dropping %d duplicate postcode point(s); first kept.", int(dupes.sum()))
        points = points[~dupes]

    points = _to_crs(points.reset_index(drop=True), crs, "practice points")
    logger.info("Practice points loaded: %s", f"{len(points):,}")
    return points


def load_health_boards(path: Path, crs: str = DEFAULT_CRS) -> gpd.GeoDataFrame:
    """Health board polygons keyed by HB code."""
    logger.info("Loading health board boundaries: %s", path)
    gdf = _read_layer(path)
    name = Path(path).name
    hb_col = _require(gdf, HB_CANDIDATES, "health board code", name)
    hb_name_col = pick_col(gdf, HB_NAME_CANDIDATES)

    data = {"HB": gdf[hb_col].astype(str).str.strip()}
    if hb_name_col and hb_name_col != hb_col:
        data["HBName"] = gdf[hb_name_col]
    boards = gpd.GeoDataFrame(data, geometry=gdf.geometry, crs=gdf.crs)

    boards = _to_crs(boards, crs, "health boards")
    logger.info("Health boards loaded: %d", len(boards))
    return boards
