"""
Pytest Configuration and Shared Fixtures.

Small, hand-checkable inputs for every source the report reads. Expected
figures (items / list size):

    10001 Alpha Medical Centre       250 / 1000 = 0.25  decile 1   S08000024
    10002 Edinburgh Access Practice  100 / 200  = 0.50  decile 5   S08000024
    10003 Beta Surgery                10 / 0    -> null decile 10  S08000031
    10004 Gamma Health Centre         20 / 500  -> null (no zone)  S08000031
    10006 Epsilon Practice           400 / 2000 = 0.20  decile 3   S08000031
"""

from __future__ import annotations

from pathlib import Path

import geopandas as gpd
import pandas as pd
import pytest
import yaml
from shapely.geometry import Point, box

from reportconfig import load_config

SIMD_ROWS = [
    {"DataZone": "S01000001", "SIMD2020v2_Decile": "1"},
    {"DataZone": "S01000002", "SIMD2020v2_Decile": "5"},
    {"DataZone": "S01000003", "SIMD2020v2_Decile": "10"},
    {"DataZone": "S01000004", "SIMD2020v2_Decile": "3"},
    {"DataZone": "S01000005", "SIMD2020v2_Decile": "x"},
    {"DataZone": "S01000006", "SIMD2020v2_Decile": "7"},
]

PRACTICE_ROWS = [
    ("10001", "Alpha Medical Centre", "1000", "EH1 1AA", "S08000024", "Central", "S01000001"),
    ("10002", "Edinburgh Access Practice", "200", "eh11bb", "S08000024", "Central", "S01000002"),
    ("10003", "Beta Surgery", "0", "G1 1AA", "S08000031", "North", "S01000003"),
    ("10004", "Gamma Health Centre", "500", "G1 1BB", "S08000031", "North", "S01000099"),
    ("10005", "Delta Practice", "abc", "G3 3AA", "S08000031", "North", "S01000004"),
    ("10006", "Epsilon Practice", "2,000", "G2 2AA", "S08000031", "South", "S01000004"),
]
PRACTICE_COLUMNS = [
    "PracticeCode", "GPPracticeName", "PracticeListSize", "Postcode", "HB", "GPCluster", "DataZone",
]

MONTH_COLUMNS = ["HBT", "GPPractice", "BNFItemDescription", "NumberOfPaidItems", "PaidDateMonth"]
MONTHS = {
    "pitc202301.csv": [
        ("S08000024", "10001", "SALBUTAMOL 100MICROGRAMS/DOSE INHALER CFC FREE", "100", "202301"),
        ("S08000024", "10001", "PARACETAMOL 500MG TABLETS", "999", "202301"),
        ("S08000024", "10001", "salbutamol 100micrograms/dose inhaler", "7", "202301"),
        ("S08000024", "10002", "BECLOMETASONE 100MICROGRAMS/DOSE INHALER", "40", "202301"),
        ("S08000031", "10003", "SALBUTAMOL 100MICROGRAMS/DOSE BREATH ACTUATED INHALER", "10", "202301"),
        ("S08000031", "10004", "BUDESONIDE 200MICROGRAMS/DOSE DRY POWDER INHALER", "20", "202301"),
        ("S08000031", "10006", "FLUTICASONE 50MICROGRAMS/DOSE INHALER", "300", "202301"),
        ("S08000031", "99999", "SALBUTAMOL 100MICROGRAMS/DOSE INHALER CFC FREE", "5", "202301"),
    ],
    "pitc202302.csv": [
        ("S08000024", "10001", "SALBUTAMOL 100MICROGRAMS/DOSE INHALER CFC FREE", "150", "202302"),
        ("S08000024", "10002", "TERBUTALINE 500MICROGRAMS/DOSE DRY POWDER INHALER", "60", "202302"),
        ("S08000031", "10006", "SALBUTAMOL 100MICROGRAMS/DOSE INHALER CFC FREE", "n/a", "202302"),
        ("S08000031", "10006", "BUDESONIDE 200MICROGRAMS/DOSE DRY POWDER INHALER", "100", "202302"),
    ],
}

CRS = "EPSG:27700"


@pytest.fixture
def simd_csv(tmp_path: Path) -> Path:
    path = tmp_path / "simd.csv"
    pd.DataFrame(SIMD_ROWS).to_csv(path, index=False)
    return path


@pytest.fixture
def practices_csv(tmp_path: Path) -> Path:
    path = tmp_path / "practices.csv"
    pd.DataFrame(PRACTICE_ROWS, columns=PRACTICE_COLUMNS).to_csv(path, index=False)
    return path


@pytest.fixture
def prescriptions_dir(tmp_path: Path) -> Path:
    folder = tmp_path / "prescriptions"
    folder.mkdir()
    for name, rows in MONTHS.items():
        pd.DataFrame(rows, columns=MONTH_COLUMNS).to_csv(folder / name, index=False)
    return folder


@pytest.fixture
def points_file(tmp_path: Path) -> Path:
    path = tmp_path / "practice_points.geojson"
    gdf = gpd.GeoDataFrame(
        {"Postcode": ["EH1 1AA", "EH11BB", "G1 1AA", "G2 2AA"]},
        geometry=[
            Point(325500, 673500),
            Point(326500, 674500),
            Point(259500, 665500),
            Point(258500, 664500),
        ],
        crs=CRS,
    )
    gdf.to_file(path, driver="GeoJSON")
    return path


@pytest.fixture
def boards_file(tmp_path: Path) -> Path:
    path = tmp_path / "health_boards.geojson"
    gdf = gpd.GeoDataFrame(
        {
            "HBCode": ["S08000024", "S08000031"],
            "HBName": ["Lothian", "Greater Glasgow and Clyde"],
        },
        geometry=[
            box(300000, 650000, 350000, 700000),
            box(240000, 640000, 290000, 690000),
        ],
        crs=CRS,
    )
    gdf.to_file(path, driver="GeoJSON")
    return path


@pytest.fixture
def config_file(
    tmp_path: Path,
    simd_csv: Path,
    practices_csv: Path,
    prescriptions_dir: Path,
    points_file: Path,
    boards_file: Path,
) -> Path:
    path = tmp_path / "report.yaml"
    settings = {
        "inputs": {
            "simd": str(simd_csv),
            "practices": str(practices_csv),
            "prescriptions_dir": str(prescriptions_dir),
            "practice_points": str(points_file),
            "health_boards": str(boards_file),
        },
        "output_dir": "out",
        "expected_months": 2,
        "top_n": 12,
        "boxplot_exclude": ["Edinburgh Access Practice"],
        "table_highlight": ["Edinburgh Access Practice"],
    }
    path.write_text(yaml.safe_dump(settings), encoding="utf-8")
    return path


@pytest.fixture
def config(config_file: Path):
    return load_config(config_file)


@pytest.fixture
def rates_frame() -> pd.DataFrame:
    """Practice rates as produced by practice_rates, built by hand."""
    return pd.DataFrame(
        {
            "PracticeCode": ["A", "B", "C", "D", "E"],
            "PracticeName": ["Alpha", "Edinburgh Access Practice", "Gamma", "Delta", "Echo"],
            "GPCluster": ["C1", "C1", "C2", "C2", "C3"],
            "HB": ["HB1", "HB1", "HB2", "HB2", "HB2"],
            "Postcode": ["EH1 1AA", "EH1 1BB", "G1 1AA", "G1 1BB", "G2 2AA"],
            "ListSize": pd.array([1000, 200, 500, 0, 2000], dtype="Int64"),
            "Decile": pd.array([1, 5, 2, pd.NA, 2], dtype="Int64"),
            "TotalItems": [250, 100, 100, 10, 400],
            "Rate": [0.25, 0.5, 0.2, None, 0.2],
        }
    )
