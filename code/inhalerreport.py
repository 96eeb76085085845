#!/usr/bin/env python
# -*- coding: utf-8 -*-
r"""
Inhaler prescribing vs SIMD deprivation report (Scottish GP practices)
- Loads SIMD deciles, the practice registry and twelve monthly prescribing extracts
- Joins prescriptions -> practices (PracticeCode) -> SIMD (DataZone)
- Computes inhaler items per registered patient by practice and health board
- Renders a decile boxplot, a health board map and a ranked practice table
- Writes a single self-contained HTML report plus PNG/CSV artifacts

Usage:
  python inhalerreport.py --config config/report.yaml --out output -v
"""

import argparse
import base64
import html
import logging
import os
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path

import geopandas as gpd
import pandas as pd

from boundaries import load_health_boards, load_practice_points
from figures import decile_boxplot, rate_map, save_figure
from inhalerrates import health_board_rates, join_sources, practice_rates
from practiceinformation import load_practices
from prescribing import INHALER_DRUGS, load_prescriptions
from ranking import style_ranking, top_practices
from reportconfig import ReportConfig, load_config
from simd import load_simd


# ----------------------------- Logging ---------------------------------
def setup_logger(verbosity: int = 1) -> logging.Logger:
    """
    verbosity: 0=WARNING, 1=INFO, 2=DEBUG
    """
    level = logging.WARNING if verbosity <= 0 else logging.INFO if verbosity == 1 else logging.DEBUG
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        ch = logging.StreamHandler(sys.stdout)
        ch.setLevel(level)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s: %(message)s", "%Y-%m-%d %H:%M:%S")
        ch.setFormatter(fmt)
        root.addHandler(ch)
    return logging.getLogger("inhaler_report")


# ----------------------------- Pipeline --------------------------------
@dataclass(frozen=True)
class ReportData:
    """Everything the report views are drawn from."""

    practice_rates: pd.DataFrame
    board_rates: pd.DataFrame
    points: gpd.GeoDataFrame
    boards: gpd.GeoDataFrame
    months: int
    prescription_lines: int


def build_data(config: ReportConfig) -> ReportData:
    """Load, join and aggregate every source named in the config."""
    inputs = config.inputs
    simd = load_simd(inputs.simd)
    practices = load_practices(inputs.practices)
    prescriptions = load_prescriptions(inputs.prescriptions_dir, config.expected_months)
    points = load_practice_points(inputs.practice_points, config.crs)
    boards = load_health_boards(inputs.health_boards, config.crs)

    joined = join_sources(prescriptions, practices, simd)
    rates = practice_rates(joined)
    board_rates = health_board_rates(rates)

    return ReportData(
        practice_rates=rates,
        board_rates=board_rates,
        points=points,
        boards=boards,
        months=prescriptions["YearMonth"].nunique(),
        prescription_lines=len(prescriptions),
    )


# ----------------------------- Rendering -------------------------------
PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<style>
  body {{ font-family: Helvetica, Arial, sans-serif; max-width: 960px; margin: 2em auto; color: #222; }}
  h1 {{ font-size: 1.6em; }}
  figure {{ margin: 1.5em 0; }}
  figcaption {{ font-size: 0.9em; color: #555; }}
  table {{ border-collapse: collapse; }}
  th, td {{ padding: 4px 10px; border-bottom: 1px solid #ddd; text-align: left; }}
</style>
</head>
<body>
<h1>{title}</h1>
{intro}
<h2>Inhaler prescribing by deprivation decile</h2>
{boxplot_text}
<figure><img alt="Boxplot of inhaler rate by SIMD decile" src="data:image/png;base64,{boxplot}">
<figcaption>{boxplot_caption}</figcaption></figure>
<h2>Health boards</h2>
{map_text}
<figure><img alt="Map of inhaler rate by health board" src="data:image/png;base64,{map}">
<figcaption>Health boards shaded by mean practice rate; points are practices coloured by SIMD decile.</figcaption></figure>
<h2>Highest prescribing practices</h2>
{table_text}
{table}
</body>
</html>
"""


def _paragraphs(*texts: str) -> str:
    return "\n".join(f"<p>{html.escape(t)}</p>" for t in texts)


def _png_base64(path: Path) -> str:
    return base64.b64encode(Path(path).read_bytes()).decode("ascii")


def narrative(data: ReportData, config: ReportConfig) -> dict:
    """Prose sections of the report, filled from the aggregates."""
    rates = data.practice_rates
    valid = rates.dropna(subset=["Rate"])
    by_decile = valid.groupby("Decile")["Rate"].median()
    unresolved = int(rates["Decile"].isna().sum())

    intro = _paragraphs(
        "This report looks at whether inhaler prescribing in Scottish GP practices "
        "follows the Scottish Index of Multiple Deprivation (SIMD). Inhaler items are "
        f"counted for {', '.join(d.title() for d in INHALER_DRUGS)} across "
        f"{data.months} month(s) of prescribing ({data.prescription_lines:,} lines) "
        "and divided by each practice's registered list size.",
        "Asthma care resources such as Personalised Asthma Action Plans (PAAPs) are "
        "limited; knowing where inhaler use concentrates helps decide where to offer them.",
        f"{len(valid):,} practices have a rate. {unresolved} practice(s) could not be "
        "matched to a SIMD data zone and are left out of the charts.",
    )

    if len(by_decile):
        boxplot_text = _paragraphs(
            f"The median rate is {by_decile.iloc[0]:.2f} items per patient in decile "
            f"{int(by_decile.index[0])} and {by_decile.iloc[-1]:.2f} in decile "
            f"{int(by_decile.index[-1])}.",
        )
    else:
        boxplot_text = _paragraphs("No practice has both a rate and a SIMD decile.")

    excluded = ", ".join(config.boxplot_exclude) or "none"
    boxplot_caption = html.escape(
        f"Practices excluded from this chart only: {excluded}."
    )

    boards = data.board_rates.dropna(subset=["MeanRate"]).sort_values("MeanRate", ascending=False)
    if len(boards):
        top = boards.iloc[0]
        map_text = _paragraphs(
            f"Health board {top['HB']} has the highest mean practice rate "
            f"({top['MeanRate']:.2f}). The decile shown for each board is that of its "
            "first practice and is only indicative: boards cover many deciles.",
        )
    else:
        map_text = _paragraphs("No health board has a practice rate.")

    highlighted = ", ".join(config.table_highlight) or "none"
    table_text = _paragraphs(
        f"The {config.top_n} practices with the highest rate. Highlighted rows "
        f"({highlighted}) serve atypical populations and are not representative.",
    )

    return {
        "intro": intro,
        "boxplot_text": boxplot_text,
        "boxplot_caption": boxplot_caption,
        "map_text": map_text,
        "table_text": table_text,
    }


def build_report(data: ReportData, config: ReportConfig, out_dir: Path) -> Path:
    """
    Write the figures, CSV extracts and HTML report; return the report path.

    Everything is rendered into a staging folder next to out_dir first, so a
    failure part way through leaves out_dir untouched.
    """
    logger = logging.getLogger("inhaler_report")
    out_dir = Path(out_dir)
    out_dir.parent.mkdir(parents=True, exist_ok=True)

    with tempfile.TemporaryDirectory(prefix=".inhaler-report-", dir=out_dir.parent) as tmp:
        stage = Path(tmp)
        boxplot_png = save_figure(
            decile_boxplot(data.practice_rates, exclude=config.boxplot_exclude),
            stage / "boxplot.png",
        )
        map_png = save_figure(
            rate_map(data.boards, data.board_rates, data.points, data.practice_rates),
            stage / "map.png",
        )

        table = top_practices(data.practice_rates, n=config.top_n)
        table_html = style_ranking(table, highlight=config.table_highlight).to_html()

        data.practice_rates.to_csv(stage / "practice_rates.csv", index=False)
        data.board_rates.to_csv(stage / "health_board_rates.csv", index=False)

        page = PAGE.format(
            title=html.escape(config.title),
            boxplot=_png_base64(boxplot_png),
            map=_png_base64(map_png),
            table=table_html,
            **narrative(data, config),
        )
        (stage / "report.html").write_text(page, encoding="utf-8")

        out_dir.mkdir(exist_ok=True)
        for f in sorted(stage.iterdir()):
            os.replace(f, out_dir / f.name)

    report = out_dir / "report.html"
    logger.info("Wrote report: %s", report)
    return report


def run(config: ReportConfig, out_dir: Path, logger: logging.Logger) -> Path:
    logger.info("--- Starting inhaler / SIMD report build ---")
    data = build_data(config)
    report = build_report(data, config, out_dir)
    logger.info("--- Process Complete ---")
    return report


# ----------------------------- CLI -------------------------------------
def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Inhaler prescribing vs SIMD report")
    p.add_argument("--config", type=str, default=None, help="Path to report YAML (default config/report.yaml)")
    p.add_argument("--out", type=str, default=None, help="Output folder (overrides config output_dir)")
    p.add_argument("-v", "--verbose", action="count", default=1,
                   help="Verbosity: none=INFO (default), -v=DEBUG")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    logger = setup_logger(0 if args.quiet else args.verbose)
    try:
        config = load_config(args.config)
        out_dir = Path(args.out) if args.out else config.output_dir
        run(config, out_dir, logger)
    except Exception as e:
        logger.exception("Failed: %s", e)
        sys.exit(1)


if __name__ == "__main__":
    main()
