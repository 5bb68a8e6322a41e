"""Writing of prediction and selection tables and figures."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List

import pandas as pd

from .config import ReportConfig
from .plotting import selection_scatter
from .selection import intersect_selections, select_best, top_percent

logger = logging.getLogger(__name__)


def write_table(table: pd.DataFrame, path: str | Path, *, sep: str = ",") -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    table.to_csv(target, sep=sep, index=False)
    return target


def table_suffix(sep: str) -> str:
    return ".tsv" if sep == "\t" else ".csv"


def _percent_label(percent: float) -> str:
    return f"{percent:g}".replace(".", "_")


def write_report(crosses: pd.DataFrame, config: ReportConfig, outdir: str | Path, *, sep: str = ",") -> Dict[str, List[Path]]:
    """Write every table and figure requested by ``config`` under ``outdir``."""
    outdir = Path(outdir)
    ext = table_suffix(sep)
    written: Dict[str, List[Path]] = {"tables": [], "figures": []}

    for request in config.top_tables:
        table = top_percent(crosses, request.column, request.percent, high_is_best=request.high_is_best)
        stem = f"top{_percent_label(request.percent)}_{request.trait}"
        if request.statistic != "pred_mu":
            stem = f"{stem}_{request.statistic}"
        name = f"{stem}{ext}"
        written["tables"].append(write_table(table, outdir / name, sep=sep))
        logger.info(f"Top {request.percent:g}% of crosses for {request.trait}: {len(table)} rows.")

    for request in config.intersections:
        tables = [top_percent(crosses, f"{trait}_{request.statistic}", request.percent) for trait in request.traits]
        shared = intersect_selections(tables)
        written["tables"].append(write_table(shared, outdir / f"intersect_{request.name}{ext}", sep=sep))
        logger.info(f"Crosses in the top {request.percent:g}% for all of {request.traits}: {len(shared)}.")

    for analysis in config.analyses:
        selection = select_best(crosses, analysis)
        written["tables"].append(write_table(selection.best, outdir / f"best_{analysis.name}{ext}", sep=sep))
        figure = selection_scatter(
            selection.flagged,
            selection.flagged["best"],
            selection.thresholds,
            analysis,
            outdir / f"plot_{analysis.name}.png",
        )
        written["figures"].append(figure)
        logger.info(
            f"Analysis {analysis.name}: {len(selection.best)} best crosses "
            f"(thresholds {selection.thresholds.x:.2f}, {selection.thresholds.y:.2f})."
        )

    return written
