"""Ranking of predicted crosses and selection of the best candidates."""

from __future__ import annotations

from dataclasses import dataclass
from functools import reduce
from typing import Sequence, Tuple

import pandas as pd

from .config import AnalysisConfig
from .errors import DataFormatError

PAIR_KEYS = ("Parent1", "Parent2")


@dataclass(frozen=True)
class Thresholds:
    x: float
    y: float


@dataclass
class Selection:
    analysis: AnalysisConfig
    flagged: pd.DataFrame
    best: pd.DataFrame
    thresholds: Thresholds


def _require_columns(crosses: pd.DataFrame, columns: Sequence[str]) -> None:
    missing = [col for col in columns if col not in crosses.columns]
    if missing:
        raise DataFormatError(f"Prediction table has no columns {missing}")


def quantile_threshold(values: pd.Series, percent: float, *, high_is_best: bool = True) -> float:
    """Cutoff leaving ``percent`` % of the non-missing values beyond it.

    Uses linear interpolation between order statistics.
    """
    if not 0 < percent < 100:
        raise ValueError("percent must be between 0 and 100 (exclusive)")
    q = 1 - percent / 100 if high_is_best else percent / 100
    return float(pd.to_numeric(values, errors="coerce").dropna().quantile(q, interpolation="linear"))


def flag_best(crosses: pd.DataFrame, analysis: AnalysisConfig) -> Tuple[pd.Series, Thresholds]:
    x_col, y_col = analysis.x_column, analysis.y_column
    _require_columns(crosses, [x_col, y_col])
    x_high = analysis.direction == "high_high"
    thresholds = Thresholds(
        x=quantile_threshold(crosses[x_col], analysis.percent, high_is_best=x_high),
        y=quantile_threshold(crosses[y_col], analysis.percent, high_is_best=True),
    )
    x_pass = crosses[x_col] > thresholds.x if x_high else crosses[x_col] < thresholds.x
    flags = x_pass & (crosses[y_col] > thresholds.y)
    return flags.rename("best"), thresholds


def top_percent(crosses: pd.DataFrame, column: str, percent: float, *, high_is_best: bool = True) -> pd.DataFrame:
    _require_columns(crosses, [column])
    threshold = quantile_threshold(crosses[column], percent, high_is_best=high_is_best)
    if high_is_best:
        selected = crosses[crosses[column] > threshold]
    else:
        selected = crosses[crosses[column] < threshold]
    return selected.sort_values(column, ascending=not high_is_best).reset_index(drop=True)


def intersect_selections(tables: Sequence[pd.DataFrame], *, keys: Sequence[str] = PAIR_KEYS) -> pd.DataFrame:
    """Crosses present in every table, with the columns of the first table."""
    if not tables:
        raise ValueError("At least one selection table is required")
    shared = reduce(
        lambda left, right: left.merge(right[list(keys)].drop_duplicates(), on=list(keys), how="inner"),
        tables[1:],
        tables[0],
    )
    return shared.reset_index(drop=True)


def parent_tally(selected: pd.DataFrame) -> pd.Series:
    _require_columns(selected, PAIR_KEYS)
    appearances = pd.concat([selected[PAIR_KEYS[0]], selected[PAIR_KEYS[1]]], ignore_index=True)
    return appearances.value_counts().rename("tally")


def attach_tallies(selected: pd.DataFrame) -> pd.DataFrame:
    tally = parent_tally(selected)
    tallied = selected.copy()
    tallied["Parent1_tally"] = tallied["Parent1"].map(tally).fillna(0).astype(int)
    tallied["Parent2_tally"] = tallied["Parent2"].map(tally).fillna(0).astype(int)
    return tallied


def select_best(crosses: pd.DataFrame, analysis: AnalysisConfig) -> Selection:
    flags, thresholds = flag_best(crosses, analysis)
    flagged = crosses.assign(best=flags)
    best = attach_tallies(flagged[flagged["best"]].drop(columns="best"))
    best = best.sort_values(analysis.primary_column, ascending=False).reset_index(drop=True)
    return Selection(analysis=analysis, flagged=flagged, best=best, thresholds=thresholds)
