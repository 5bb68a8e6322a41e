"""Adapter between labelled pipeline tables and the cross prediction engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple

import pandas as pd

from .cohort import Cohort
from .config import Settings
from .engine import pop_predict
from .errors import DataFormatError
from .markers import check_marker_order, marker_columns

logger = logging.getLogger(__name__)

PARAM_SUFFIX = "_param.df"
PARENT_KEYS = ["Par1", "Par2"]


@dataclass
class CrossPredictions:
    crosses: pd.DataFrame
    models: pd.DataFrame
    dropped: int


def build_embedded_matrix(genotypes: pd.DataFrame, *, id_col: str = "ID") -> pd.DataFrame:
    """Put marker names in the first row and line names in the first column.

    The returned frame has plain integer labels; all names live in the cells.
    """
    markers = marker_columns(genotypes, id_col=id_col)
    header = pd.DataFrame([[""] + markers])
    body = pd.concat(
        [genotypes[id_col].astype(str).reset_index(drop=True), genotypes[markers].reset_index(drop=True)],
        axis=1,
    )
    body.columns = range(body.shape[1])
    return pd.concat([header, body.astype(object)], ignore_index=True)


def _preflight(cohort: Cohort, genotypes: pd.DataFrame, genetic_map: pd.DataFrame, traits: Sequence[str]) -> None:
    id_col = cohort.id_col
    check_marker_order(genotypes, genetic_map, id_col=id_col)
    markers = marker_columns(genotypes, id_col=id_col)
    incomplete = [marker for marker in markers if genotypes[marker].isna().any()]
    if incomplete:
        raise DataFormatError(f"Missing genotype calls in markers: {incomplete[:10]}")
    unknown = [trait for trait in traits if trait not in cohort.phenotypes.columns]
    if unknown:
        raise DataFormatError(f"Traits not found in phenotype table: {unknown}")
    if not traits:
        raise DataFormatError("At least one trait is required for prediction")
    if cohort.parents.empty:
        raise DataFormatError("No candidate parents remain after filtering to genotyped samples")


def flatten_predictions(output: Dict[str, object]) -> pd.DataFrame:
    """One row per cross with ``<trait>_<statistic>`` columns for every trait."""
    flat: Optional[pd.DataFrame] = None
    for key, table in output["predictions"].items():
        trait = key[: -len(PARAM_SUFFIX)] if key.endswith(PARAM_SUFFIX) else key
        renamed = table.rename(
            columns={col: f"{trait}_{col.replace('.', '_')}" for col in table.columns if col not in PARENT_KEYS}
        )
        flat = renamed if flat is None else flat.merge(renamed, on=PARENT_KEYS, how="outer")
    if flat is None:
        return pd.DataFrame(columns=PARENT_KEYS)
    return flat


def label_parents(flat: pd.DataFrame, parents: pd.DataFrame, *, id_col: str = "ID") -> Tuple[pd.DataFrame, int]:
    """Attach candidate-parent records to each cross, once per parent slot.

    Inner joins: a cross whose ``Par1`` or ``Par2`` is not in ``parents`` is
    dropped. Returns the labelled table and the number of dropped rows.
    """
    labelled = flat
    for slot, key in (("Parent1", "Par1"), ("Parent2", "Par2")):
        slot_table = parents.rename(columns={col: f"{slot}_{col}" for col in parents.columns if col != id_col})
        slot_table = slot_table.rename(columns={id_col: slot})
        labelled = labelled.merge(slot_table, left_on=key, right_on=slot, how="inner")
    dropped = len(flat) - len(labelled)
    if dropped:
        logger.warning(f"Excluded {dropped} predicted crosses whose parents are not in the candidate list.")
    stats = [col for col in flat.columns if col not in PARENT_KEYS]
    carried = [col for col in labelled.columns if col not in stats + PARENT_KEYS + ["Parent1", "Parent2"]]
    return labelled[["Parent1", "Parent2"] + carried + stats].reset_index(drop=True), dropped


def predict_crosses(
    cohort: Cohort,
    genotypes: pd.DataFrame,
    genetic_map: pd.DataFrame,
    traits: Sequence[str],
    settings: Settings,
    *,
    predictor: Callable[..., Dict[str, object]] = pop_predict,
) -> CrossPredictions:
    """Run the predictor once over every candidate cross and tidy its output.

    ``genotypes`` and ``genetic_map`` are the recoded, possibly subsampled,
    tables restricted to the cohort. Predictor errors propagate.
    """
    id_col = cohort.id_col
    traits = list(traits)
    _preflight(cohort, genotypes, genetic_map, traits)

    G_in = build_embedded_matrix(genotypes, id_col=id_col)
    y_in = cohort.phenotypes[[id_col] + traits]
    logger.info(
        f"Predicting crosses among {len(cohort.parent_ids)} parents for traits {traits} "
        f"with {len(G_in.columns) - 1} markers."
    )
    output = predictor(
        G_in,
        y_in,
        genetic_map,
        cohort.parent_ids,
        models=settings.MODELS,
        n_sim=settings.N_SIM,
        n_ind=settings.N_IND,
        frac_selected=settings.FRAC_SELECTED,
        self_crosses=settings.SELF_CROSSES,
        random_state=settings.RANDOM_SEED,
    )
    flat = flatten_predictions(output).round(2)
    crosses, dropped = label_parents(flat, cohort.parents, id_col=id_col)
    logger.info(f"Predicted {len(crosses)} crosses ({dropped} excluded by the parent join).")
    models = output.get("models")
    if models is None:
        models = pd.DataFrame()
    return CrossPredictions(crosses=crosses, models=models, dropped=dropped)
