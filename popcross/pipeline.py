"""End-to-end orchestration: load, recode, merge, subsample, predict, report."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import pandas as pd

from .cohort import Cohort, build_cohort
from .config import ReportConfig, Settings
from .data import BreedingData, trait_summary
from .engine import pop_predict
from .errors import DataFormatError
from .markers import subsample_markers
from .prediction import CrossPredictions, predict_crosses
from .reporting import table_suffix, write_report, write_table

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    cohort: Cohort
    predictions: CrossPredictions
    outputs: Dict[str, List[Path]]


def prepare_inputs(data: BreedingData, settings: Settings) -> Tuple[Cohort, pd.DataFrame, pd.DataFrame]:
    """Recode, build the cohort and subsample markers.

    Returns the cohort plus the genotype and map tables handed to the predictor.
    """
    recoded = data.recoded()
    cohort = build_cohort(recoded)
    genotypes, genetic_map = subsample_markers(
        cohort.genotypes,
        recoded.genetic_map,
        settings.N_MARKERS,
        seed=settings.RANDOM_SEED,
        id_col=data.id_col,
    )
    return cohort, genotypes, genetic_map


def run_prediction(
    data: BreedingData,
    traits: Sequence[str],
    settings: Settings,
    *,
    predictor: Callable[..., Dict[str, object]] = pop_predict,
) -> Tuple[Cohort, CrossPredictions]:
    logger.info(f"Trait summary:\n{trait_summary(data.phenotypes, traits)}")
    cohort, genotypes, genetic_map = prepare_inputs(data, settings)
    predictions = predict_crosses(cohort, genotypes, genetic_map, traits, settings, predictor=predictor)
    return cohort, predictions


def run_pipeline(
    data: BreedingData,
    traits: Sequence[str],
    settings: Settings,
    report: Optional[ReportConfig] = None,
    *,
    outdir: Optional[str | Path] = None,
    predictor: Callable[..., Dict[str, object]] = pop_predict,
) -> PipelineResult:
    outdir = Path(outdir) if outdir is not None else settings.RESULTS_DIR
    if report is not None:
        unpredicted = [trait for trait in report.traits() if trait not in traits]
        if unpredicted:
            raise DataFormatError(f"Report names traits that are not predicted: {unpredicted}")
    cohort, predictions = run_prediction(data, traits, settings, predictor=predictor)
    ext = table_suffix(settings.SEP)
    outputs: Dict[str, List[Path]] = {
        "tables": [write_table(predictions.crosses, outdir / f"predictions{ext}", sep=settings.SEP)],
        "figures": [],
    }
    if not predictions.models.empty:
        outputs["tables"].append(write_table(predictions.models, outdir / f"models{ext}", sep=settings.SEP))
    if report is not None:
        reported = write_report(predictions.crosses, report, outdir, sep=settings.SEP)
        outputs["tables"].extend(reported["tables"])
        outputs["figures"].extend(reported["figures"])
    logger.info(f"Wrote {len(outputs['tables'])} tables and {len(outputs['figures'])} figures to {outdir}.")
    return PipelineResult(cohort=cohort, predictions=predictions, outputs=outputs)


def load_predictions(path: str | Path, *, sep: str = ",") -> pd.DataFrame:
    return pd.read_csv(path, sep=sep, dtype={"Parent1": str, "Parent2": str})
