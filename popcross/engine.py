"""Default genomic prediction engine for parent crosses.

Marker effects are estimated with scikit-learn linear models trained on the
phenotyped lines. The progeny of every cross are simulated as doubled
haploids drawn from the F1, with recombination between adjacent markers
given by Haldane's map function. The mean and variance of the simulated
progeny values give the predicted cross mean, and truncation selection on a
normal distribution gives the mean of the superior progeny fraction.

The engine speaks the embedded-header convention: marker and line names are
the first row and first column of ``G_in`` rather than frame labels.
"""

from __future__ import annotations

import itertools
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from scipy.stats import norm
from sklearn.linear_model import ElasticNet, Lasso, Ridge
from sklearn.model_selection import KFold, cross_val_predict

from .errors import PredictionError

logger = logging.getLogger(__name__)

MODELS: Dict[str, Callable[[], object]] = {
    "rrBLUP": lambda: Ridge(alpha=1.0),
    "LASSO": lambda: Lasso(alpha=0.01, max_iter=10000),
    "EN": lambda: ElasticNet(alpha=0.01, l1_ratio=0.5, max_iter=10000),
}

STATISTICS = [
    "midPar.Pheno",
    "midPar.GEBV",
    "pred.mu",
    "pred.mu_sd",
    "pred.varG",
    "pred.varG_sd",
    "mu.sp_low",
    "mu.sp_high",
]


def _parse_genotypes(G_in: pd.DataFrame) -> Tuple[List[str], List[str], np.ndarray]:
    if G_in.shape[0] < 2 or G_in.shape[1] < 2:
        raise PredictionError("G.in needs a marker header row, a line name column and at least one call")
    markers = G_in.iloc[0, 1:].tolist()
    names = G_in.iloc[1:, 0].tolist()
    bad = [label for label in markers + names if not isinstance(label, str)]
    if bad:
        raise PredictionError(f"G.in marker and line names must be character strings, found {bad[:5]}")
    if len(set(names)) != len(names):
        raise PredictionError("G.in contains duplicated line names")
    try:
        calls = G_in.iloc[1:, 1:].to_numpy(dtype=float)
    except (TypeError, ValueError) as exc:
        raise PredictionError("G.in calls must be numeric") from exc
    if np.isnan(calls).any():
        raise PredictionError("G.in contains missing calls")
    if not np.isin(calls, (-1.0, 0.0, 1.0)).all():
        raise PredictionError("G.in calls must be coded as -1, 0 or 1")
    return names, markers, calls


def _recombination_fractions(map_in: pd.DataFrame, markers: Sequence[str]) -> np.ndarray:
    if map_in.shape[1] < 3:
        raise PredictionError("map.in must have marker, chromosome and cM columns")
    mapped = map_in.iloc[:, 0].astype(str).tolist()
    if mapped != list(markers):
        raise PredictionError("Markers in map.in do not match the markers in G.in")
    chromosomes = map_in.iloc[:, 1].astype(str).to_numpy()
    positions = pd.to_numeric(map_in.iloc[:, 2], errors="coerce").to_numpy(dtype=float)
    if np.isnan(positions).any():
        raise PredictionError("map.in positions must be numeric")
    distance = np.abs(np.diff(positions)) / 100.0
    fractions = 0.5 * (1.0 - np.exp(-2.0 * distance))
    fractions[chromosomes[1:] != chromosomes[:-1]] = 0.5
    return fractions


def selection_intensity(frac_selected: float) -> float:
    if not 0 < frac_selected < 1:
        raise PredictionError("frac_selected must be between 0 and 1")
    z = norm.ppf(1.0 - frac_selected)
    return float(norm.pdf(z) / frac_selected)


def _choose_model(X: np.ndarray, y: np.ndarray, models: Sequence[str], random_state: Optional[int]):
    if len(models) == 1:
        return models[0], float("nan")
    cv = KFold(n_splits=min(5, len(y)), shuffle=True, random_state=random_state)
    scores: Dict[str, float] = {}
    for name in models:
        predicted = cross_val_predict(MODELS[name](), X, y, cv=cv)
        with np.errstate(invalid="ignore", divide="ignore"):
            scores[name] = float(np.corrcoef(y, predicted)[0, 1])
    best = max(models, key=lambda name: np.nan_to_num(scores[name], nan=-np.inf))
    return best, scores[best]


def _cross_pairs(parents: Sequence[str], *, self_crosses: bool, ordered: bool) -> List[Tuple[str, str]]:
    if ordered:
        pairs = itertools.product(parents, repeat=2)
    else:
        pairs = itertools.combinations_with_replacement(parents, 2)
    return [(p1, p2) for p1, p2 in pairs if self_crosses or p1 != p2]


def simulate_progeny(
    parent1: np.ndarray,
    parent2: np.ndarray,
    fractions: np.ndarray,
    n_progeny: int,
    rng: np.random.Generator,
) -> np.ndarray:
    """Doubled haploid progeny of ``parent1 x parent2``, one row per individual."""
    start = rng.integers(0, 2, size=(n_progeny, 1))
    switches = rng.random((n_progeny, len(fractions))) < fractions
    crossovers = np.concatenate([np.zeros((n_progeny, 1), dtype=int), np.cumsum(switches, axis=1)], axis=1)
    origin = (start + crossovers) % 2
    return np.where(origin == 0, parent1, parent2)


def pop_predict(
    G_in: pd.DataFrame,
    y_in: pd.DataFrame,
    map_in: pd.DataFrame,
    parents: Sequence[str],
    *,
    models: Sequence[str] = ("rrBLUP",),
    n_sim: int = 25,
    n_ind: int = 200,
    frac_selected: float = 0.1,
    self_crosses: bool = True,
    ordered: bool = True,
    random_state: Optional[int] = None,
) -> Dict[str, object]:
    """Predict progeny mean, variance and superior progeny mean of parent crosses.

    ``y_in`` holds line names in its first column and one trait per remaining
    column. The result maps ``"<trait>_param.df"`` to one frame per trait
    (columns ``Par1``, ``Par2`` and :data:`STATISTICS`) under
    ``"predictions"``, and the chosen model per trait under ``"models"``.
    """
    models = list(models)
    unknown = [name for name in models if name not in MODELS]
    if not models or unknown:
        raise PredictionError(f"Unknown prediction models {unknown}; choose from {sorted(MODELS)}")
    if n_sim < 1 or n_ind < 2:
        raise PredictionError("n_sim must be at least 1 and n_ind at least 2")

    names, markers, calls = _parse_genotypes(G_in)
    fractions = _recombination_fractions(map_in, markers)
    intensity = selection_intensity(frac_selected)
    row_of = {name: i for i, name in enumerate(names)}

    parents = list(dict.fromkeys(parents))
    absent = [parent for parent in parents if parent not in row_of]
    if not parents or absent:
        raise PredictionError(f"Parents missing from G.in: {absent[:10]}" if absent else "No parents supplied")

    lines = y_in.iloc[:, 0].tolist()
    if any(not isinstance(line, str) for line in lines):
        raise PredictionError("y.in line names must be character strings")
    traits = list(y_in.columns[1:])
    if not traits:
        raise PredictionError("y.in must contain at least one trait column")
    phenotypes = y_in.set_index(y_in.columns[0])

    fitted = {}
    model_rows = []
    for trait in traits:
        observed = pd.to_numeric(phenotypes[trait], errors="coerce").dropna()
        observed = observed[observed.index.isin(list(row_of))]
        if len(observed) < 2:
            raise PredictionError(f"Trait '{trait}' has fewer than two genotyped observations")
        X = calls[[row_of[line] for line in observed.index]]
        y = observed.to_numpy(dtype=float)
        name, score = _choose_model(X, y, models, random_state)
        fitted[trait] = MODELS[name]().fit(X, y)
        model_rows.append({"trait": trait, "model": name, "cv_r": score, "n_train": len(y)})
        logger.info(f"Fitted {name} marker effects for {trait} on {len(y)} lines.")

    pairs = _cross_pairs(parents, self_crosses=self_crosses, ordered=ordered)
    logger.info(f"Simulating {len(pairs)} crosses x {n_sim} populations x {n_ind} progeny.")
    rng = np.random.default_rng(random_state)
    parent_calls = calls[[row_of[parent] for parent in parents]]
    parent_gebv = {trait: dict(zip(parents, model.predict(parent_calls))) for trait, model in fitted.items()}
    parent_pheno = {
        trait: pd.to_numeric(phenotypes[trait], errors="coerce").reindex(parents) for trait in traits
    }

    records: Dict[str, List[dict]] = {trait: [] for trait in traits}
    for p1, p2 in pairs:
        progeny = simulate_progeny(calls[row_of[p1]], calls[row_of[p2]], fractions, n_sim * n_ind, rng)
        for trait, model in fitted.items():
            values = model.predict(progeny).reshape(n_sim, n_ind)
            means = values.mean(axis=1)
            variances = values.var(axis=1, ddof=1)
            mu = float(means.mean())
            var_g = float(variances.mean())
            spread = intensity * np.sqrt(var_g)
            records[trait].append(
                {
                    "Par1": p1,
                    "Par2": p2,
                    "midPar.Pheno": (parent_pheno[trait][p1] + parent_pheno[trait][p2]) / 2,
                    "midPar.GEBV": (parent_gebv[trait][p1] + parent_gebv[trait][p2]) / 2,
                    "pred.mu": mu,
                    "pred.mu_sd": float(means.std(ddof=1)) if n_sim > 1 else 0.0,
                    "pred.varG": var_g,
                    "pred.varG_sd": float(variances.std(ddof=1)) if n_sim > 1 else 0.0,
                    "mu.sp_low": mu - spread,
                    "mu.sp_high": mu + spread,
                }
            )

    predictions = {
        f"{trait}_param.df": pd.DataFrame(rows, columns=["Par1", "Par2"] + STATISTICS)
        for trait, rows in records.items()
    }
    return {"predictions": predictions, "models": pd.DataFrame(model_rows)}
