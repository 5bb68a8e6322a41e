"""Marker bookkeeping: map alignment checks and random marker subsets."""

from __future__ import annotations

import logging
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from .errors import DataFormatError

logger = logging.getLogger(__name__)


def marker_columns(genotypes: pd.DataFrame, *, id_col: str = "ID") -> List[str]:
    return [col for col in genotypes.columns if col != id_col]


def check_marker_order(
    genotypes: pd.DataFrame,
    genetic_map: pd.DataFrame,
    *,
    id_col: str = "ID",
    snp_col: str = "SNP",
) -> None:
    markers = marker_columns(genotypes, id_col=id_col)
    mapped = genetic_map[snp_col].astype(str).tolist()
    if markers == mapped:
        return
    if len(markers) != len(mapped):
        raise DataFormatError(
            f"Genotype table has {len(markers)} markers but the genetic map has {len(mapped)} rows"
        )
    position = next(i for i, (left, right) in enumerate(zip(markers, mapped)) if left != right)
    raise DataFormatError(
        f"Marker order differs from the genetic map at position {position}: "
        f"'{markers[position]}' in genotypes vs '{mapped[position]}' in map"
    )


def subsample_markers(
    genotypes: pd.DataFrame,
    genetic_map: pd.DataFrame,
    k: Optional[int],
    *,
    seed: Optional[int] = None,
    id_col: str = "ID",
    snp_col: str = "SNP",
) -> Tuple[pd.DataFrame, pd.DataFrame]:
    """Keep ``k`` randomly chosen markers in genome order.

    The same ``seed`` always selects the same markers. Both returned tables
    list the chosen markers in the same order.
    """
    check_marker_order(genotypes, genetic_map, id_col=id_col, snp_col=snp_col)
    markers = marker_columns(genotypes, id_col=id_col)
    total = len(markers)
    if k is not None and k < 1:
        raise DataFormatError("Number of markers to keep must be at least 1")
    if k is None or k >= total:
        if k is not None and k > total:
            logger.warning(f"Requested {k} markers but only {total} are available; keeping all of them.")
        return genotypes.copy(), genetic_map.reset_index(drop=True)

    rng = np.random.default_rng(seed)
    positions = np.sort(rng.choice(total, size=k, replace=False))
    chosen = [markers[i] for i in positions]
    geno_subset = genotypes[[id_col] + chosen].copy()
    map_subset = genetic_map.iloc[positions].reset_index(drop=True)
    check_marker_order(geno_subset, map_subset, id_col=id_col, snp_col=snp_col)
    logger.info(f"Subsampled {k} of {total} markers (seed={seed}).")
    return geno_subset, map_subset
