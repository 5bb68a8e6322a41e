"""Merging phenotyped lines with candidate parents and restricting to genotyped samples."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List

import pandas as pd

from .data import BreedingData

logger = logging.getLogger(__name__)


@dataclass
class CohortFilter:
    phenotypes: pd.DataFrame
    genotypes: pd.DataFrame
    dropped: int
    dropped_ids: List[str] = field(default_factory=list)


@dataclass
class Cohort:
    phenotypes: pd.DataFrame
    genotypes: pd.DataFrame
    parents: pd.DataFrame
    dropped: int
    id_col: str = "ID"

    @property
    def parent_ids(self) -> List[str]:
        return self.parents[self.id_col].tolist()


def merge_candidates(phenotypes: pd.DataFrame, parents: pd.DataFrame, *, id_col: str = "ID") -> pd.DataFrame:
    """Add candidate parents to the phenotype table with missing trait values."""
    candidates = parents[[id_col]].drop_duplicates()
    return phenotypes.merge(candidates, on=id_col, how="outer")


def filter_to_genotyped(phenotypes: pd.DataFrame, genotypes: pd.DataFrame, *, id_col: str = "ID") -> CohortFilter:
    genotyped = set(genotypes[id_col])
    phenotyped = set(phenotypes[id_col])
    keep_pheno = phenotypes[id_col].isin(genotyped)
    keep_geno = genotypes[id_col].isin(phenotyped)
    dropped_ids = phenotypes.loc[~keep_pheno, id_col].tolist()
    logger.info(
        f"Removed {len(dropped_ids)} phenotyped samples without genotypes and "
        f"{int((~keep_geno).sum())} genotyped samples without phenotype records."
    )
    return CohortFilter(
        phenotypes=phenotypes[keep_pheno].reset_index(drop=True),
        genotypes=genotypes[keep_geno].reset_index(drop=True),
        dropped=len(dropped_ids),
        dropped_ids=dropped_ids,
    )


def finalize_parents(
    parents: pd.DataFrame,
    phenotypes: pd.DataFrame,
    genotypes: pd.DataFrame,
    *,
    id_col: str = "ID",
) -> pd.DataFrame:
    unique = parents.drop_duplicates(subset=id_col, keep="first")
    present = unique[id_col].isin(set(phenotypes[id_col])) & unique[id_col].isin(set(genotypes[id_col]))
    removed = unique.loc[~present, id_col].tolist()
    if removed:
        logger.warning(f"Dropping {len(removed)} candidate parents without genotype data: {removed[:10]}")
    return unique[present].reset_index(drop=True)


def build_cohort(data: BreedingData) -> Cohort:
    id_col = data.id_col
    merged = merge_candidates(data.phenotypes, data.parents, id_col=id_col)
    filtered = filter_to_genotyped(merged, data.genotypes, id_col=id_col)
    parents = finalize_parents(data.parents, filtered.phenotypes, filtered.genotypes, id_col=id_col)
    logger.info(f"Cohort: {len(filtered.phenotypes)} samples, {len(parents)} candidate parents.")
    return Cohort(
        phenotypes=filtered.phenotypes,
        genotypes=filtered.genotypes,
        parents=parents,
        dropped=filtered.dropped,
        id_col=id_col,
    )
