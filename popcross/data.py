"""Loading of phenotype, genotype, map and parent tables."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd
from pandas.api.types import is_numeric_dtype

from .errors import DataFormatError

logger = logging.getLogger(__name__)

NA_VALUES = ["", "NA", "NaN", "nan", "."]
VALID_CALLS = {0, 1, 2}


def read_table(path: str | Path, *, sep: str = ",", id_col: str = "ID") -> pd.DataFrame:
    table = pd.read_csv(path, sep=sep, dtype={id_col: str}, na_values=NA_VALUES, keep_default_na=True)
    if id_col not in table.columns:
        raise DataFormatError(f"Identifier column '{id_col}' not found in {path}")
    return table


def _require_unique(table: pd.DataFrame, id_col: str, label: str) -> None:
    duplicated = table[id_col][table[id_col].duplicated()].unique().tolist()
    if duplicated:
        raise DataFormatError(f"Duplicate identifiers in {label} table: {duplicated[:10]}")


def load_phenotypes(path: str | Path, *, sep: str = ",", id_col: str = "ID") -> pd.DataFrame:
    phenotypes = read_table(path, sep=sep, id_col=id_col)
    _require_unique(phenotypes, id_col, "phenotype")
    return phenotypes


def load_genotypes(path: str | Path, *, sep: str = ",", id_col: str = "ID") -> pd.DataFrame:
    genotypes = read_table(path, sep=sep, id_col=id_col)
    _require_unique(genotypes, id_col, "genotype")
    return genotypes


def load_map(
    path: str | Path,
    *,
    sep: str = ",",
    snp_col: str = "SNP",
    chrom_col: str = "Chr",
    pos_col: str = "cM",
) -> pd.DataFrame:
    genetic_map = pd.read_csv(path, sep=sep, dtype={snp_col: str, chrom_col: str})
    missing = [col for col in (snp_col, chrom_col, pos_col) if col not in genetic_map.columns]
    if missing:
        raise DataFormatError(f"Genetic map {path} is missing columns: {missing}")
    if not is_numeric_dtype(genetic_map[pos_col]):
        raise DataFormatError(f"Column '{pos_col}' of the genetic map must be numeric")
    return genetic_map[[snp_col, chrom_col, pos_col]]


def load_parents(path: str | Path, *, sep: str = ",", id_col: str = "ID") -> pd.DataFrame:
    return read_table(path, sep=sep, id_col=id_col)


def recode_genotypes(genotypes: pd.DataFrame, *, id_col: str = "ID") -> pd.DataFrame:
    """Shift 0/1/2 allele dosages to the -1/0/1 coding used for prediction.

    The identifier column is left untouched. Missing calls stay missing.
    Non-numeric or out-of-range calls raise ``DataFormatError`` instead of
    being coerced.
    """
    markers = [col for col in genotypes.columns if col != id_col]
    non_numeric = [marker for marker in markers if not is_numeric_dtype(genotypes[marker])]
    if non_numeric:
        raise DataFormatError(f"Non-numeric genotype calls in markers: {non_numeric[:10]}")
    values = genotypes[markers]
    invalid = [marker for marker in markers if not values[marker].dropna().isin(VALID_CALLS).all()]
    if invalid:
        raise DataFormatError(f"Genotype calls outside {{0,1,2}} in markers: {invalid[:10]}")
    recoded = genotypes.copy()
    recoded[markers] = values - 1
    return recoded


def trait_summary(phenotypes: pd.DataFrame, traits: Sequence[str]) -> pd.DataFrame:
    missing = [trait for trait in traits if trait not in phenotypes.columns]
    if missing:
        raise DataFormatError(f"Traits not found in phenotype table: {missing}")
    return phenotypes[list(traits)].describe().T


@dataclass
class BreedingData:
    phenotypes: pd.DataFrame
    genotypes: pd.DataFrame
    genetic_map: pd.DataFrame
    parents: pd.DataFrame
    id_col: str = "ID"

    @classmethod
    def from_files(
        cls,
        phenotype: str | Path,
        genotype: str | Path,
        genetic_map: str | Path,
        parents: str | Path,
        *,
        sep: str = ",",
        id_col: str = "ID",
    ) -> "BreedingData":
        data = cls(
            phenotypes=load_phenotypes(phenotype, sep=sep, id_col=id_col),
            genotypes=load_genotypes(genotype, sep=sep, id_col=id_col),
            genetic_map=load_map(genetic_map, sep=sep),
            parents=load_parents(parents, sep=sep, id_col=id_col),
            id_col=id_col,
        )
        logger.info(f"Loaded input tables: {data.summary()}")
        return data

    def marker_names(self) -> List[str]:
        return [col for col in self.genotypes.columns if col != self.id_col]

    def traits(self) -> List[str]:
        return [col for col in self.phenotypes.columns if col != self.id_col]

    def summary(self, traits: Optional[Sequence[str]] = None) -> Dict[str, object]:
        traits = list(traits) if traits is not None else self.traits()
        return {
            "phenotyped": len(self.phenotypes),
            "genotyped": len(self.genotypes),
            "markers": len(self.marker_names()),
            "map_rows": len(self.genetic_map),
            "parents": self.parents[self.id_col].nunique(),
            "observed": {trait: int(self.phenotypes[trait].notna().sum()) for trait in traits if trait in self.phenotypes},
        }

    def recoded(self) -> "BreedingData":
        return BreedingData(
            phenotypes=self.phenotypes,
            genotypes=recode_genotypes(self.genotypes, id_col=self.id_col),
            genetic_map=self.genetic_map,
            parents=self.parents,
            id_col=self.id_col,
        )
