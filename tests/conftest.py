from pathlib import Path

import pandas as pd
import pytest

from popcross.config import Settings
from popcross.data import BreedingData

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def breeding_data() -> BreedingData:
    return BreedingData.from_files(
        DATA_DIR / "phenotypes.csv",
        DATA_DIR / "genotypes.csv",
        DATA_DIR / "map.csv",
        DATA_DIR / "parents.csv",
    )


@pytest.fixture
def settings() -> Settings:
    return Settings(N_SIM=3, N_IND=20, RANDOM_SEED=1, MODELS=["rrBLUP"], N_MARKERS=None)


@pytest.fixture
def five_parent_data() -> BreedingData:
    ids = ["A", "B", "C", "D", "E", "F"]
    calls = [
        [0, 2, 2, 0, 2, 0],
        [2, 2, 0, 0, 0, 2],
        [0, 0, 2, 2, 2, 2],
        [2, 0, 0, 2, 0, 0],
        [0, 2, 0, 2, 2, 0],
        [2, 0, 2, 0, 0, 2],
    ]
    markers = [f"S{i}" for i in range(1, 7)]
    genotypes = pd.DataFrame(calls, columns=markers)
    genotypes.insert(0, "ID", ids)
    phenotypes = pd.DataFrame({"ID": ["A", "B", "C", "D", "F"], "yield": [4.0, 6.5, 5.1, 7.3, 5.8]})
    genetic_map = pd.DataFrame({"SNP": markers, "Chr": ["1", "1", "1", "2", "2", "2"], "cM": [0.0, 20.0, 45.0, 0.0, 15.0, 30.0]})
    parents = pd.DataFrame({"ID": ["A", "B", "C", "D", "E"]})
    return BreedingData(phenotypes=phenotypes, genotypes=genotypes, genetic_map=genetic_map, parents=parents)


def ranked_predictor(G_in, y_in, map_in, parents, **kwargs):
    """Stand-in predictor giving every ordered cross a distinct value 1..n^2."""
    rows = []
    for i, p1 in enumerate(parents):
        for j, p2 in enumerate(parents):
            value = float(i * len(parents) + j + 1)
            rows.append({"Par1": p1, "Par2": p2, "pred.mu": value, "mu.sp_high": value + 0.5})
    predictions = {f"{trait}_param.df": pd.DataFrame(rows) for trait in y_in.columns[1:]}
    return {"predictions": predictions, "models": pd.DataFrame({"trait": list(y_in.columns[1:])})}


@pytest.fixture
def stub_predictor():
    return ranked_predictor
