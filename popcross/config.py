"""Run-time settings and per-analysis configuration models."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    RESULTS_DIR: Path = Path("results")
    SEP: str = ","
    ID_COL: str = "ID"
    N_MARKERS: Optional[int] = None
    RANDOM_SEED: int = 2021
    MODELS: List[str] = ["rrBLUP"]
    N_SIM: int = 25
    N_IND: int = 200
    FRAC_SELECTED: float = 0.1
    SELF_CROSSES: bool = True

    model_config = SettingsConfigDict(
        env_prefix="POPCROSS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


Direction = Literal["high_high", "high_low"]


class AnalysisConfig(BaseModel):
    """One trait-pair selection: which crosses are 'best' and how to plot them.

    ``high_high`` keeps crosses above the upper quantile of both traits.
    ``high_low`` keeps crosses below the lower quantile of ``x_trait`` and
    above the upper quantile of ``y_trait``.
    """

    name: str
    x_trait: str
    y_trait: str
    percent: float = 10.0
    direction: Direction = "high_high"
    statistic: str = "pred_mu"
    nursery: str = ""
    year: str = ""

    @field_validator("percent")
    @classmethod
    def _check_percent(cls, value: float) -> float:
        if not 0 < value < 100:
            raise ValueError("percent must be between 0 and 100 (exclusive)")
        return value

    @field_validator("year", mode="before")
    @classmethod
    def _year_as_text(cls, value):
        return "" if value is None else str(value)

    @property
    def x_column(self) -> str:
        return f"{self.x_trait}_{self.statistic}"

    @property
    def y_column(self) -> str:
        return f"{self.y_trait}_{self.statistic}"

    @property
    def primary_column(self) -> str:
        return self.x_column if self.direction == "high_high" else self.y_column


class TopTableConfig(BaseModel):
    trait: str
    percent: float = 10.0
    statistic: str = "pred_mu"
    high_is_best: bool = True

    @property
    def column(self) -> str:
        return f"{self.trait}_{self.statistic}"


class IntersectionConfig(BaseModel):
    name: str
    traits: List[str] = Field(min_length=2)
    percent: float = 10.0
    statistic: str = "pred_mu"


class ReportConfig(BaseModel):
    analyses: List[AnalysisConfig] = Field(default_factory=list)
    top_tables: List[TopTableConfig] = Field(default_factory=list)
    intersections: List[IntersectionConfig] = Field(default_factory=list)

    def traits(self) -> List[str]:
        """Every trait named by an analysis, top table or intersection."""
        names = [trait for analysis in self.analyses for trait in (analysis.x_trait, analysis.y_trait)]
        names += [request.trait for request in self.top_tables]
        names += [trait for request in self.intersections for trait in request.traits]
        return list(dict.fromkeys(names))


def load_report_config(path: str | Path) -> ReportConfig:
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    return ReportConfig.model_validate(payload)
