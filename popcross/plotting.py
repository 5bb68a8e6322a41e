"""Static figures of predicted crosses."""

from __future__ import annotations

from pathlib import Path

import matplotlib
matplotlib.use('Agg') # Use non-interactive backend
import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns

from .config import AnalysisConfig
from .selection import Thresholds

PALETTE = {False: '#95a5a6', True: '#c0392b'}


def plot_title(analysis: AnalysisConfig) -> str:
    label = " ".join(part for part in (analysis.nursery, analysis.year) if part)
    traits = f"{analysis.x_trait} vs {analysis.y_trait}"
    return f"{label}: {traits}" if label else traits


def selection_scatter(
    crosses: pd.DataFrame,
    flags: pd.Series,
    thresholds: Thresholds,
    analysis: AnalysisConfig,
    output: str | Path,
) -> Path:
    """Scatter of all crosses with the selected ones highlighted.

    Dashed lines mark the quantile thresholds of both traits.
    """
    columns = list(dict.fromkeys([analysis.x_column, analysis.y_column]))
    data = crosses[columns].assign(best=flags.astype(bool).to_numpy())
    fig, ax = plt.subplots(figsize=(8, 6))
    sns.scatterplot(
        data=data,
        x=analysis.x_column,
        y=analysis.y_column,
        hue='best',
        hue_order=[False, True],
        palette=PALETTE,
        s=25,
        ax=ax,
    )
    ax.axvline(x=thresholds.x, color='black', linestyle='--', linewidth=1)
    ax.axhline(y=thresholds.y, color='black', linestyle='--', linewidth=1)
    ax.set_xlabel(f'{analysis.x_trait} ({analysis.statistic})')
    ax.set_ylabel(f'{analysis.y_trait} ({analysis.statistic})')
    ax.set_title(plot_title(analysis))
    ax.legend(title=f'Best {analysis.percent:g}%')

    target = Path(output)
    target.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(target, format='png', bbox_inches='tight')
    plt.close(fig)
    return target
