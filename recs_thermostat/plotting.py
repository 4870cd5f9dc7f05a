"""
Error-bar charts of the winter temperature estimates.
"""

import logging
import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
import seaborn as sns
from pathlib import Path
from typing import Optional, Union

from .config import PLOT_SETTINGS, COLORS, TEMPERATURE_TYPES, TEMPERATURE_TYPE_LABELS

logger = logging.getLogger(__name__)

sns.set_style("whitegrid")


def _error_lengths(table: pd.DataFrame, estimate: str) -> np.ndarray:
    # matplotlib wants distances below/above the point, not the bounds
    return np.vstack([
        (table[estimate] - table['lwr']).to_numpy(),
        (table['upr'] - table[estimate]).to_numpy()
    ])


def _therm_labels(table: pd.DataFrame) -> list:
    therm = table['therm']
    if isinstance(therm.dtype, pd.CategoricalDtype):
        present = set(therm.dropna())
        return [c for c in therm.cat.categories if c in present]
    return list(dict.fromkeys(therm))


def _finish(fig, output_path: Optional[Union[str, Path]]):
    plt.tight_layout()
    if output_path is not None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=PLOT_SETTINGS['dpi'], bbox_inches='tight')
        logger.info(f"Saved figure to {output_path}")
    return fig


def plot_temperatures_by_therm(table: pd.DataFrame,
                               output_path: Optional[Union[str, Path]] = None):
    """
    Average winter temperature by thermostat behavior, day and night side by side.

    Parameters:
    -----------
    table : pd.DataFrame
        Columns therm, type, avg_temp, lwr, upr
    output_path : str or Path, optional
        Where to save the figure

    Returns:
    --------
    matplotlib.figure.Figure
    """
    labels = _therm_labels(table)
    positions = {label: i for i, label in enumerate(labels)}
    dodge = PLOT_SETTINGS['dodge']
    offsets = {'home': -dodge, 'night': dodge}

    fig, ax = plt.subplots(figsize=PLOT_SETTINGS['figure_size'])

    for temp_type in TEMPERATURE_TYPES:
        subset = table[table['type'] == temp_type]
        if subset.empty:
            continue
        x = subset['therm'].map(positions).astype(float).to_numpy() + offsets[temp_type]
        ax.errorbar(x, subset['avg_temp'], yerr=_error_lengths(subset, 'avg_temp'),
                    fmt='o', color=COLORS[temp_type], capsize=PLOT_SETTINGS['capsize'],
                    markersize=PLOT_SETTINGS['marker_size'],
                    label=TEMPERATURE_TYPE_LABELS[temp_type])

    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=15, ha='right')
    ax.set_xlabel('Thermostat Behavior', fontsize=PLOT_SETTINGS['label_size'])
    ax.set_ylabel('Average Temperature, ºF', fontsize=PLOT_SETTINGS['label_size'])
    ax.legend(title='Winter Temperature', fontsize=PLOT_SETTINGS['legend_size'])
    ax.grid(True, alpha=PLOT_SETTINGS['grid_alpha'])

    return _finish(fig, output_path)


def plot_difference_by_therm(table: pd.DataFrame,
                             output_path: Optional[Union[str, Path]] = None):
    """
    Average day-minus-night temperature difference by thermostat behavior,
    with a reference line at zero.

    Parameters:
    -----------
    table : pd.DataFrame
        Columns therm, avg_delta, lwr, upr
    output_path : str or Path, optional
        Where to save the figure

    Returns:
    --------
    matplotlib.figure.Figure
    """
    labels = _therm_labels(table)
    positions = {label: i for i, label in enumerate(labels)}

    fig, ax = plt.subplots(figsize=PLOT_SETTINGS['figure_size'])

    x = table['therm'].map(positions).astype(float).to_numpy()
    ax.errorbar(x, table['avg_delta'], yerr=_error_lengths(table, 'avg_delta'),
                fmt='o', color=COLORS['difference'], capsize=PLOT_SETTINGS['capsize'],
                markersize=PLOT_SETTINGS['marker_size'])
    ax.axhline(y=0, color=COLORS['reference'], linestyle='--')

    ax.set_xticks(range(len(labels)))
    ax.set_xticklabels(labels, rotation=15, ha='right')
    ax.set_xlabel('Thermostat Behavior', fontsize=PLOT_SETTINGS['label_size'])
    ax.set_ylabel('Avg Day Less Night Temp Difference when Home, ºF',
                  fontsize=PLOT_SETTINGS['label_size'])
    ax.grid(True, alpha=PLOT_SETTINGS['grid_alpha'])

    return _finish(fig, output_path)
