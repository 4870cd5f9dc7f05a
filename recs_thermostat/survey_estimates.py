"""
Survey-weighted estimators for RECS winter temperatures.

Point estimates use the primary sampling weight (NWEIGHT). Standard errors use
balanced repeated replication (BRR) with Fay's adjustment over the 96 replicate
weights, following the EIA guidance for the 2015 public use microdata:

    se = 2 * sqrt( mean_r( (theta_r - theta)^2 ) )

Confidence intervals are normal approximations, theta +/- z * se.
"""

import logging
import numpy as np
import pandas as pd
from scipy import stats
from typing import Dict, List, Optional, Sequence, Tuple

from .config import (
    N_REPLICATES,
    BRR_SCALE_FACTOR,
    CONFIDENCE_LEVEL,
    TEMPERATURE_TYPES
)
from .utils import (
    extract_core,
    filter_heating_homes,
    pivot_temperatures,
    pivot_replicate_weights,
    check_replicate_coverage
)

logger = logging.getLogger(__name__)


class EstimationError(ValueError):
    """Raised when an estimate is undefined for the data supplied."""
    pass


def weighted_mean(df: pd.DataFrame, value: str, weight: str = 'weight',
                  by: Sequence[str] = ('therm',), name: Optional[str] = None) -> pd.DataFrame:
    """
    Ratio-of-sums weighted mean of `value` within groups.

    Rows with a missing value are left out of both the numerator and the
    denominator.

    Parameters:
    -----------
    df : pd.DataFrame
        Data with the grouping, value and weight columns
    value : str
        Column to average
    weight : str
        Weight column
    by : sequence of str
        Grouping columns
    name : str, optional
        Name of the result column (default 'avg_<value>')

    Returns:
    --------
    pd.DataFrame
        One row per observed group: the `by` columns and the weighted mean

    Raises:
    -------
    EstimationError
        If grouping keys or weights are missing, or a group has no positive weight
    """
    by = list(by)
    name = name or f"avg_{value}"

    missing_keys = df[by].isna().any(axis=1)
    if missing_keys.any():
        raise EstimationError(f"{int(missing_keys.sum())} rows have missing grouping keys {by}")

    included = df[value].notna()
    missing_weights = included & df[weight].isna()
    if missing_weights.any():
        raise EstimationError(f"{int(missing_weights.sum())} rows have a '{value}' value but no '{weight}'")

    work = df[by].copy()
    work['_num'] = (df[value] * df[weight]).where(included, 0.0)
    work['_den'] = df[weight].where(included, 0.0)
    sums = work.groupby(by, observed=True, sort=True)[['_num', '_den']].sum()

    empty = sums['_den'] <= 0
    if empty.any():
        groups = sums.index[empty.to_numpy()].tolist()
        raise EstimationError(
            f"No positive weight among non-missing '{value}' values for "
            f"{len(groups)} groups of {by}: {groups[:5]}"
        )

    return (sums['_num'] / sums['_den']).rename(name).reset_index()


def household_differences(temps_long: pd.DataFrame) -> pd.DataFrame:
    """
    Day-minus-night temperature difference for each household.

    Parameters:
    -----------
    temps_long : pd.DataFrame
        Output of pivot_temperatures (id, weight, therm, type, temp)

    Returns:
    --------
    pd.DataFrame
        Columns id, therm, weight, delta where delta = home - night. delta is
        missing when either reading is missing.
    """
    try:
        wide = temps_long.pivot(index='id', columns='type', values='temp')
    except ValueError as e:
        raise EstimationError(f"Households with repeated temperature types: {e}") from e

    absent = [t for t in TEMPERATURE_TYPES if t not in wide.columns]
    if absent:
        raise EstimationError(f"Temperature types {absent} not found in long table")

    households = (temps_long[['id', 'therm', 'weight']]
                  .drop_duplicates('id')
                  .set_index('id'))
    deltas = households.assign(delta=wide['home'] - wide['night'])
    return deltas.reset_index()


def _join_replicates(frame: pd.DataFrame, weights_long: pd.DataFrame,
                     n_replicates: int = N_REPLICATES) -> pd.DataFrame:
    # Each row of `frame` becomes n_replicates rows, one per replicate weight
    check_replicate_coverage(frame['id'], weights_long, n_replicates, exact=False)
    joined = frame.drop(columns='weight').merge(weights_long, on='id', how='left')
    expected = len(frame) * n_replicates
    if len(joined) != expected:
        raise EstimationError(f"Replicate join produced {len(joined)} rows, expected {expected}")
    return joined


def average_temperatures(temps_long: pd.DataFrame) -> pd.DataFrame:
    """Point estimates of average temperature by thermostat behavior and type."""
    return weighted_mean(temps_long, 'temp', 'weight', ['therm', 'type'], name='avg_temp')


def replicate_temperatures(temps_long: pd.DataFrame, weights_long: pd.DataFrame,
                           n_replicates: int = N_REPLICATES) -> pd.DataFrame:
    """Replicate estimates of average temperature by thermostat behavior, type and replicate."""
    joined = _join_replicates(temps_long, weights_long, n_replicates)
    return weighted_mean(joined, 'temp', 'weight', ['therm', 'type', 'replicate'],
                         name='avg_temp_repl')


def average_differences(deltas: pd.DataFrame) -> pd.DataFrame:
    """Point estimates of the average day-minus-night difference by thermostat behavior."""
    return weighted_mean(deltas, 'delta', 'weight', ['therm'], name='avg_delta')


def replicate_differences(deltas: pd.DataFrame, weights_long: pd.DataFrame,
                          n_replicates: int = N_REPLICATES) -> pd.DataFrame:
    """Replicate estimates of the average day-minus-night difference."""
    joined = _join_replicates(deltas, weights_long, n_replicates)
    return weighted_mean(joined, 'delta', 'weight', ['therm', 'replicate'],
                         name='avg_delta_repl')


def average_temperatures_wide(core: pd.DataFrame) -> pd.DataFrame:
    """
    Point estimates with one column per temperature type.

    Computes the same averages as average_temperatures without pivoting,
    one weighted mean per temperature column.
    """
    home = weighted_mean(core, 'temp_home', 'weight', ['therm'], name='avg_temp_home')
    night = weighted_mean(core, 'temp_night', 'weight', ['therm'], name='avg_temp_night')
    return home.merge(night, on='therm', how='outer')


def brr_standard_error(point: pd.DataFrame, replicates: pd.DataFrame,
                       by: List[str], estimate: str,
                       n_replicates: int = N_REPLICATES,
                       scale: float = BRR_SCALE_FACTOR) -> pd.DataFrame:
    """
    BRR standard error of a point estimate from its replicate estimates.

    se = scale * sqrt(mean over replicates of (replicate - point)^2)

    Parameters:
    -----------
    point : pd.DataFrame
        `by` columns and the point estimate column `estimate`
    replicates : pd.DataFrame
        `by` columns, 'replicate' and the column '<estimate>_repl'
    by : list of str
        Grouping columns shared by both tables
    estimate : str
        Name of the point estimate column
    n_replicates : int
        Number of replicate estimates required per group
    scale : float
        Scaling factor, 2 for Fay's BRR with coefficient 0.5

    Returns:
    --------
    pd.DataFrame
        `point` with an added 'se' column
    """
    repl_col = f"{estimate}_repl"
    merged = replicates.merge(point, on=by, how='outer', indicator=True)

    unmatched = merged['_merge'] != 'both'
    if unmatched.any():
        groups = merged.loc[unmatched, by].drop_duplicates().values.tolist()
        raise EstimationError(f"Groups without both point and replicate estimates: {groups[:5]}")

    counts = merged.groupby(by, observed=True)['replicate'].nunique()
    rows = merged.groupby(by, observed=True).size()
    incomplete = (counts != n_replicates) | (rows != n_replicates)
    if incomplete.any():
        raise EstimationError(
            f"Groups without exactly {n_replicates} replicate estimates: "
            f"{counts.index[incomplete.to_numpy()].tolist()[:5]}"
        )

    merged['_sq_dev'] = (merged[repl_col] - merged[estimate]) ** 2
    mse = merged.groupby(by, observed=True, sort=True)['_sq_dev'].mean()
    se = (scale * np.sqrt(mse)).rename('se').reset_index()

    return point.merge(se, on=by, how='left')


def confidence_bounds(estimate, se, level: float = CONFIDENCE_LEVEL) -> Tuple:
    """
    Normal-approximation confidence interval.

    Parameters:
    -----------
    estimate : float or array-like
        Point estimate(s)
    se : float or array-like
        Standard error(s)
    level : float
        Confidence level (default 0.95)

    Returns:
    --------
    tuple
        (lower, upper)
    """
    z = stats.norm.ppf(1 - (1 - level) / 2)
    return estimate - z * se, estimate + z * se


def add_confidence_bounds(table: pd.DataFrame, estimate: str,
                          level: float = CONFIDENCE_LEVEL) -> pd.DataFrame:
    lwr, upr = confidence_bounds(table[estimate], table['se'], level)
    return table.assign(lwr=lwr, upr=upr)


def estimate_winter_temperatures(recs: pd.DataFrame,
                                 n_replicates: int = N_REPLICATES,
                                 confidence_level: float = CONFIDENCE_LEVEL,
                                 unmapped: str = 'raise') -> Dict[str, pd.DataFrame]:
    """
    National estimates of winter temperatures by thermostat behavior.

    Restricted to households that use space heating.

    Parameters:
    -----------
    recs : pd.DataFrame
        Raw RECS table with the core variables and replicate weights
    n_replicates : int
        Number of BRR replicate weights
    confidence_level : float
        Confidence level of the intervals
    unmapped : str
        Policy for codes outside the documented domain ('raise' or 'unknown')

    Returns:
    --------
    dict
        'avg_temp_by_type_therm': therm, type, avg_temp, se, lwr, upr
        'avg_delta_by_therm': therm, avg_delta, se, lwr, upr
        'avg_temps_by_therm': therm, avg_temp_home, avg_temp_night (point estimates)
    """
    core = extract_core(recs, unmapped=unmapped)
    weights_long = pivot_replicate_weights(recs, n_replicates)
    check_replicate_coverage(core['id'], weights_long, n_replicates, exact=True)

    heated = filter_heating_homes(core)
    temps_long = pivot_temperatures(heated)
    deltas = household_differences(temps_long)

    logger.info("Computing point and replicate estimates of average temperature")
    temps = brr_standard_error(
        average_temperatures(temps_long),
        replicate_temperatures(temps_long, weights_long, n_replicates),
        by=['therm', 'type'], estimate='avg_temp', n_replicates=n_replicates
    )

    logger.info("Computing point and replicate estimates of day-night difference")
    diffs = brr_standard_error(
        average_differences(deltas),
        replicate_differences(deltas, weights_long, n_replicates),
        by=['therm'], estimate='avg_delta', n_replicates=n_replicates
    )

    return {
        'avg_temp_by_type_therm': add_confidence_bounds(temps, 'avg_temp', confidence_level),
        'avg_delta_by_therm': add_confidence_bounds(diffs, 'avg_delta', confidence_level),
        'avg_temps_by_therm': average_temperatures_wide(heated)
    }
