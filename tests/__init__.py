"""
Test suite for RECS thermostat analysis.

Unit tests for data preparation, survey estimators and plotting.
"""

import unittest
import numpy as np
import pandas as pd

from recs_thermostat.config import N_REPLICATES, replicate_weight_columns

# Thermostat codes cycled through by the synthetic survey
TEST_THERM_CODES = [1, 2, 3, 4, 5, 9]


def make_recs(rows, n_replicates=N_REPLICATES, replicate_factors=None):
    """
    Build a raw RECS-shaped table from a few hand-written households.

    Parameters:
    -----------
    rows : list of tuple
        (DOEID, NWEIGHT, EQUIPMUSE, HEATHOME, TEMPHOME, TEMPNITE)
    n_replicates : int
        Number of replicate weight columns
    replicate_factors : array-like, optional
        Multipliers of NWEIGHT, one per replicate. Default all ones, which makes
        every replicate estimate equal to the point estimate.

    Returns:
    --------
    pd.DataFrame
        Raw table with the core columns and BRRWT1..BRRWTn
    """
    recs = pd.DataFrame(rows, columns=['DOEID', 'NWEIGHT', 'EQUIPMUSE',
                                       'HEATHOME', 'TEMPHOME', 'TEMPNITE'])
    if replicate_factors is None:
        replicate_factors = np.ones(n_replicates)
    for col, factor in zip(replicate_weight_columns(n_replicates), replicate_factors):
        recs[col] = recs['NWEIGHT'] * factor
    return recs


def create_test_recs(n_households=120, seed=42, n_replicates=N_REPLICATES):
    """
    Create a synthetic survey with similar structure to the RECS public file.

    Every tenth household doesn't use space heating and carries the survey's
    -2 "not applicable" codes. Replicate weights follow Fay's method: each
    is the primary weight times 0.5 or 1.5.

    Parameters:
    -----------
    n_households : int
        Number of households
    seed : int
        Random seed for reproducibility

    Returns:
    --------
    pd.DataFrame
        Raw RECS-shaped table
    """
    rng = np.random.RandomState(seed)

    ids = np.arange(10001, 10001 + n_households)
    weights = rng.uniform(1000, 20000, n_households).round(2)
    therm = np.array([TEST_THERM_CODES[i % len(TEST_THERM_CODES)] for i in range(n_households)])
    heat = np.where(np.arange(n_households) % 10 == 9, 0, 1)
    temp_home = rng.normal(70, 3, n_households).round()
    temp_night = (temp_home - rng.uniform(0, 8, n_households)).round()

    therm = np.where(heat == 1, therm, -2)
    temp_home = np.where(heat == 1, temp_home, -2)
    temp_night = np.where(heat == 1, temp_night, -2)

    recs = pd.DataFrame({
        'DOEID': ids,
        'NWEIGHT': weights,
        'EQUIPMUSE': therm,
        'HEATHOME': heat,
        'TEMPHOME': temp_home,
        'TEMPNITE': temp_night
    })

    factors = rng.choice([0.5, 1.5], size=(n_households, n_replicates))
    replicates = pd.DataFrame(factors * weights[:, None],
                              columns=replicate_weight_columns(n_replicates))
    return pd.concat([recs, replicates], axis=1)


# Base test class with common setup
class RECSTestCase(unittest.TestCase):
    """Base class for RECS analysis tests."""

    @classmethod
    def setUpClass(cls):
        """Set up test fixtures."""
        cls.test_recs = create_test_recs()

    def assertAlmostEqualRelative(self, first, second, rel_tol=1e-9, abs_tol=1e-9):
        """
        Assert two values are almost equal (relative tolerance).

        Parameters:
        -----------
        first, second : float
            Values to compare
        rel_tol : float
            Relative tolerance
        abs_tol : float
            Absolute tolerance
        """
        if abs(first - second) <= max(rel_tol * max(abs(first), abs(second)), abs_tol):
            return
        raise AssertionError(f"{first} != {second} within tolerance")


__all__ = [
    'make_recs',
    'create_test_recs',
    'RECSTestCase',
    'TEST_THERM_CODES'
]
