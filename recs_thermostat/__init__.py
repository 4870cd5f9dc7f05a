# recs_thermostat/__init__.py
"""
RECS Thermostat Analysis Package

Survey-weighted estimates of winter indoor temperatures by thermostat behavior
from the 2015 Residential Energy Consumption Survey.
"""

from .utils import (
    load_recs_data,
    validate_recs_columns,
    extract_core,
    filter_heating_homes,
    missing_value_summary,
    pivot_temperatures,
    pivot_replicate_weights,
    check_replicate_coverage,
    RECSDataError,
    UnmappedCodeError,
    ReplicateWeightError
)

from .survey_estimates import (
    weighted_mean,
    household_differences,
    average_temperatures,
    replicate_temperatures,
    average_differences,
    replicate_differences,
    average_temperatures_wide,
    brr_standard_error,
    confidence_bounds,
    add_confidence_bounds,
    estimate_winter_temperatures,
    EstimationError
)

from .config import (
    PROJECT_ROOT,
    DATA_PATH,
    RESULTS_DIR,
    FIGURES_DIR,
    TABLES_DIR,
    RECS_URL,
    RECS_FILENAME,
    THERMOSTAT_LABELS,
    HEATING_LABELS,
    N_REPLICATES,
    BRR_SCALE_FACTOR,
    CONFIDENCE_LEVEL,
    PLOT_SETTINGS,
    COLORS
)

__version__ = '1.0.0'
__author__ = 'RECS Analysis Team'
