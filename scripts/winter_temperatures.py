#!/usr/bin/env python
"""
Winter temperatures by thermostat behavior (RECS 2015).

Estimates the national average temperature during the day when someone is home
and at night, and the average difference between them, grouped by thermostat
behavior among homes that use space heating. Standard errors use the 96 BRR
replicate weights.

Run from the project root:
    python -m scripts.winter_temperatures
"""

import sys
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt

from recs_thermostat.config import FIGURES_DIR, TABLES_DIR, CONFIDENCE_LEVEL
from recs_thermostat.utils import (
    load_recs_data,
    extract_core,
    missing_value_summary,
    RECSDataError
)
from recs_thermostat.survey_estimates import estimate_winter_temperatures, EstimationError
from recs_thermostat.plotting import plot_temperatures_by_therm, plot_difference_by_therm

from scripts import setup_analysis


def print_estimates(table, estimate, keys):
    """Print a table of estimates with their confidence intervals."""
    print(f"\n{'Group':<45} {'Estimate':>9} {'SE':>7} {int(CONFIDENCE_LEVEL * 100)}% CI")
    print("-" * 80)
    for _, row in table.iterrows():
        group = ' / '.join(str(row[k]) for k in keys)
        print(f"{group:<45} {row[estimate]:>9.2f} {row['se']:>7.3f} "
              f"({row['lwr']:.2f}, {row['upr']:.2f})")


def main():
    """Run the winter temperature analysis."""
    analysis = setup_analysis('winter_temperatures',
                              'Winter temperatures by thermostat behavior')
    logger = analysis['logger']

    try:
        recs = load_recs_data()

        # Temperatures are only asked of homes that use space heating
        summary = missing_value_summary(extract_core(recs))
        logger.info(f"Missing values among homes without space heating:\n{summary.to_string()}")

        results = estimate_winter_temperatures(recs)
    except (RECSDataError, EstimationError) as e:
        logger.error(f"Analysis failed: {e}")
        return 1

    temps = results['avg_temp_by_type_therm']
    diffs = results['avg_delta_by_therm']

    temps.to_csv(TABLES_DIR / 'avg_temp_by_type_therm.csv', index=False)
    diffs.to_csv(TABLES_DIR / 'avg_delta_by_therm.csv', index=False)
    results['avg_temps_by_therm'].to_csv(TABLES_DIR / 'avg_temps_by_therm.csv', index=False)
    print(f"\n✓ Tables saved to {TABLES_DIR}")

    print_estimates(temps, 'avg_temp', ['therm', 'type'])
    print_estimates(diffs, 'avg_delta', ['therm'])

    fig = plot_temperatures_by_therm(temps, FIGURES_DIR / 'avg_temp_by_type_therm.png')
    plt.close(fig)
    fig = plot_difference_by_therm(diffs, FIGURES_DIR / 'avg_delta_by_therm.png')
    plt.close(fig)
    print(f"✓ Figures saved to {FIGURES_DIR}")

    print("\n" + "=" * 60)
    print("ANALYSIS COMPLETE")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
