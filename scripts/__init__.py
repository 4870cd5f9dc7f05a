"""
Analysis scripts for the RECS thermostat study.

Each script produces one set of tables and figures from the survey estimates.
"""

import logging
import logging.config
from datetime import datetime

from recs_thermostat.config import LOGGING_CONFIG, ensure_output_dirs


def setup_analysis(name: str, description: str = None):
    """
    Common setup for analysis scripts.

    Parameters:
    -----------
    name : str
        Short name of the analysis
    description : str, optional
        Description of the analysis

    Returns:
    --------
    dict
        Configuration for the analysis
    """
    logging.config.dictConfig(LOGGING_CONFIG)
    logger = logging.getLogger(name)
    ensure_output_dirs()

    # Print header
    print("=" * 60)
    print(f"{name}: {description or 'Analysis'}")
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 60)

    return {
        'name': name,
        'description': description,
        'logger': logger,
        'start_time': datetime.now()
    }


__all__ = [
    'setup_analysis'
]
