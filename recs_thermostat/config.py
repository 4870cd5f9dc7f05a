import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
load_dotenv()

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent

# Data path - can be set via environment variable or defaults to local data folder
DATA_PATH = Path(os.getenv('RECS_DATA_PATH', PROJECT_ROOT / 'data'))

# Results paths (keep in project directory)
RESULTS_DIR = PROJECT_ROOT / "results"
FIGURES_DIR = RESULTS_DIR / "figures"
TABLES_DIR = RESULTS_DIR / "tables"

# 2015 RECS public microdata
RECS_URL = ('https://www.eia.gov/consumption/residential/data/2015/csv/'
            'recs2015_public_v4.csv')
RECS_FILENAME = 'recs2015_public_v4.csv'

# Raw survey variables and their analysis names
CORE_COLUMNS = {
    'DOEID': 'id',
    'NWEIGHT': 'weight',
    'EQUIPMUSE': 'therm',
    'HEATHOME': 'heat_home',
    'TEMPHOME': 'temp_home',
    'TEMPNITE': 'temp_night'
}

# EQUIPMUSE: main heating equipment / thermostat behavior
THERMOSTAT_LABELS = {
    1: 'Set one temp',
    2: 'Manually adjust',
    3: 'Program thermostat',
    4: 'Turn equipment on/off',
    5: 'No control',
    9: 'Other'
}

# HEATHOME: space heating equipment used
HEATING_LABELS = {
    0: 'No',
    1: 'Yes'
}

UNKNOWN_LABEL = 'Unknown'

# Temperature types produced by the long pivot
TEMPERATURE_TYPES = ('home', 'night')
TEMPERATURE_TYPE_LABELS = {
    'home': 'when someone is home during the day',
    'night': 'at night'
}

# Balanced repeated replication
REPLICATE_PREFIX = 'BRRWT'
N_REPLICATES = 96
BRR_SCALE_FACTOR = 2.0    # 1 / (1 - Fay coefficient), Fay coefficient = 0.5

# Statistical settings
CONFIDENCE_LEVEL = 0.95

# Plot settings
PLOT_SETTINGS = {
    'figure_size': (10, 6),
    'dpi': 300,
    'font_size': 12,
    'label_size': 12,
    'legend_size': 10,
    'marker_size': 6,
    'capsize': 4,
    'dodge': 0.1,
    'grid_alpha': 0.3
}

# Color scheme for plots
COLORS = {
    'home': 'darkred',
    'night': 'orange',
    'difference': 'black',
    'reference': 'darkgrey'
}

# Logging configuration
LOGGING_CONFIG = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'standard': {
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        },
    },
    'handlers': {
        'default': {
            'level': 'INFO',
            'formatter': 'standard',
            'class': 'logging.StreamHandler',
        },
        'file': {
            'level': 'DEBUG',
            'formatter': 'standard',
            'class': 'logging.FileHandler',
            'filename': str(PROJECT_ROOT / 'recs_thermostat.log')
        }
    },
    'loggers': {
        '': {
            'handlers': ['default', 'file'],
            'level': 'DEBUG',
            'propagate': True
        }
    }
}


def replicate_weight_columns(n_replicates=N_REPLICATES):
    """Names of the replicate weight columns, e.g. BRRWT1 ... BRRWT96."""
    return [f"{REPLICATE_PREFIX}{i}" for i in range(1, n_replicates + 1)]


def get_data_path():
    """
    Get the configured data path.

    Returns:
    --------
    Path
        The configured data path
    """
    return DATA_PATH


def set_data_path(new_path):
    """
    Set a new data path programmatically.

    Parameters:
    -----------
    new_path : str or Path
        New path to data directory
    """
    global DATA_PATH
    DATA_PATH = Path(new_path)

    if not DATA_PATH.exists():
        import warnings
        warnings.warn(f"Data path {DATA_PATH} does not exist. It will be created on first download.")

    return DATA_PATH


def ensure_output_dirs():
    """Create results directories if they don't exist."""
    for dir_path in [RESULTS_DIR, FIGURES_DIR, TABLES_DIR]:
        dir_path.mkdir(parents=True, exist_ok=True)


def print_config():
    """
    Print current configuration settings.
    """
    print("RECS Thermostat Analysis Configuration")
    print("=" * 40)
    print(f"Project Root: {PROJECT_ROOT}")
    print(f"Data Path: {DATA_PATH}")
    print(f"  - RECS file: {DATA_PATH / RECS_FILENAME}")
    print(f"Results Directory: {RESULTS_DIR}")
    print(f"  - Figures: {FIGURES_DIR}")
    print(f"  - Tables: {TABLES_DIR}")
    print(f"\nData Path Exists: {DATA_PATH.exists()}")
    print(f"Cached RECS File Exists: {(DATA_PATH / RECS_FILENAME).exists()}")
    print("=" * 40)
