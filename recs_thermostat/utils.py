"""
Utility functions for RECS thermostat analysis.
This module contains functions for data loading, variable extraction, case selection
and the long-format reshaping used by the survey estimators.
"""

import os
import logging
import pandas as pd
import numpy as np
from pathlib import Path
from typing import Dict, List, Optional, Union

from . import config
from .config import (
    RECS_URL,
    RECS_FILENAME,
    CORE_COLUMNS,
    THERMOSTAT_LABELS,
    HEATING_LABELS,
    UNKNOWN_LABEL,
    N_REPLICATES,
    REPLICATE_PREFIX,
    replicate_weight_columns
)

logger = logging.getLogger(__name__)

UNMAPPED_POLICIES = ('raise', 'unknown')


class RECSDataError(Exception):
    """Raised when there's an issue with RECS data loading or structure."""
    pass


class UnmappedCodeError(RECSDataError):
    """Raised when a coded survey variable holds a value outside its documented domain."""
    pass


class ReplicateWeightError(RECSDataError):
    """Raised when replicate weights are missing, invalid or don't match the households."""
    pass


def validate_recs_columns(recs: pd.DataFrame, columns: List[str]) -> None:
    """
    Check that the raw table has the columns needed for the analysis.

    Raises:
    -------
    RECSDataError
        If any column is absent
    """
    missing = [col for col in columns if col not in recs.columns]
    if missing:
        shown = ', '.join(missing[:10])
        more = f" ... and {len(missing) - 10} more" if len(missing) > 10 else ""
        raise RECSDataError(f"RECS data is missing required columns: {shown}{more}")


def load_recs_data(local_file: Optional[Union[str, Path]] = None,
                   url: str = RECS_URL,
                   n_replicates: int = N_REPLICATES) -> pd.DataFrame:
    """
    Load the RECS microdata, using a local copy if it exists.

    If the local file is absent the CSV is read from `url` and saved locally.
    The copy is written to a temporary file first and only renamed into place
    once complete.

    Parameters:
    -----------
    local_file : str or Path, optional
        Path of the cached CSV. If None, uses config.DATA_PATH / RECS_FILENAME
    url : str
        Remote location of the public use CSV
    n_replicates : int
        Number of BRR replicate weight columns expected

    Returns:
    --------
    pd.DataFrame
        Raw RECS table, one row per household

    Raises:
    -------
    RECSDataError
        If the data cannot be downloaded, read or cached, or lacks required columns
    """
    if local_file is None:
        local_file = config.get_data_path() / RECS_FILENAME
    local_file = Path(local_file)

    if local_file.exists():
        logger.info(f"Loading RECS data from: {local_file}")
        try:
            recs = pd.read_csv(local_file, low_memory=False)
        except (OSError, ValueError) as e:
            raise RECSDataError(f"Error reading RECS data from {local_file}: {e}") from e
    else:
        logger.info(f"Local copy not found, downloading RECS data from: {url}")
        try:
            recs = pd.read_csv(url, low_memory=False)
        except (OSError, ValueError) as e:
            raise RECSDataError(f"Error downloading RECS data from {url}: {e}") from e
        _write_cache(recs, local_file)

    logger.info(f"Loaded {len(recs)} RECS records with {len(recs.columns)} columns")
    validate_recs_columns(recs, list(CORE_COLUMNS) + replicate_weight_columns(n_replicates))
    return recs


def _write_cache(recs: pd.DataFrame, local_file: Path) -> None:
    partial = local_file.with_name(local_file.name + '.part')
    try:
        local_file.parent.mkdir(parents=True, exist_ok=True)
        recs.to_csv(partial, index=False)
        os.replace(partial, local_file)
    except OSError as e:
        if partial.exists():
            partial.unlink()
        raise RECSDataError(f"Error caching RECS data to {local_file}: {e}") from e
    logger.info(f"Saved local copy to: {local_file}")


def _recode(codes: pd.Series, labels: Dict[int, str], column: str,
            unmapped: str = 'raise', sentinel_missing: bool = True) -> pd.Categorical:
    """
    Map integer survey codes to labels.

    With `sentinel_missing`, negative codes are the survey's "not applicable"
    sentinel and become missing. Otherwise negative and blank codes are invalid
    like any other code outside `labels`, and either raise or go to UNKNOWN_LABEL.
    """
    try:
        codes = pd.to_numeric(codes)
    except (TypeError, ValueError) as e:
        raise UnmappedCodeError(f"{column} holds non-numeric codes: {e}") from e

    if sentinel_missing:
        codes = codes.where(codes >= 0)
        is_unmapped = codes.notna() & ~codes.isin(list(labels))
    else:
        is_unmapped = ~codes.isin(list(labels))
    categories = list(labels.values())
    values = codes.map(labels)

    if is_unmapped.any():
        bad_codes = sorted(codes[is_unmapped].dropna().unique().tolist())
        n_blank = int(codes[is_unmapped].isna().sum())
        blank = f" and {n_blank} blank" if n_blank else ""
        message = f"{column}: {int(is_unmapped.sum())} rows with unmapped codes {bad_codes}{blank}"
        if unmapped == 'raise':
            raise UnmappedCodeError(message)
        logger.warning(f"{message} recoded to '{UNKNOWN_LABEL}'")
        values = values.astype(object)
        values[is_unmapped] = UNKNOWN_LABEL
        categories.append(UNKNOWN_LABEL)

    return pd.Categorical(values, categories=categories, ordered=True)


def _clean_temperature(values: pd.Series, column: str) -> pd.Series:
    # Negative temperatures are missing-value sentinels; no upper bound check
    try:
        values = pd.to_numeric(values).astype(float)
    except (TypeError, ValueError) as e:
        raise RECSDataError(f"{column} holds non-numeric temperatures: {e}") from e
    return values.where(values >= 0)


def _clean_weight(values: pd.Series, column: str) -> pd.Series:
    try:
        values = pd.to_numeric(values).astype(float)
    except (TypeError, ValueError) as e:
        raise RECSDataError(f"{column} holds non-numeric weights: {e}") from e

    invalid = values.isna() | (values <= 0)
    if invalid.any():
        raise RECSDataError(f"{column}: {int(invalid.sum())} missing or non-positive weights")
    return values


def extract_core(recs: pd.DataFrame, unmapped: str = 'raise') -> pd.DataFrame:
    """
    Select and relabel the variables used in the thermostat analysis.

    Parameters:
    -----------
    recs : pd.DataFrame
        Raw RECS table
    unmapped : str
        'raise' to fail on codes outside the documented domain,
        'unknown' to place them in an explicit 'Unknown' category

    Returns:
    --------
    pd.DataFrame
        Columns id, weight, therm, heat_home, temp_home, temp_night
    """
    if unmapped not in UNMAPPED_POLICIES:
        raise ValueError(f"unmapped must be one of {UNMAPPED_POLICIES}, got {unmapped!r}")

    validate_recs_columns(recs, list(CORE_COLUMNS))
    raw = recs[list(CORE_COLUMNS)].reset_index(drop=True)

    core = pd.DataFrame({
        'id': raw['DOEID'],
        'weight': _clean_weight(raw['NWEIGHT'], 'NWEIGHT'),
        'therm': _recode(raw['EQUIPMUSE'], THERMOSTAT_LABELS, 'EQUIPMUSE', unmapped),
        'heat_home': _recode(raw['HEATHOME'], HEATING_LABELS, 'HEATHOME', unmapped,
                             sentinel_missing=False),
        'temp_home': _clean_temperature(raw['TEMPHOME'], 'TEMPHOME'),
        'temp_night': _clean_temperature(raw['TEMPNITE'], 'TEMPNITE')
    })

    duplicated = core['id'].duplicated()
    if duplicated.any():
        raise RECSDataError(
            f"{int(duplicated.sum())} duplicate household ids, e.g. "
            f"{core.loc[duplicated, 'id'].head().tolist()}"
        )

    logger.debug(f"Extracted {len(core)} households; "
                 f"{int(core['temp_home'].isna().sum())} missing home temps, "
                 f"{int(core['temp_night'].isna().sum())} missing night temps")
    return core


def filter_heating_homes(core: pd.DataFrame) -> pd.DataFrame:
    """
    Restrict to households that use space heating.

    Winter temperatures are only asked of these households. Weights are kept as-is.

    Raises:
    -------
    UnmappedCodeError
        If a household has no heating flag, or a retained household has no
        thermostat category
    """
    no_flag = core['heat_home'].isna()
    if no_flag.any():
        raise UnmappedCodeError(
            f"{int(no_flag.sum())} households have no heating flag, e.g. ids "
            f"{core.loc[no_flag, 'id'].head().tolist()}"
        )

    heated = core[core['heat_home'] == 'Yes'].reset_index(drop=True)

    no_therm = heated['therm'].isna()
    if no_therm.any():
        raise UnmappedCodeError(
            f"{int(no_therm.sum())} heating households have no thermostat category, e.g. ids "
            f"{heated.loc[no_therm, 'id'].head().tolist()}"
        )

    logger.info(f"Kept {len(heated)} of {len(core)} households that use space heating")
    return heated


def missing_value_summary(core: pd.DataFrame, heat_home: str = 'No') -> pd.Series:
    """
    Count missing values per column for households with the given heating flag.

    For non-heating homes this shows that the temperature questions were skipped.
    """
    subset = core[core['heat_home'] == heat_home]
    return subset.isna().sum()


def _as_therm_categorical(values: pd.Series, reference: pd.Series) -> pd.Series:
    if isinstance(reference.dtype, pd.CategoricalDtype):
        return pd.Series(
            pd.Categorical(values, categories=reference.cat.categories,
                           ordered=reference.cat.ordered),
            index=values.index
        )
    return values


def pivot_temperatures(core: pd.DataFrame) -> pd.DataFrame:
    """
    Pivot the two temperature columns to long format.

    Each household becomes two rows, type 'home' and type 'night'. Missing
    temperatures are kept so they can be excluded at aggregation time.

    Returns:
    --------
    pd.DataFrame
        Columns id, weight, therm, type, temp
    """
    temps_long = core.melt(
        id_vars=['id', 'weight', 'therm'],
        value_vars=['temp_home', 'temp_night'],
        var_name='type',
        value_name='temp'
    )
    temps_long['type'] = temps_long['type'].str.replace('temp_', '', regex=False)
    temps_long['therm'] = _as_therm_categorical(temps_long['therm'], core['therm'])

    return (temps_long
            .sort_values(['id', 'type'], kind='mergesort')
            .reset_index(drop=True))


def pivot_replicate_weights(recs: pd.DataFrame,
                            n_replicates: int = N_REPLICATES) -> pd.DataFrame:
    """
    Pivot the BRR replicate weight columns to long format.

    Returns:
    --------
    pd.DataFrame
        Columns id, replicate (1..n_replicates), weight

    Raises:
    -------
    ReplicateWeightError
        If any replicate weight is missing or negative
    """
    columns = replicate_weight_columns(n_replicates)
    validate_recs_columns(recs, ['DOEID'] + columns)

    weights_long = (recs[['DOEID'] + columns]
                    .rename(columns={'DOEID': 'id'})
                    .melt(id_vars='id', value_vars=columns,
                          var_name='replicate', value_name='weight'))
    weights_long['replicate'] = (weights_long['replicate']
                                 .str[len(REPLICATE_PREFIX):]
                                 .astype(int))
    weights_long['weight'] = pd.to_numeric(weights_long['weight']).astype(float)

    invalid = weights_long['weight'].isna() | (weights_long['weight'] < 0)
    if invalid.any():
        bad = weights_long[invalid]
        raise ReplicateWeightError(
            f"{len(bad)} missing or negative replicate weights for "
            f"{bad['id'].nunique()} households, e.g. ids {bad['id'].unique()[:5].tolist()}"
        )

    return (weights_long
            .sort_values(['id', 'replicate'], kind='mergesort')
            .reset_index(drop=True))


def check_replicate_coverage(ids: pd.Series, weights_long: pd.DataFrame,
                             n_replicates: int = N_REPLICATES,
                             exact: bool = True) -> None:
    """
    Check that every household has a complete set of replicate weights.

    Parameters:
    -----------
    ids : array-like
        Household ids that will be joined to the replicate weights
    weights_long : pd.DataFrame
        Output of pivot_replicate_weights
    n_replicates : int
        Number of replicates each household must have
    exact : bool
        If True, replicate weights for ids not in `ids` are also an error

    Raises:
    -------
    ReplicateWeightError
        On any mismatch between the households and the replicate weights
    """
    ids = pd.Index(pd.unique(np.asarray(ids)))
    grouped = weights_long.groupby('id')['replicate']
    distinct = grouped.nunique()
    rows = grouped.size()

    absent = ids.difference(distinct.index)
    if len(absent) > 0:
        raise ReplicateWeightError(
            f"{len(absent)} households have no replicate weights, e.g. ids {absent[:5].tolist()}"
        )

    incomplete = distinct[(distinct != n_replicates) | (rows != n_replicates)].index
    incomplete = incomplete.intersection(ids)
    if len(incomplete) > 0:
        raise ReplicateWeightError(
            f"{len(incomplete)} households do not have exactly {n_replicates} replicate "
            f"weights, e.g. ids {incomplete[:5].tolist()}"
        )

    if exact:
        extra = distinct.index.difference(ids)
        if len(extra) > 0:
            raise ReplicateWeightError(
                f"Replicate weights found for {len(extra)} unknown households, "
                f"e.g. ids {extra[:5].tolist()}"
            )

    logger.debug(f"Replicate weights complete for {len(ids)} households")
