"""Tests for loading, extraction, case selection and reshaping."""

import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch
from urllib.error import URLError

import numpy as np
import pandas as pd

from recs_thermostat import config
from recs_thermostat.utils import (
    load_recs_data,
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

from tests import RECSTestCase, make_recs, create_test_recs


class TestLoadRECSData(RECSTestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.local_file = Path(self.tmp.name) / 'recs.csv'

    def tearDown(self):
        self.tmp.cleanup()

    def test_reads_local_copy_without_network(self):
        self.test_recs.to_csv(self.local_file, index=False)

        with patch('recs_thermostat.utils.pd.read_csv', wraps=pd.read_csv) as read_csv:
            recs = load_recs_data(self.local_file, url='https://example.invalid/recs.csv')

        read_csv.assert_called_once()
        self.assertEqual(read_csv.call_args[0][0], self.local_file)
        self.assertEqual(len(recs), len(self.test_recs))

    def test_downloads_and_caches_when_missing(self):
        url = 'https://example.invalid/recs.csv'
        with patch('recs_thermostat.utils.pd.read_csv', return_value=self.test_recs) as read_csv:
            recs = load_recs_data(self.local_file, url=url)

        read_csv.assert_called_once()
        self.assertEqual(read_csv.call_args[0][0], url)
        self.assertTrue(self.local_file.exists())
        self.assertFalse(self.local_file.with_name('recs.csv.part').exists())

        cached = load_recs_data(self.local_file, url=url)
        pd.testing.assert_frame_equal(cached, recs, check_dtype=False)

    def test_download_failure_leaves_no_cache(self):
        with patch('recs_thermostat.utils.pd.read_csv', side_effect=URLError('offline')):
            with self.assertRaises(RECSDataError):
                load_recs_data(self.local_file, url='https://example.invalid/recs.csv')

        self.assertFalse(self.local_file.exists())
        self.assertFalse(self.local_file.with_name('recs.csv.part').exists())

    def test_missing_columns_raise(self):
        self.test_recs.drop(columns=['TEMPNITE', 'BRRWT96']).to_csv(self.local_file, index=False)

        with self.assertRaises(RECSDataError) as ctx:
            load_recs_data(self.local_file)
        self.assertIn('TEMPNITE', str(ctx.exception))
        self.assertIn('BRRWT96', str(ctx.exception))

    def test_default_location_follows_data_path(self):
        original = config.get_data_path()
        try:
            config.set_data_path(self.tmp.name)
            self.test_recs.to_csv(Path(self.tmp.name) / config.RECS_FILENAME, index=False)
            recs = load_recs_data(url='https://example.invalid/recs.csv')
            self.assertEqual(len(recs), len(self.test_recs))
        finally:
            config.set_data_path(original)


class TestExtractCore(unittest.TestCase):

    def test_columns_and_labels(self):
        recs = make_recs([
            (1, 10.0, 1, 1, 70, 65),
            (2, 20.0, 3, 1, 68, 62),
            (3, 30.0, 9, 0, -2, -2),
        ])
        core = extract_core(recs)

        self.assertEqual(list(core.columns),
                         ['id', 'weight', 'therm', 'heat_home', 'temp_home', 'temp_night'])
        self.assertEqual(core['therm'].tolist(), ['Set one temp', 'Program thermostat', 'Other'])
        self.assertEqual(core['heat_home'].tolist(), ['Yes', 'Yes', 'No'])
        self.assertEqual(list(core['therm'].cat.categories), list(config.THERMOSTAT_LABELS.values()))

    def test_negative_temperatures_become_missing(self):
        recs = make_recs([
            (1, 1.0, 1, 1, -5, 65),
            (2, 1.0, 1, 1, 0, 95),
            (3, 1.0, 1, 1, 72, -2),
        ])
        core = extract_core(recs)

        self.assertTrue(np.isnan(core.loc[0, 'temp_home']))
        self.assertEqual(core.loc[1, 'temp_home'], 0)
        self.assertEqual(core.loc[1, 'temp_night'], 95)
        self.assertTrue(np.isnan(core.loc[2, 'temp_night']))

    def test_not_applicable_code_is_missing(self):
        core = extract_core(make_recs([(1, 1.0, -2, 0, -2, -2)]))
        self.assertTrue(pd.isna(core.loc[0, 'therm']))

    def test_unmapped_thermostat_code_raises(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 1.0, 7, 1, 70, 65)])
        with self.assertRaises(UnmappedCodeError) as ctx:
            extract_core(recs)
        self.assertIn('EQUIPMUSE', str(ctx.exception))

    def test_unmapped_heating_code_raises(self):
        with self.assertRaises(UnmappedCodeError):
            extract_core(make_recs([(1, 1.0, 1, 2, 70, 65)]))

    def test_unknown_policy_keeps_unmapped_codes_visible(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 1.0, 7, 1, 70, 65)])
        core = extract_core(recs, unmapped='unknown')

        self.assertEqual(core.loc[1, 'therm'], config.UNKNOWN_LABEL)
        self.assertIn(config.UNKNOWN_LABEL, core['therm'].cat.categories)

    def test_invalid_policy(self):
        with self.assertRaises(ValueError):
            extract_core(make_recs([(1, 1.0, 1, 1, 70, 65)]), unmapped='drop')

    def test_duplicate_ids_raise(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (1, 2.0, 2, 1, 71, 66)])
        with self.assertRaises(RECSDataError):
            extract_core(recs)

    def test_negative_heating_code_raises(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 100.0, 1, -1, 90, 50)])
        with self.assertRaises(UnmappedCodeError) as ctx:
            extract_core(recs)
        self.assertIn('HEATHOME', str(ctx.exception))

    def test_blank_heating_code_raises(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 1.0, 1, 1, 72, 66)])
        recs['HEATHOME'] = recs['HEATHOME'].astype(float)
        recs.loc[1, 'HEATHOME'] = np.nan
        with self.assertRaises(UnmappedCodeError) as ctx:
            extract_core(recs)
        self.assertIn('1 blank', str(ctx.exception))

    def test_unknown_policy_keeps_negative_heating_code(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 100.0, 1, -1, 90, 50)])
        core = extract_core(recs, unmapped='unknown')

        self.assertEqual(core.loc[1, 'heat_home'], config.UNKNOWN_LABEL)
        self.assertEqual(len(filter_heating_homes(core)), 1)

    def test_non_positive_weights_raise(self):
        for bad_weight in (-0.5, 0.0, np.nan):
            with self.subTest(weight=bad_weight):
                recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, bad_weight, 1, 1, 72, 50)])
                with self.assertRaises(RECSDataError) as ctx:
                    extract_core(recs)
                self.assertIn('NWEIGHT', str(ctx.exception))

    def test_non_numeric_temperature_raises(self):
        recs = make_recs([(1, 1.0, 1, 1, 70, 65), (2, 1.0, 1, 1, 72, 66)])
        recs['TEMPHOME'] = recs['TEMPHOME'].astype(object)
        recs.loc[1, 'TEMPHOME'] = 'abc'
        with self.assertRaises(RECSDataError) as ctx:
            extract_core(recs)
        self.assertNotIsInstance(ctx.exception, UnmappedCodeError)
        self.assertIn('TEMPHOME', str(ctx.exception))


class TestFilterHeatingHomes(RECSTestCase):

    def test_keeps_heating_homes_only(self):
        core = extract_core(self.test_recs)
        heated = filter_heating_homes(core)

        self.assertTrue((heated['heat_home'] == 'Yes').all())
        self.assertEqual(len(heated), int((self.test_recs['HEATHOME'] == 1).sum()))

    def test_weights_not_renormalized(self):
        core = extract_core(self.test_recs)
        heated = filter_heating_homes(core)
        expected = self.test_recs.loc[self.test_recs['HEATHOME'] == 1, 'NWEIGHT'].sum()
        self.assertAlmostEqualRelative(heated['weight'].sum(), expected)

    def test_heating_home_without_category_raises(self):
        core = extract_core(make_recs([(1, 1.0, -2, 1, 70, 65)]))
        with self.assertRaises(UnmappedCodeError):
            filter_heating_homes(core)

    def test_household_without_heating_flag_raises(self):
        core = extract_core(make_recs([(1, 1.0, 1, 1, 70, 65), (2, 1.0, 1, 1, 72, 66)]))
        core['heat_home'] = core['heat_home'].astype(object)
        core.loc[1, 'heat_home'] = np.nan
        with self.assertRaises(UnmappedCodeError):
            filter_heating_homes(core)

    def test_missing_value_summary(self):
        core = extract_core(self.test_recs)
        summary = missing_value_summary(core)
        n_no_heat = int((self.test_recs['HEATHOME'] == 0).sum())

        self.assertEqual(summary['temp_home'], n_no_heat)
        self.assertEqual(summary['temp_night'], n_no_heat)
        self.assertEqual(summary['weight'], 0)


class TestPivotTemperatures(unittest.TestCase):

    def test_two_rows_per_household(self):
        core = extract_core(make_recs([
            (1, 2.0, 1, 1, 70, 65),
            (2, 3.0, 4, 1, -5, 60),
        ]))
        temps_long = pivot_temperatures(core)

        self.assertEqual(list(temps_long.columns), ['id', 'weight', 'therm', 'type', 'temp'])
        self.assertEqual(len(temps_long), 4)
        self.assertEqual(temps_long['type'].tolist(), ['home', 'night', 'home', 'night'])
        self.assertEqual(temps_long['temp'].tolist()[:2], [70, 65])
        self.assertEqual(temps_long['weight'].tolist(), [2.0, 2.0, 3.0, 3.0])

    def test_missing_temperature_is_kept(self):
        core = extract_core(make_recs([(2, 3.0, 4, 1, -5, 60)]))
        temps_long = pivot_temperatures(core)

        home = temps_long[temps_long['type'] == 'home']
        self.assertEqual(len(home), 1)
        self.assertTrue(home['temp'].isna().all())

    def test_category_preserved(self):
        core = extract_core(make_recs([(1, 1.0, 5, 1, 70, 65)]))
        temps_long = pivot_temperatures(core)
        self.assertIsInstance(temps_long['therm'].dtype, pd.CategoricalDtype)
        self.assertEqual(temps_long['therm'].iloc[0], 'No control')


class TestReplicateWeights(RECSTestCase):

    def test_long_format(self):
        weights_long = pivot_replicate_weights(self.test_recs)

        self.assertEqual(list(weights_long.columns), ['id', 'replicate', 'weight'])
        self.assertEqual(len(weights_long), len(self.test_recs) * config.N_REPLICATES)
        self.assertEqual(sorted(weights_long['replicate'].unique()),
                         list(range(1, config.N_REPLICATES + 1)))

        first = self.test_recs.iloc[0]
        row = weights_long[(weights_long['id'] == first['DOEID']) & (weights_long['replicate'] == 17)]
        self.assertEqual(row['weight'].iloc[0], first['BRRWT17'])

    def test_missing_or_negative_weight_raises(self):
        recs = self.test_recs.copy()
        recs.loc[3, 'BRRWT5'] = np.nan
        with self.assertRaises(ReplicateWeightError):
            pivot_replicate_weights(recs)

        recs = self.test_recs.copy()
        recs.loc[3, 'BRRWT5'] = -1.0
        with self.assertRaises(ReplicateWeightError):
            pivot_replicate_weights(recs)

    def test_coverage_complete(self):
        weights_long = pivot_replicate_weights(self.test_recs)
        check_replicate_coverage(self.test_recs['DOEID'], weights_long)

    def test_household_without_weights(self):
        weights_long = pivot_replicate_weights(self.test_recs)
        ids = pd.concat([self.test_recs['DOEID'], pd.Series([99999])])
        with self.assertRaises(ReplicateWeightError):
            check_replicate_coverage(ids, weights_long)

    def test_partial_replicates(self):
        weights_long = pivot_replicate_weights(self.test_recs)
        partial = weights_long.drop(index=weights_long.index[0])
        with self.assertRaises(ReplicateWeightError):
            check_replicate_coverage(self.test_recs['DOEID'], partial)

    def test_weights_for_unknown_households(self):
        weights_long = pivot_replicate_weights(self.test_recs)
        subset = self.test_recs['DOEID'].iloc[:10]

        with self.assertRaises(ReplicateWeightError):
            check_replicate_coverage(subset, weights_long, exact=True)
        check_replicate_coverage(subset, weights_long, exact=False)

    def test_smaller_replicate_set(self):
        recs = create_test_recs(n_households=12, n_replicates=4)
        weights_long = pivot_replicate_weights(recs, n_replicates=4)
        self.assertEqual(len(weights_long), 48)
        check_replicate_coverage(recs['DOEID'], weights_long, n_replicates=4)


if __name__ == '__main__':
    unittest.main()
