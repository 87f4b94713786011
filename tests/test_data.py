"""
Tests for data loading and preprocessing.

Covers validation, zero-variance detection, reverse keying,
standardization and the simulated datasets.
"""

import pytest
import numpy as np
import pandas as pd

from psych_core import config, data
from psych_core.errors import DataValidationError


class TestLoading:

    def test_load_csv(self, tmp_path):
        path = tmp_path / "items.csv"
        pd.DataFrame({'A1': [1, 2, 3], 'A2': [4, 5, 6]}).to_csv(path, index=False)
        df = data.load_csv(str(path))
        assert list(df.columns) == ['A1', 'A2']
        assert len(df) == 3

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            data.load_csv(str(tmp_path / "nope.csv"))

    def test_require_columns(self):
        df = pd.DataFrame({'A1': [1]})
        data.require_columns(df, ['A1'])
        with pytest.raises(DataValidationError, match="A2"):
            data.require_columns(df, ['A1', 'A2'])


class TestSelectItems:

    def test_default_items(self, bfi):
        items = data.select_items(bfi)
        assert list(items.columns) == config.BFI_ITEMS

    def test_by_prefix(self, bfi):
        items = data.select_items(bfi, prefixes=['A', 'N'])
        assert list(items.columns) == ['A1', 'A2', 'A3', 'A4', 'A5', 'N1', 'N2', 'N3', 'N4', 'N5']

    def test_no_prefix_match(self, bfi):
        with pytest.raises(DataValidationError):
            data.select_items(bfi, prefixes=['Z'])

    def test_non_numeric_item(self):
        df = pd.DataFrame({'A1': [1, 2], 'A2': ['x', 'y']})
        with pytest.raises(DataValidationError, match="numeric"):
            data.select_items(df, ['A1', 'A2'])


class TestZeroVariance:

    def test_find(self):
        df = pd.DataFrame({
            'ok': [1, 2, 3],
            'constant': [4, 4, 4],
            'constant_with_nan': [2, np.nan, 2],
            'empty': [np.nan, np.nan, np.nan],
        })
        assert data.find_zero_variance_items(df) == ['constant', 'constant_with_nan', 'empty']

    def test_drop_warns(self):
        df = pd.DataFrame({'ok': [1, 2, 3], 'constant': [4, 4, 4]})
        with pytest.warns(UserWarning, match="constant"):
            cleaned, dropped = data.drop_zero_variance_items(df)
        assert dropped == ['constant']
        assert list(cleaned.columns) == ['ok']

    def test_drop_nothing(self):
        df = pd.DataFrame({'ok': [1, 2, 3]})
        cleaned, dropped = data.drop_zero_variance_items(df)
        assert dropped == []
        assert cleaned.equals(df)


class TestReverseItems:

    def test_reflects_scale(self):
        df = pd.DataFrame({'A1': [1, 3, 6, np.nan], 'A2': [1, 1, 1, 1]})
        out = data.reverse_items(df, ['A1'])
        assert out['A1'].tolist()[:3] == [6, 4, 1]
        assert np.isnan(out['A1'].iloc[3])
        assert out['A2'].tolist() == [1, 1, 1, 1]
        # Original untouched
        assert df['A1'].iloc[0] == 1

    def test_custom_range(self):
        df = pd.DataFrame({'x': [0, 4]})
        out = data.reverse_items(df, ['x'], min_value=0, max_value=4)
        assert out['x'].tolist() == [4, 0]


class TestStandardize:

    def test_complete_rows_only(self):
        df = pd.DataFrame({'a': [1.0, 2.0, np.nan, 4.0, 5.0], 'b': [2.0, 1.0, 3.0, 5.0, 4.0]})
        array, scaled, index, scaler = data.standardize_features(df, ['a', 'b'])
        assert list(index) == [0, 1, 3, 4]
        assert array.shape == (4, 2)
        assert np.allclose(scaled.mean(), 0)
        assert np.allclose(array.std(axis=0), 1)

    def test_too_few_rows(self):
        df = pd.DataFrame({'a': [1.0, np.nan], 'b': [1.0, 2.0]})
        with pytest.raises(DataValidationError):
            data.standardize_features(df, ['a', 'b'])


class TestSimulation:

    def test_bfi_shape_and_range(self, bfi):
        assert len(bfi) == 800
        assert set(config.BFI_ITEMS + config.BFI_DEMOGRAPHICS) <= set(bfi.columns)
        items = bfi[config.BFI_ITEMS]
        assert items.min().min() >= config.ITEM_MIN
        assert items.max().max() <= config.ITEM_MAX
        assert set(bfi['gender'].unique()) == {1, 2}

    def test_bfi_reproducible(self):
        a = data.simulate_bfi(n=50, seed=5)
        b = data.simulate_bfi(n=50, seed=5)
        pd.testing.assert_frame_equal(a, b)

    def test_reverse_keyed_items_correlate_negatively(self, bfi):
        assert bfi['A1'].corr(bfi['A2']) < 0
        assert bfi['A2'].corr(bfi['A3']) > 0

    def test_repeated_measures_layout(self, rm_wide):
        assert len(rm_wide) == 30
        assert set(rm_wide['treatment']) == {'control', 'A', 'B'}
        measure_cols = [c for c in rm_wide.columns if c not in ('id', 'treatment', 'gender')]
        assert len(measure_cols) == 15
        assert 'pre_1' in measure_cols and 'fup_5' in measure_cols
        assert rm_wide['id'].is_unique
