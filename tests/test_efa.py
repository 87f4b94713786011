"""
Tests for exploratory factor analysis.

The simulated Big Five data has five clean factors, so the number-of-factor
criteria and the loading pattern are checked against that structure.
"""

import pytest
import numpy as np
import pandas as pd

from psych_core import config, data, efa
from psych_core.errors import DataValidationError, ZeroVarianceError


@pytest.fixture(scope="module")
def scaled(bfi_items):
    array, scaled_df, index, scaler = data.standardize_features(bfi_items, config.BFI_ITEMS)
    return array, index


@pytest.fixture(scope="module")
def five_factor(scaled):
    array, _ = scaled
    return efa.run_efa(array, config.BFI_ITEMS, 5)


class TestFactorability:

    def test_passes_on_structured_data(self, scaled):
        array, _ = scaled
        result = efa.check_factorability(array, config.BFI_ITEMS)
        assert result['bartlett_pass']
        assert result['kmo_overall'] > 0.6
        assert set(result['kmo_per_variable']) == set(config.BFI_ITEMS)

    def test_summary_table(self, scaled):
        array, _ = scaled
        summary = efa.get_factorability_summary(efa.check_factorability(array, config.BFI_ITEMS))
        assert len(summary) == 3 + len(config.BFI_ITEMS)
        assert summary.loc[1, 'Interpretation'] == 'PASS'


class TestNumberOfFactors:

    def test_kaiser(self, scaled):
        array, _ = scaled
        eigenvalues, n_factors = efa.determine_num_factors(array, config.BFI_ITEMS)
        assert len(eigenvalues) == len(config.BFI_ITEMS)
        assert n_factors == 5

    def test_parallel_analysis(self, scaled):
        array, _ = scaled
        result = efa.parallel_analysis(array, n_iter=10)
        assert result['n_factors'] == 5
        assert len(result['observed']) == len(result['simulated']) == len(config.BFI_ITEMS)
        assert np.all(np.diff(result['observed']) <= 1e-10)

    def test_parallel_analysis_on_noise(self):
        noise = np.random.default_rng(11).standard_normal((300, 8))
        result = efa.parallel_analysis(noise, n_iter=10)
        assert result['n_factors'] == 1


class TestRunEfa:

    def test_result_shapes(self, five_factor):
        loadings = five_factor['loadings']
        assert loadings.shape == (25, 5)
        assert list(loadings.columns) == [f'Factor_{i}' for i in range(1, 6)]
        assert five_factor['communalities'].shape == (25, 1)
        assert five_factor['factor_correlations'].shape == (5, 5)
        assert list(five_factor['variance'].index) == ['Variance', 'Proportional_Var', 'Cumulative_Var']

    def test_scales_load_on_separate_factors(self, five_factor):
        loadings = five_factor['loadings']
        primary = loadings.abs().idxmax(axis=1)
        scale_factors = []
        for keyed in config.BFI_KEYS.values():
            items = [k.lstrip('-') for k in keyed]
            factors = set(primary[items])
            assert len(factors) == 1
            scale_factors.append(factors.pop())
        assert len(set(scale_factors)) == 5

    def test_reverse_keyed_items_load_opposite(self, five_factor):
        loadings = five_factor['loadings']
        factor = loadings.loc['A2'].abs().idxmax()
        assert np.sign(loadings.loc['A1', factor]) != np.sign(loadings.loc['A2', factor])

    def test_orthogonal_rotation_has_identity_phi(self, scaled):
        array, _ = scaled
        result = efa.run_efa(array, config.BFI_ITEMS, 5, rotation='varimax')
        assert np.allclose(result['factor_correlations'].values, np.eye(5))

    def test_single_factor(self, scaled):
        array, _ = scaled
        result = efa.run_efa(array, config.BFI_ITEMS, 1)
        assert result['rotation'] is None
        assert result['loadings'].shape == (25, 1)

    @pytest.mark.parametrize("n_factors", [0, 26])
    def test_invalid_factor_count(self, scaled, n_factors):
        array, _ = scaled
        with pytest.raises(DataValidationError):
            efa.run_efa(array, config.BFI_ITEMS, n_factors)


class TestZeroVarianceItems:

    def test_constant_item_raises_then_recovers(self, bfi_items):
        items = bfi_items.copy()
        items['X1'] = 3
        var_names = list(items.columns)

        with pytest.raises(ZeroVarianceError) as excinfo:
            efa.run_efa(items.values, var_names, 5)
        assert excinfo.value.items == ['X1']

        with pytest.warns(UserWarning):
            cleaned, dropped = data.drop_zero_variance_items(items)
        assert dropped == ['X1']
        result = efa.run_efa(cleaned.values, list(cleaned.columns), 5)
        assert result['loadings'].shape == (25, 5)

    def test_factorability_guard(self):
        df = pd.DataFrame({'a': [1.0, 2.0, 3.0, 4.0], 'b': [2.0, 2.0, 2.0, 2.0], 'c': [4.0, 1.0, 3.0, 2.0]})
        with pytest.raises(ZeroVarianceError):
            efa.check_factorability(df.values, list(df.columns))


class TestScoresAndInterpretation:

    def test_factor_scores(self, five_factor, scaled):
        array, index = scaled
        scores = efa.calculate_factor_scores(five_factor['factor_analyzer'], array, index)
        assert scores.shape == (len(index), 5)
        assert scores.index.equals(index)

    def test_interpret_factors(self):
        loadings = pd.DataFrame(
            {'Factor_1': [0.8, -0.6, 0.1], 'Factor_2': [0.05, 0.2, 0.7]},
            index=['a', 'b', 'c'],
        )
        result = efa.interpret_factors(loadings, threshold=0.3)
        assert result['Factor_1'] == [('a', 0.8), ('b', -0.6)]
        assert result['Factor_2'] == [('c', 0.7)]

    def test_sort_loadings(self):
        loadings = pd.DataFrame(
            {'Factor_1': [0.1, 0.5, 0.9, 0.0], 'Factor_2': [0.7, 0.1, 0.2, -0.8]},
            index=['a', 'b', 'c', 'd'],
        )
        assert list(efa.sort_loadings(loadings).index) == ['c', 'b', 'd', 'a']
