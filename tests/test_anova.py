"""
Tests for factorial ANOVA, marginal means and contrasts.

Uses the simulated repeated-measures design: treated groups improve after
the pre phase while the control group stays flat.
"""

import pytest
import numpy as np
import pandas as pd

from psych_core import anova, stats
from psych_core.errors import DesignError


class TestAovEz:

    def test_between_matches_one_way(self, groups_df):
        table = anova.aov_ez(groups_df, 'score', 'subject', between='group')
        one_way = stats.run_anova(groups_df, 'score', 'group')
        row = table.iloc[0]
        assert row['effect'] == 'group'
        assert row['F'] == pytest.approx(one_way['f_statistic'])
        assert row['p_value'] == pytest.approx(one_way['p_value'])
        assert row['df1'] == 2
        assert row['df2'] == 57
        assert table.attrs['design'] == 'between'

    def test_two_way_between(self, rm_long):
        table = anova.aov_ez(rm_long, 'value', 'id', between=['treatment', 'gender'])
        assert list(table['effect']) == ['treatment', 'gender', 'treatment:gender']
        assert (table['df2'] == table['df2'].iloc[0]).all()

    def test_within(self, rm_long):
        table = anova.aov_ez(rm_long, 'value', 'id', within=['phase', 'hour'])
        assert list(table['effect']) == ['phase', 'hour', 'phase:hour']
        phase = table.set_index('effect').loc['phase']
        assert phase['df1'] == 2
        assert phase['df2'] == 2 * (30 - 1)
        assert phase['significant']
        assert table.attrs['design'] == 'within'

    def test_mixed(self, rm_long):
        table = anova.aov_ez(rm_long, 'value', 'id', between='treatment', within='phase')
        effects = table.set_index('effect')
        assert list(effects.index) == ['treatment', 'phase', 'treatment:phase']
        assert effects.loc['phase', 'significant']
        assert effects.loc['treatment:phase', 'significant']
        assert effects.loc['treatment', 'df1'] == 2
        assert table.attrs['design'] == 'mixed'

    def test_partial_eta_squared(self, rm_long):
        table = anova.aov_ez(rm_long, 'value', 'id', within='phase')
        row = table.iloc[0]
        expected = row['F'] * row['df1'] / (row['F'] * row['df1'] + row['df2'])
        assert row['pes'] == pytest.approx(expected)
        assert 0 < row['pes'] < 1


class TestDesignErrors:

    def test_no_factors(self, rm_long):
        with pytest.raises(DesignError):
            anova.aov_ez(rm_long, 'value', 'id')

    def test_unknown_column(self, rm_long):
        with pytest.raises(DesignError, match="dose"):
            anova.aov_ez(rm_long, 'value', 'id', between='dose')

    def test_missing_within_cell(self, rm_long):
        incomplete = rm_long[~((rm_long['id'] == 1) & (rm_long['phase'] == 'post'))]
        with pytest.raises(DesignError, match="missing within-subject cells"):
            anova.aov_ez(incomplete, 'value', 'id', within='phase')

    def test_subject_in_two_groups(self, rm_long):
        broken = rm_long.copy()
        broken.loc[broken.index[0], 'treatment'] = 'B' if broken.iloc[0]['treatment'] != 'B' else 'A'
        with pytest.raises(DesignError, match="more than one between-subject cell"):
            anova.aov_ez(broken, 'value', 'id', between='treatment')

    def test_mixed_too_complex(self, rm_long):
        with pytest.raises(DesignError, match="exactly one between"):
            anova.aov_ez(rm_long, 'value', 'id', between=['treatment', 'gender'], within='phase')


class TestEmmeans:

    def test_one_way_between_equals_group_means(self, groups_df):
        emm = anova.emmeans(groups_df, 'score', 'subject', 'group')
        summary = groups_df.groupby('group')['score'].agg(['mean', 'std', 'count'])
        assert list(emm['group']) == ['a', 'b', 'c']
        assert emm['emmean'].values == pytest.approx(summary['mean'].values)
        assert emm['se'].values == pytest.approx((summary['std'] / np.sqrt(summary['count'])).values)
        assert (emm['df'] == 19).all()
        assert (emm['lower_cl'] < emm['emmean']).all()
        assert (emm['upper_cl'] > emm['emmean']).all()

    def test_by_factor(self, rm_long):
        emm = anova.emmeans(rm_long, 'value', 'id', specs='phase', by='treatment')
        assert len(emm) == 9
        assert list(emm.columns[:2]) == ['treatment', 'phase']
        a = emm[emm['treatment'] == 'A'].set_index('phase')['emmean']
        assert a['fup'] > a['pre']

    def test_weights_between_cells_equally(self):
        df = pd.DataFrame({
            'id': range(4),
            'sex': ['f', 'f', 'f', 'm'],
            'cond': ['x'] * 4,
            'y': [1.0, 1.0, 1.0, 5.0],
        })
        emm = anova.emmeans(df, 'y', 'id', specs='cond', between=['sex'])
        # Mean of cell means (1 and 5), not of observations
        assert emm['emmean'].iloc[0] == pytest.approx(3.0)

    def test_unnamed_between_factor_weights_subjects(self):
        df = pd.DataFrame({
            'id': range(4),
            'sex': ['f', 'f', 'f', 'm'],
            'cond': ['x'] * 4,
            'y': [1.0, 1.0, 1.0, 5.0],
        })
        emm = anova.emmeans(df, 'y', 'id', specs='cond')
        assert emm['emmean'].iloc[0] == pytest.approx(2.0)
        assert emm['df'].iloc[0] == 3


class TestPairwiseContrasts:

    def test_within_factor_by_group(self, rm_long):
        contrasts = anova.pairwise_contrasts(rm_long, 'value', 'id', factor='phase', by='treatment')
        assert len(contrasts) == 3 * 3
        assert set(contrasts['contrast']) == {'pre - post', 'pre - fup', 'post - fup'}
        assert (contrasts['p_adjusted'] >= contrasts['p_value'] - 1e-12).all()
        assert (contrasts['df'] == 9).all()
        treated = contrasts[(contrasts['treatment'] == 'A') & (contrasts['contrast'] == 'pre - fup')]
        assert treated['significant'].item()
        assert treated['estimate'].item() < 0

    def test_between_factor(self, groups_df):
        contrasts = anova.pairwise_contrasts(groups_df, 'score', 'subject', factor='group')
        assert list(contrasts['contrast']) == ['a - b', 'a - c', 'b - c']
        assert (contrasts['df'] == 38).all()
        means = groups_df.groupby('group')['score'].mean()
        assert contrasts['estimate'].iloc[1] == pytest.approx(means['a'] - means['c'])
        assert contrasts['significant'].all()

    def test_no_adjustment(self, groups_df):
        contrasts = anova.pairwise_contrasts(groups_df, 'score', 'subject', factor='group', adjust='none')
        assert contrasts['p_adjusted'].values == pytest.approx(contrasts['p_value'].values)

    def test_single_level(self, groups_df):
        with pytest.raises(DesignError):
            anova.pairwise_contrasts(groups_df[groups_df['group'] == 'a'], 'score', 'subject', 'group')
