"""Tests for plotting helpers and output file naming."""

from datetime import date

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt

from psych_core import viz, output


def _loadings():
    return pd.DataFrame(
        {'Factor_1': [0.8, 0.7, -0.5, 0.1], 'Factor_2': [0.1, 0.2, 0.1, 0.9]},
        index=['A1', 'A2', 'A3', 'C1'],
    )


class TestOutput:

    def test_dated_directory(self, tmp_path):
        out = output.get_output_dir('demo', str(tmp_path))
        assert out.exists()
        assert out.name == f"{date.today().isoformat()}-demo"

    def test_save_files(self, tmp_path):
        out = output.get_output_dir('demo', str(tmp_path))
        csv_path = output.save_csv(pd.DataFrame({'a': [1]}), out, 'demo', 'table')
        txt_path = output.save_report("hello", out, 'demo')
        assert csv_path.name == f"{date.today().isoformat()}-demo-table.csv"
        assert txt_path.read_text(encoding='utf-8') == "hello"
        assert output.list_outputs(out) == sorted([csv_path.name, txt_path.name])

    def test_string_output_dir(self, tmp_path):
        path = output.save_csv(pd.DataFrame({'a': [1]}), str(tmp_path), 'demo', 'table')
        assert path.parent == tmp_path
        assert path.exists()
        assert output.save_report("x", str(tmp_path), 'demo').exists()

    def test_list_missing_dir(self, tmp_path):
        assert output.list_outputs(tmp_path / "missing") == []


class TestPlots:

    def test_scree(self, tmp_path):
        fig = viz.plot_scree(np.array([3.0, 1.5, 0.5]), simulated=np.array([1.2, 1.1, 1.0]))
        assert isinstance(fig, plt.Figure)
        path = output.save_figure(fig, tmp_path, 'demo', 'scree')
        assert path.exists()

    def test_heatmaps(self):
        corr = pd.DataFrame(np.eye(3), index=list('abc'), columns=list('abc'))
        assert isinstance(viz.plot_correlation_matrix(corr), plt.Figure)
        assert isinstance(viz.plot_correlation_matrix(corr, lower=False), plt.Figure)
        assert isinstance(viz.plot_loadings_heatmap(_loadings()), plt.Figure)

    def test_factor_diagram(self, tmp_path):
        fig = viz.plot_factor_diagram(_loadings(), threshold=0.3)
        ax = fig.axes[0]
        # One labelled arrow per item above threshold, plus item and factor labels
        labels = [t.get_text() for t in ax.texts]
        assert {'A1', 'A2', 'A3', 'C1', 'Factor_1', 'Factor_2'} <= set(labels)
        assert '-0.50' in labels
        assert output.save_figure(fig, tmp_path, 'demo', 'diagram').exists()

    def test_marginal_means(self):
        emm = pd.DataFrame({
            'group': ['a', 'a', 'b', 'b'],
            'phase': ['pre', 'post', 'pre', 'post'],
            'emmean': [1.0, 2.0, 1.0, 1.5],
            'lower_cl': [0.5, 1.5, 0.5, 1.0],
            'upper_cl': [1.5, 2.5, 1.5, 2.0],
        })
        fig = viz.plot_marginal_means(emm, x='phase', trace='group')
        ax = fig.axes[0]
        assert [t.get_text() for t in ax.get_xticklabels()] == ['pre', 'post']
        assert ax.get_legend() is not None

    def test_style_and_palette(self):
        viz.setup_style()
        assert viz.get_cmap('diverging') == 'RdBu_r'
        assert viz.get_cmap('sequential') == 'Blues'
        assert 'significant' in viz.get_colors()
