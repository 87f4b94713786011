"""
Visualization Utilities Module
==============================

Style setup plus the standard figures of the analysis: scree plot,
correlation and loading heatmaps, factor path diagram, and marginal-means
interaction plot. Every plot function returns the Figure; saving is left
to output.save_figure().
"""

import matplotlib
matplotlib.use('Agg')  # Non-interactive backend for saving plots

import matplotlib.pyplot as plt
import matplotlib.patches as mpatches
from matplotlib.patches import FancyBboxPatch
import numpy as np
import pandas as pd
import seaborn as sns

from . import config


def setup_style() -> None:
    """
    Configure matplotlib and seaborn style settings.

    Sets:
    - Seaborn whitegrid style
    - Consistent font sizes
    """
    sns.set_theme(style='whitegrid')
    plt.rcParams.update({
        'figure.figsize': (10, 6),
        'font.size': 10,
        'axes.titlesize': 12,
        'axes.labelsize': 11,
        'legend.fontsize': 10,
    })


def get_colors() -> dict:
    """
    Return consistent color palette for plots.

    Returns:
        Dictionary with named colors
    """
    return {
        'primary': '#3498db',      # Blue
        'secondary': '#2ecc71',    # Green
        'accent': '#e74c3c',       # Red
        'neutral': '#95a5a6',      # Gray
        'highlight': '#f39c12',    # Orange
        'significant': '#2ecc71',  # Green (for p < 0.05)
        'not_significant': '#95a5a6',  # Gray
        'item': '#E8F4FD',
        'factor': '#FFF3E0',
    }


def get_cmap(style: str = 'diverging') -> str:
    """
    Return appropriate colormap name.

    Parameters:
        style: 'diverging' for correlation/loadings, 'sequential' for counts

    Returns:
        Colormap name string
    """
    if style == 'diverging':
        return 'RdBu_r'
    elif style == 'sequential':
        return 'Blues'
    else:
        return 'viridis'


def create_figure(nrows: int = 1, ncols: int = 1, figsize: tuple = None) -> tuple:
    """
    Create figure with subplots using consistent settings.

    Parameters:
        nrows: Number of subplot rows
        ncols: Number of subplot columns
        figsize: Optional figure size (width, height)

    Returns:
        Tuple of (fig, axes)
    """
    if figsize is None:
        figsize = (5 * ncols, 5 * nrows)

    fig, axes = plt.subplots(nrows, ncols, figsize=figsize)
    fig.set_facecolor('white')
    return fig, axes


def plot_scree(eigenvalues, simulated=None) -> plt.Figure:
    """Scree plot with Kaiser line and, optionally, parallel-analysis eigenvalues."""
    fig, ax = create_figure(figsize=(10, 6))
    positions = range(1, len(eigenvalues) + 1)

    ax.plot(positions, eigenvalues, 'bo-', linewidth=2, markersize=8, label='Observed')
    if simulated is not None:
        ax.plot(positions, simulated, 'r^--', linewidth=1.5, label='Parallel analysis (random)')
    ax.axhline(y=1, color='gray', linestyle=':', label='Kaiser Criterion (eigenvalue=1)')
    ax.set_xlabel('Factor Number')
    ax.set_ylabel('Eigenvalue')
    ax.set_title('Scree Plot')
    ax.legend()
    ax.set_xticks(list(positions))
    return fig


def plot_loadings_heatmap(loadings: pd.DataFrame, title: str = 'Factor Loadings') -> plt.Figure:
    """Factor loadings heatmap on a fixed -1..1 scale."""
    fig, ax = create_figure(figsize=(2 + 1.6 * loadings.shape[1], 2 + 0.35 * loadings.shape[0]))
    sns.heatmap(loadings, annot=True, cmap=get_cmap('diverging'), center=0,
                fmt='.2f', linewidths=0.5, vmin=-1, vmax=1, ax=ax)
    ax.set_title(title)
    return fig


def plot_correlation_matrix(corr: pd.DataFrame, lower: bool = True) -> plt.Figure:
    """
    Correlation matrix heatmap.

    Parameters:
        corr: Square correlation DataFrame
        lower: Show only the lower triangle

    Returns:
        Figure
    """
    mask = np.triu(np.ones_like(corr, dtype=bool), k=1) if lower else None
    size = max(6, 0.45 * len(corr))
    fig, ax = create_figure(figsize=(size + 2, size))
    sns.heatmap(corr, mask=mask, annot=len(corr) <= 12, cmap=get_cmap('diverging'), center=0,
                fmt='.2f', square=True, linewidths=0.5, vmin=-1, vmax=1, ax=ax)
    ax.set_title('Correlation Matrix')
    return fig


def plot_factor_diagram(
    loadings: pd.DataFrame,
    threshold: float = None,
    simple: bool = True
) -> plt.Figure:
    """
    Path diagram: items (boxes) <- latent factors (ellipses).

    Parameters:
        loadings: Factor loadings DataFrame (items x factors)
        threshold: Minimum absolute loading drawn. Defaults to config.LOADING_THRESHOLD
        simple: Draw only each item's primary loading

    Returns:
        Figure
    """
    if threshold is None:
        threshold = config.LOADING_THRESHOLD
    colors = get_colors()

    items = list(loadings.index)
    factors = list(loadings.columns)
    height = max(len(items), 2 * len(factors)) + 1

    fig, ax = plt.subplots(1, 1, figsize=(10, 0.45 * height + 1))
    ax.set_xlim(0, 10)
    ax.set_ylim(0, height)
    ax.axis('off')

    item_y = {item: height - 1 - i for i, item in enumerate(items)}
    factor_y = {
        f: height * (len(factors) - i) / (len(factors) + 1)
        for i, f in enumerate(factors)
    }

    for item, y in item_y.items():
        box = FancyBboxPatch((0.3, y - 0.3), 2.2, 0.6, boxstyle="round,pad=0.05",
                             facecolor=colors['item'], edgecolor='#1976D2', linewidth=1.5)
        ax.add_patch(box)
        ax.text(1.4, y, str(item), ha='center', va='center', fontsize=8, fontweight='bold')

    for factor, y in factor_y.items():
        ellipse = mpatches.Ellipse((7.5, y), 2.6, 1.2, facecolor=colors['factor'],
                                   edgecolor='#E65100', linewidth=2)
        ax.add_patch(ellipse)
        ax.text(7.5, y, factor, ha='center', va='center', fontsize=10, fontweight='bold')

    abs_loadings = loadings.abs()
    for item in items:
        for factor in factors:
            value = loadings.loc[item, factor]
            if abs(value) < threshold:
                continue
            if simple and factor != abs_loadings.loc[item].idxmax():
                continue
            start, end = (6.2, factor_y[factor]), (2.6, item_y[item])
            ax.annotate('', xy=end, xytext=start,
                        arrowprops=dict(arrowstyle='->', color='#C62828' if value < 0 else '#333',
                                        lw=0.5 + 2 * abs(value),
                                        linestyle='dashed' if value < 0 else 'solid'))
            ax.text(3.2 + 0.1 * factors.index(factor), end[1] + 0.15, f'{value:.2f}',
                    fontsize=7, ha='center', va='center',
                    bbox=dict(boxstyle='round,pad=0.1', facecolor='white',
                              edgecolor='none', alpha=0.9))

    ax.set_title('Factor Analysis Diagram', fontsize=12, fontweight='bold')
    return fig


def plot_marginal_means(
    emm: pd.DataFrame,
    x: str,
    trace: str = None,
    ylabel: str = 'Estimated marginal mean'
) -> plt.Figure:
    """
    Interaction plot of estimated marginal means with confidence intervals.

    Parameters:
        emm: Output of anova.emmeans()
        x: Factor on the x axis
        trace: Factor drawn as separate lines
        ylabel: Y axis label

    Returns:
        Figure
    """
    fig, ax = create_figure(figsize=(8, 6))
    x_levels = list(pd.unique(emm[x]))
    positions = {lvl: i for i, lvl in enumerate(x_levels)}

    groups = emm.groupby(trace, sort=False) if trace else [(None, emm)]
    palette = sns.color_palette(n_colors=max(len(groups), 1))
    offset_step = 0.05

    for i, (name, group) in enumerate(groups):
        xs = np.array([positions[v] for v in group[x]]) + (i - (len(groups) - 1) / 2) * offset_step
        yerr = [group['emmean'] - group['lower_cl'], group['upper_cl'] - group['emmean']]
        ax.errorbar(xs, group['emmean'], yerr=yerr, marker='o', capsize=4,
                    color=palette[i], label=str(name) if trace else None)

    ax.set_xticks(range(len(x_levels)))
    ax.set_xticklabels([str(v) for v in x_levels])
    ax.set_xlabel(x)
    ax.set_ylabel(ylabel)
    ax.set_title(f'Marginal means by {x}' + (f' and {trace}' if trace else ''))
    if trace:
        ax.legend(title=trace)
    return fig
