"""
Descriptive and Inferential Statistics Module
=============================================

Item descriptives, correlation tests with multiplicity correction, and
one-way group comparisons (ANOVA, Tukey HSD).
"""

import pandas as pd
import numpy as np
from scipy import stats as scipy_stats
from statsmodels.stats.multitest import multipletests

from . import config
from .data import find_zero_variance_items, require_columns
from .errors import DataValidationError, ZeroVarianceError

# Accept R-style names for p-value adjustment methods
P_ADJUST_METHODS = {
    'holm': 'holm',
    'bonferroni': 'bonferroni',
    'hochberg': 'simes-hochberg',
    'hommel': 'hommel',
    'BH': 'fdr_bh',
    'fdr': 'fdr_bh',
    'fdr_bh': 'fdr_bh',
    'BY': 'fdr_by',
    'none': None,
}

CORR_METHODS = {
    'pearson': scipy_stats.pearsonr,
    'spearman': scipy_stats.spearmanr,
    'kendall': scipy_stats.kendalltau,
}


def adjust_pvalues(p_values, method: str = None) -> np.ndarray:
    """
    Adjust p-values for multiple comparisons.

    Parameters:
        p_values: Sequence of raw p-values (NaN entries are left untouched)
        method: Adjustment method name (see P_ADJUST_METHODS).
                Defaults to config.DEFAULT_P_ADJUST

    Returns:
        Array of adjusted p-values
    """
    if method is None:
        method = config.DEFAULT_P_ADJUST
    if method not in P_ADJUST_METHODS:
        raise ValueError(
            f"Unknown p-value adjustment '{method}'. Choose from {sorted(P_ADJUST_METHODS)}"
        )

    p_values = np.asarray(p_values, dtype=float)
    adjusted = p_values.copy()
    sm_method = P_ADJUST_METHODS[method]
    valid = ~np.isnan(p_values)
    if sm_method is not None and valid.any():
        adjusted[valid] = multipletests(p_values[valid], method=sm_method)[1]
    return adjusted


def _describe_values(values: pd.Series, trim: float) -> dict:
    values = values.dropna().astype(float)
    n = len(values)
    if n == 0:
        return {'n': 0, 'mean': np.nan, 'sd': np.nan, 'median': np.nan,
                'trimmed': np.nan, 'mad': np.nan, 'min': np.nan, 'max': np.nan,
                'range': np.nan, 'skew': np.nan, 'kurtosis': np.nan, 'se': np.nan}

    arr = values.to_numpy()
    sd = arr.std(ddof=1) if n > 1 else np.nan

    # Bias-adjusted sample moments ("type 3")
    if n > 1 and values.nunique() > 1:
        g1 = scipy_stats.skew(arr, bias=True)
        g2 = scipy_stats.kurtosis(arr, fisher=True, bias=True)
        skew = g1 * ((n - 1) / n) ** 1.5
        kurtosis = (g2 + 3) * (1 - 1 / n) ** 2 - 3
    else:
        skew = kurtosis = np.nan

    return {
        'n': n,
        'mean': arr.mean(),
        'sd': sd,
        'median': np.median(arr),
        'trimmed': scipy_stats.trim_mean(arr, trim),
        'mad': scipy_stats.median_abs_deviation(arr, scale='normal'),
        'min': arr.min(),
        'max': arr.max(),
        'range': arr.max() - arr.min(),
        'skew': skew,
        'kurtosis': kurtosis,
        'se': sd / np.sqrt(n),
    }


def describe(
    df: pd.DataFrame,
    columns: list[str] = None,
    trim: float = None
) -> pd.DataFrame:
    """
    Compute item-level descriptive statistics.

    Parameters:
        df: Input DataFrame
        columns: Columns to describe. Defaults to all numeric columns
        trim: Proportion trimmed from each end for the trimmed mean.
              Defaults to config.TRIM_PROPORTION

    Returns:
        DataFrame indexed by variable with columns
        vars, n, mean, sd, median, trimmed, mad, min, max, range, skew, kurtosis, se
    """
    if trim is None:
        trim = config.TRIM_PROPORTION
    if columns is None:
        columns = list(df.select_dtypes(include='number').columns)
    require_columns(df, columns)

    rows = []
    for i, col in enumerate(columns, 1):
        row = {'vars': i}
        row.update(_describe_values(df[col], trim))
        rows.append(row)

    return pd.DataFrame(rows, index=pd.Index(columns, name='variable'))


def describe_by(
    df: pd.DataFrame,
    group_col: str,
    columns: list[str] = None,
    trim: float = None
) -> pd.DataFrame:
    """
    Descriptive statistics computed separately for each group.

    Returns:
        Stacked describe() output with a leading 'group' column
    """
    require_columns(df, [group_col])
    if columns is None:
        columns = [c for c in df.select_dtypes(include='number').columns if c != group_col]

    frames = []
    for name, group in df.groupby(group_col):
        desc = describe(group, columns, trim)
        desc.insert(0, 'group', name)
        frames.append(desc)

    return pd.concat(frames)


def corr_test(
    df: pd.DataFrame,
    columns: list[str] = None,
    method: str = None,
    adjust: str = None
) -> dict:
    """
    Pairwise correlations with significance tests.

    Each pair uses all rows where both variables are present. Adjusted
    p-values are computed over the unique pairs.

    Parameters:
        df: Input DataFrame
        columns: Columns to correlate. Defaults to all numeric columns
        method: 'pearson', 'spearman' or 'kendall'. Defaults to config.DEFAULT_CORR_METHOD
        adjust: p-value adjustment. Defaults to config.DEFAULT_P_ADJUST

    Returns:
        Dictionary with r, n, p and p_adjusted matrices plus method and adjust
    """
    if method is None:
        method = config.DEFAULT_CORR_METHOD
    if adjust is None:
        adjust = config.DEFAULT_P_ADJUST
    if method not in CORR_METHODS:
        raise ValueError(f"Unknown correlation method '{method}'. Choose from {list(CORR_METHODS)}")
    if columns is None:
        columns = list(df.select_dtypes(include='number').columns)
    require_columns(df, columns)
    if len(columns) < 2:
        raise DataValidationError("Need at least two variables to correlate")

    constant = find_zero_variance_items(df, columns)
    if constant:
        raise ZeroVarianceError(constant)

    corr_func = CORR_METHODS[method]
    k = len(columns)
    r = np.eye(k)
    n = np.zeros((k, k), dtype=int)
    p = np.zeros((k, k))

    for i in range(k):
        n[i, i] = df[columns[i]].notna().sum()
        for j in range(i + 1, k):
            pair = df[[columns[i], columns[j]]].dropna()
            n[i, j] = n[j, i] = len(pair)
            if len(pair) < 3 or pair.iloc[:, 0].nunique() < 2 or pair.iloc[:, 1].nunique() < 2:
                r_ij, p_ij = np.nan, np.nan
            else:
                r_ij, p_ij = corr_func(pair.iloc[:, 0], pair.iloc[:, 1])
            r[i, j] = r[j, i] = r_ij
            p[i, j] = p[j, i] = p_ij

    upper = np.triu_indices(k, 1)
    p_adj = np.zeros((k, k))
    p_adj[upper] = adjust_pvalues(p[upper], adjust)
    p_adj = p_adj + p_adj.T

    as_frame = lambda m: pd.DataFrame(m, index=columns, columns=columns)
    return {
        'r': as_frame(r),
        'n': as_frame(n),
        'p': as_frame(p),
        'p_adjusted': as_frame(p_adj),
        'method': method,
        'adjust': adjust,
    }


def correlation_table(corr_result: dict) -> pd.DataFrame:
    """
    Flatten corr_test() output into one row per unique variable pair.

    Returns:
        DataFrame sorted by absolute correlation (strongest first)
    """
    r = corr_result['r']
    columns = list(r.columns)
    rows = []
    for i, var1 in enumerate(columns):
        for var2 in columns[i + 1:]:
            p_adj = corr_result['p_adjusted'].loc[var1, var2]
            rows.append({
                'var1': var1,
                'var2': var2,
                'r': r.loc[var1, var2],
                'n': int(corr_result['n'].loc[var1, var2]),
                'p_value': corr_result['p'].loc[var1, var2],
                'p_adjusted': p_adj,
                'significant': bool(p_adj < config.ALPHA_LEVEL),
            })

    table = pd.DataFrame(rows)
    order = table['r'].abs().sort_values(ascending=False).index
    return table.loc[order].reset_index(drop=True)


def run_anova(
    df: pd.DataFrame,
    value_col: str,
    group_col: str
) -> dict:
    """
    Perform one-way ANOVA with effect size calculation.

    Parameters:
        df: Input DataFrame
        value_col: Column with values to compare
        group_col: Column with group labels

    Returns:
        Dictionary with F-statistic, p-value, eta-squared, and interpretation
    """
    require_columns(df, [value_col, group_col])
    df = df[[value_col, group_col]].dropna()

    groups = [group[value_col].values for name, group in df.groupby(group_col)]
    if len(groups) < 2:
        raise DataValidationError(f"ANOVA needs at least two groups in '{group_col}'")

    f_stat, p_value = scipy_stats.f_oneway(*groups)

    # Calculate eta-squared (effect size)
    grand_mean = df[value_col].mean()
    ss_between = sum(len(g) * (np.mean(g) - grand_mean)**2 for g in groups)
    ss_total = sum((df[value_col] - grand_mean)**2)
    eta_squared = ss_between / ss_total if ss_total > 0 else 0

    return {
        'f_statistic': f_stat,
        'p_value': p_value,
        'df_between': len(groups) - 1,
        'df_within': len(df) - len(groups),
        'eta_squared': eta_squared,
        'effect_size': config.get_effect_label(eta_squared),
        'significant': p_value < config.ALPHA_LEVEL,
        'sig_marker': config.get_sig_marker(p_value),
        'n_groups': len(groups),
        'n_total': len(df),
    }


def run_anova_multi(
    df: pd.DataFrame,
    value_cols: list[str],
    group_col: str
) -> pd.DataFrame:
    """
    Run ANOVA for multiple value columns.

    Parameters:
        df: Input DataFrame
        value_cols: List of columns to analyze
        group_col: Column with group labels

    Returns:
        DataFrame with ANOVA results for each value column
    """
    results = []
    for col in value_cols:
        result = run_anova(df, col, group_col)
        result['variable'] = col
        results.append(result)

    results_df = pd.DataFrame(results)
    results_df = results_df[['variable', 'f_statistic', 'df_between', 'df_within', 'p_value',
                             'eta_squared', 'effect_size', 'significant', 'sig_marker']]
    return results_df


def run_tukey_hsd(
    df: pd.DataFrame,
    value_col: str,
    group_col: str
) -> pd.DataFrame:
    """
    Perform Tukey's HSD post-hoc test.

    Parameters:
        df: Input DataFrame
        value_col: Column with values to compare
        group_col: Column with group labels

    Returns:
        DataFrame with pairwise comparisons (mean difference is group1 - group2)
    """
    require_columns(df, [value_col, group_col])
    df = df[[value_col, group_col]].dropna()

    grouped = [(name, group[value_col].values) for name, group in df.groupby(group_col)]
    group_names = [name for name, _ in grouped]
    result = scipy_stats.tukey_hsd(*[values for _, values in grouped])

    comparisons = []
    for i, name1 in enumerate(group_names):
        for j, name2 in enumerate(group_names):
            if i < j:
                p_val = result.pvalue[i, j]
                comparisons.append({
                    'group1': name1,
                    'group2': name2,
                    'mean_diff': result.statistic[i, j],
                    'p_value': p_val,
                    'significant': p_val < config.ALPHA_LEVEL,
                })

    return pd.DataFrame(comparisons)


def calculate_group_means(
    df: pd.DataFrame,
    value_cols: list[str],
    group_col: str
) -> pd.DataFrame:
    """
    Calculate mean values by group.

    Parameters:
        df: Input DataFrame
        value_cols: Columns to calculate means for
        group_col: Column with group labels

    Returns:
        DataFrame with means by group
    """
    means = df.groupby(group_col)[value_cols].mean()
    means['n'] = df.groupby(group_col).size()
    return means.round(3)


def print_anova_results(anova_df: pd.DataFrame) -> None:
    """Print ANOVA results in readable format."""
    print("\n" + "-" * 60)
    print("ANOVA RESULTS")
    print("-" * 60)

    for _, row in anova_df.iterrows():
        print(f"\n{row['variable']}:")
        print(f"  F({row['df_between']}, {row['df_within']}): {row['f_statistic']:.2f}")
        print(f"  p-value: {row['p_value']:.2e} {row['sig_marker']}")
        print(f"  Effect size (eta^2): {row['eta_squared']:.3f} ({row['effect_size']})")
