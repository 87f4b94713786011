"""
Factorial ANOVA Module
======================

Between-, within- and mixed-design ANOVA on long-format data, followed by
estimated marginal means and pairwise post-hoc contrasts.

Observations are first averaged to one value per subject and design cell.
Backends:
    between only           - statsmodels OLS, type III sums of squares
    within only            - statsmodels AnovaRM
    1 between x 1 within   - pingouin.mixed_anova
"""

import re
from itertools import combinations

import pandas as pd
import numpy as np
import pingouin as pg
import statsmodels.api as sm
from statsmodels.formula.api import ols
from statsmodels.stats.anova import AnovaRM
from scipy import stats as scipy_stats

from . import config
from .errors import DesignError
from .stats import adjust_pvalues


def _as_list(value) -> list:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return list(value)


def _levels(series: pd.Series) -> list:
    """Factor levels in categorical order, otherwise sorted."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return [lvl for lvl in series.cat.categories if lvl in set(series)]
    return sorted(series.dropna().unique(), key=lambda v: (str(type(v)), v))


def _first_column(table: pd.DataFrame, candidates: list[str]) -> str:
    for name in candidates:
        if name in table.columns:
            return name
    raise DesignError(f"ANOVA backend returned none of the expected columns {candidates}")


def _aggregate(
    df: pd.DataFrame,
    dv: str,
    id_col: str,
    between: list[str],
    within: list[str]
) -> pd.DataFrame:
    """Validate the design and average to one row per subject x cell."""
    factors = between + within
    if not factors:
        raise DesignError("At least one between or within factor is required")

    missing = [c for c in [dv, id_col] + factors if c not in df.columns]
    if missing:
        raise DesignError(f"Unknown columns in ANOVA design: {missing}")

    data = df.dropna(subset=[dv])
    agg = data.groupby([id_col] + factors, observed=True)[dv].mean().reset_index()

    if between:
        per_subject = agg.groupby(id_col)[between].nunique()
        mixed_subjects = per_subject[(per_subject > 1).any(axis=1)].index.tolist()
        if mixed_subjects:
            raise DesignError(
                f"Subjects appear in more than one between-subject cell: {mixed_subjects[:5]}"
            )

    if within:
        n_cells = int(np.prod([agg[w].nunique() for w in within]))
        cells_per_subject = agg.groupby(id_col).size()
        incomplete = cells_per_subject[cells_per_subject < n_cells].index.tolist()
        if incomplete:
            raise DesignError(
                f"Subjects missing within-subject cells (need {n_cells}): {incomplete[:5]}"
            )

    return agg


def _between_anova(agg: pd.DataFrame, dv: str, between: list[str]) -> pd.DataFrame:
    # Neutral column names keep the formula safe for arbitrary labels
    codes = {f'f{i}': name for i, name in enumerate(between)}
    work = pd.DataFrame({'y': agg[dv].astype(float)})
    for code, name in codes.items():
        work[code] = agg[name].astype(str).values

    formula = 'y ~ ' + ' * '.join(f'C({code}, Sum)' for code in codes)
    model = ols(formula, data=work).fit()
    table = sm.stats.anova_lm(model, typ=3)

    df_resid = table.loc['Residual', 'df']
    rows = []
    for term, row in table.iterrows():
        if term in ('Intercept', 'Residual'):
            continue
        parts = re.findall(r'C\((f\d+), Sum\)', term)
        rows.append({
            'effect': ':'.join(codes[p] for p in parts),
            'df1': row['df'],
            'df2': df_resid,
            'F': row['F'],
            'p_value': row['PR(>F)'],
        })
    return pd.DataFrame(rows)


def _within_anova(agg: pd.DataFrame, dv: str, id_col: str, within: list[str]) -> pd.DataFrame:
    codes = {f'w{i}': name for i, name in enumerate(within)}
    work = pd.DataFrame({'y': agg[dv].astype(float), 'subject': agg[id_col].values})
    for code, name in codes.items():
        work[code] = agg[name].astype(str).values

    result = AnovaRM(data=work, depvar='y', subject='subject', within=list(codes)).fit()
    table = result.anova_table

    rows = []
    for term, row in table.iterrows():
        rows.append({
            'effect': ':'.join(codes[p] for p in term.split(':')),
            'df1': row['Num DF'],
            'df2': row['Den DF'],
            'F': row['F Value'],
            'p_value': row['Pr > F'],
        })
    return pd.DataFrame(rows)


def _mixed_anova(
    agg: pd.DataFrame,
    dv: str,
    id_col: str,
    between: list[str],
    within: list[str]
) -> pd.DataFrame:
    if len(between) != 1 or len(within) != 1:
        raise DesignError(
            "Mixed designs support exactly one between and one within factor; "
            f"got between={between}, within={within}"
        )
    b, w = between[0], within[0]
    work = agg.assign(**{b: agg[b].astype(str), w: agg[w].astype(str)})
    table = pg.mixed_anova(data=work, dv=dv, within=w, subject=id_col, between=b)

    df1_col = _first_column(table, ['DF1', 'ddof1'])
    df2_col = _first_column(table, ['DF2', 'ddof2'])
    p_col = _first_column(table, ['p-unc', 'p_unc', 'pval'])

    rows = []
    for _, row in table.iterrows():
        effect = f'{b}:{w}' if row['Source'] == 'Interaction' else row['Source']
        rows.append({
            'effect': effect,
            'df1': row[df1_col],
            'df2': row[df2_col],
            'F': row['F'],
            'p_value': row[p_col],
        })
    return pd.DataFrame(rows)


def aov_ez(
    df: pd.DataFrame,
    dv: str,
    id_col: str,
    between: list[str] = None,
    within: list[str] = None
) -> pd.DataFrame:
    """
    Fit a factorial ANOVA from long-format data.

    Parameters:
        df: Long DataFrame (one row per observation)
        dv: Dependent variable column
        id_col: Subject identifier column
        between: Between-subject factor column(s)
        within: Within-subject factor column(s)

    Returns:
        DataFrame with effect, df1, df2, F, p_value, pes (partial eta squared),
        significant and sig_marker
    """
    between = _as_list(between)
    within = _as_list(within)
    agg = _aggregate(df, dv, id_col, between, within)

    if between and within:
        table = _mixed_anova(agg, dv, id_col, between, within)
        design = 'mixed'
    elif within:
        table = _within_anova(agg, dv, id_col, within)
        design = 'within'
    else:
        table = _between_anova(agg, dv, between)
        design = 'between'

    table[['df1', 'df2', 'F', 'p_value']] = table[['df1', 'df2', 'F', 'p_value']].astype(float)
    table['pes'] = (table['F'] * table['df1']) / (table['F'] * table['df1'] + table['df2'])
    table['significant'] = table['p_value'] < config.ALPHA_LEVEL
    table['sig_marker'] = table['p_value'].apply(config.get_sig_marker)
    table.attrs['design'] = design
    table.attrs['n_subjects'] = agg[id_col].nunique()
    return table


def emmeans(
    df: pd.DataFrame,
    dv: str,
    id_col: str,
    specs,
    by=None,
    between=None,
    level: float = 0.95
) -> pd.DataFrame:
    """
    Estimated marginal means with t-based confidence intervals.

    Each subject contributes one score per `specs` cell (the mean of its
    observations there). Cells of the remaining between-subject factors are
    weighted equally: emmean is the mean of their cell means and
    se = sqrt(sum(var_c / n_c)) / n_cells.

    Parameters:
        df: Long DataFrame
        dv: Dependent variable column
        id_col: Subject identifier column
        specs: Factor(s) whose marginal means are wanted
        by: Factor(s) to condition on
        between: All between-subject factors of the design. Defaults to those
                 among specs/by that are constant within subjects, so a
                 between factor outside specs/by is only weighted equally
                 when passed here (pass it for unbalanced designs)
        level: Confidence level

    Returns:
        DataFrame with factor columns plus emmean, se, df, lower_cl, upper_cl
    """
    specs = _as_list(specs)
    by = _as_list(by)
    group_factors = by + specs
    missing = [c for c in [dv, id_col] + group_factors + _as_list(between) if c not in df.columns]
    if missing:
        raise DesignError(f"Unknown columns for marginal means: {missing}")

    data = df.dropna(subset=[dv])
    if between is None:
        between = [
            f for f in group_factors
            if (data.groupby(id_col)[f].nunique() <= 1).all()
        ]
    other_between = [f for f in _as_list(between) if f not in group_factors]

    subject_scores = (
        data.groupby([id_col] + group_factors + other_between, observed=True)[dv]
        .mean()
        .reset_index()
    )

    rows = []
    for key, cell in subject_scores.groupby(group_factors, observed=True):
        key = key if isinstance(key, tuple) else (key,)
        if other_between:
            parts = [g[dv] for _, g in cell.groupby(other_between, observed=True)]
        else:
            parts = [cell[dv]]

        means = np.array([p.mean() for p in parts])
        ns = np.array([len(p) for p in parts])
        variances = np.array([p.var(ddof=1) if len(p) > 1 else np.nan for p in parts])

        n_parts = len(parts)
        emmean = means.mean()
        se = np.sqrt(np.sum(variances / ns)) / n_parts
        dof = ns.sum() - n_parts
        if dof > 0 and not np.isnan(se):
            t_crit = scipy_stats.t.ppf(0.5 + level / 2, dof)
            lower, upper = emmean - t_crit * se, emmean + t_crit * se
        else:
            lower = upper = np.nan

        row = dict(zip(group_factors, key))
        row.update({
            'emmean': emmean,
            'se': se,
            'df': dof,
            'lower_cl': lower,
            'upper_cl': upper,
        })
        rows.append(row)

    return pd.DataFrame(rows)


def _is_within(data: pd.DataFrame, id_col: str, factor: str) -> bool:
    return bool((data.groupby(id_col)[factor].nunique() > 1).any())


def pairwise_contrasts(
    df: pd.DataFrame,
    dv: str,
    id_col: str,
    factor: str,
    by=None,
    adjust: str = None
) -> pd.DataFrame:
    """
    All pairwise comparisons between levels of a factor.

    Within-subject factors use paired t-tests on subject means; between-
    subject factors use pooled-variance two-sample t-tests. p-values are
    adjusted within each level of `by`.

    Parameters:
        df: Long DataFrame
        dv: Dependent variable column
        id_col: Subject identifier column
        factor: Factor whose levels are compared
        by: Factor(s) to run the comparisons within
        adjust: p-value adjustment. Defaults to config.DEFAULT_P_ADJUST

    Returns:
        DataFrame with [by...], contrast, estimate, t, df, p_value,
        p_adjusted and significant
    """
    if adjust is None:
        adjust = config.DEFAULT_P_ADJUST
    by = _as_list(by)
    missing = [c for c in [dv, id_col, factor] + by if c not in df.columns]
    if missing:
        raise DesignError(f"Unknown columns for contrasts: {missing}")

    data = df.dropna(subset=[dv])
    within = _is_within(data, id_col, factor)
    families = data.groupby(by, observed=True) if by else [((), data)]

    frames = []
    for key, subset in families:
        key = key if isinstance(key, tuple) else (key,)
        scores = subset.groupby([id_col, factor], observed=True)[dv].mean().unstack(factor)

        rows = []
        for a, b in combinations(_levels(subset[factor]), 2):
            if within:
                pair = scores[[a, b]].dropna()
                diff = pair[a] - pair[b]
                t_stat, p_val = scipy_stats.ttest_rel(pair[a], pair[b])
                estimate, dof = diff.mean(), len(pair) - 1
            else:
                x, y = scores[a].dropna(), scores[b].dropna()
                t_stat, p_val = scipy_stats.ttest_ind(x, y, equal_var=True)
                estimate, dof = x.mean() - y.mean(), len(x) + len(y) - 2

            row = dict(zip(by, key))
            row.update({
                'contrast': f'{a} - {b}',
                'estimate': estimate,
                't': t_stat,
                'df': dof,
                'p_value': p_val,
            })
            rows.append(row)

        if not rows:
            continue
        family = pd.DataFrame(rows)
        family['p_adjusted'] = adjust_pvalues(family['p_value'].values, adjust)
        frames.append(family)

    if not frames:
        raise DesignError(f"Factor '{factor}' needs at least two levels to compare")
    result = pd.concat(frames, ignore_index=True)
    result['significant'] = result['p_adjusted'] < config.ALPHA_LEVEL
    return result


def print_anova_table(table: pd.DataFrame) -> None:
    """Print factorial ANOVA results in readable format."""
    design = table.attrs.get('design', '')
    print("\n" + "-" * 60)
    print(f"ANOVA TABLE ({design} design)" if design else "ANOVA TABLE")
    print("-" * 60)

    for _, row in table.iterrows():
        print(f"  {row['effect']:<25} F({row['df1']:.0f}, {row['df2']:.0f}) = {row['F']:7.2f}  "
              f"p = {row['p_value']:.2e} {row['sig_marker']:<3}  pes = {row['pes']:.3f}")
