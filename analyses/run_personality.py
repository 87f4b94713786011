#!/usr/bin/env python3
"""
Personality Questionnaire Analysis Script
=========================================

Describes questionnaire items, examines their correlations, extracts
latent factors, scores the scales, and compares scale scores across
groups.

Parameters:
    data_file     - Path to input CSV (None = simulate Big Five data)
    n_simulated   - Respondents to simulate when data_file is None
    items         - Item columns to analyze
    keys          - Scoring keys ('-' prefix = reverse-keyed)
    n_factors     - Number of factors (None = parallel analysis)
    rotation      - Factor rotation
    group_col     - Column to compare scale scores across
    output_base   - Base output directory

Outputs:
    - Item descriptives (CSV)
    - Correlation matrix + significant pairs (CSV, PNG)
    - Factorability tests (CSV)
    - Scree plot (PNG)
    - Factor loadings, communalities, factor correlations (CSV, PNG)
    - Factor diagram (PNG)
    - Scale scores and reliability (CSV)
    - Group ANOVA + Tukey HSD (CSV)
    - Text report (TXT)
"""

import sys
from pathlib import Path

# Hybrid import: works both when pip-installed and when run directly
try:
    from psych_core import data, stats, efa, scoring, viz, output, config
except ImportError:
    sys.path.insert(0, str(Path(__file__).parent.parent))
    from psych_core import data, stats, efa, scoring, viz, output, config

import warnings
# Numerical noise from pandas/scipy/statsmodels; psych_core UserWarnings stay visible
for _category in (RuntimeWarning, FutureWarning):
    warnings.filterwarnings('ignore', category=_category)

import pandas as pd

# =============================================================================
# PARAMETERS
# =============================================================================
DEFAULTS = {
    'data_file': config.DEFAULT_DATA_FILE,
    'n_simulated': 1000,
    'items': config.BFI_ITEMS,
    'keys': config.BFI_KEYS,
    'n_factors': None,  # None = auto-detect via parallel analysis
    'rotation': config.DEFAULT_ROTATION,
    'group_col': 'gender',
    'output_base': config.DEFAULT_OUTPUT_BASE,
}

TEST_NAME = 'personality'


# =============================================================================
# MAIN ANALYSIS
# =============================================================================
def run_analysis(params: dict) -> dict:
    """
    Run the questionnaire analysis pipeline.

    Parameters:
        params: Dictionary with analysis parameters

    Returns:
        Dictionary with all analysis results
    """
    print("=" * 70)
    print("PERSONALITY QUESTIONNAIRE ANALYSIS")
    print("=" * 70)

    output_dir = output.get_output_dir(TEST_NAME, params['output_base'])
    viz.setup_style()

    # Step 1: Load data
    print("\n" + "=" * 70)
    print("STEP 1: LOADING DATA")
    print("=" * 70)

    if params['data_file']:
        df = data.load_csv(params['data_file'])
    else:
        df = data.simulate_bfi(params['n_simulated'])

    # Step 2: Item descriptives
    print("\n" + "=" * 70)
    print("STEP 2: ITEM DESCRIPTIVES")
    print("=" * 70)

    items_df = data.select_items(df, params['items'])
    descriptives = stats.describe(items_df)
    print(descriptives.round(2).to_string())
    output.save_csv(descriptives, output_dir, TEST_NAME, 'describe', index=True)

    # Step 3: Drop items that cannot be correlated
    items_df, dropped = data.drop_zero_variance_items(items_df)
    items = list(items_df.columns)

    # Step 4: Correlations
    print("\n" + "=" * 70)
    print("STEP 4: ITEM CORRELATIONS")
    print("=" * 70)

    corr = stats.corr_test(items_df)
    corr_pairs = stats.correlation_table(corr)
    n_sig = int(corr_pairs['significant'].sum())
    print(f"{n_sig}/{len(corr_pairs)} item pairs significant after {corr['adjust']} adjustment")
    print("\nStrongest correlations:")
    print(corr_pairs.head(10).round(3).to_string(index=False))

    output.save_csv(corr['r'], output_dir, TEST_NAME, 'correlations', index=True)
    output.save_csv(corr_pairs, output_dir, TEST_NAME, 'correlation-pairs')
    output.save_figure(viz.plot_correlation_matrix(corr['r']), output_dir, TEST_NAME, 'correlation')

    # Step 5: Factorability
    scaled_array, scaled_df, valid_indices, scaler = data.standardize_features(items_df, items)
    factorability = efa.check_factorability(scaled_array, items)
    output.save_csv(efa.get_factorability_summary(factorability), output_dir, TEST_NAME, 'factorability')

    # Step 6: Number of factors
    eigenvalues, kaiser_factors = efa.determine_num_factors(scaled_array, items)
    parallel = efa.parallel_analysis(scaled_array)
    output.save_figure(viz.plot_scree(eigenvalues, parallel['simulated']),
                       output_dir, TEST_NAME, 'scree')

    n_factors = params['n_factors'] or parallel['n_factors']

    # Step 7: Extract factors
    efa_results = efa.run_efa(scaled_array, items, n_factors, rotation=params['rotation'])
    loadings = efa.sort_loadings(efa_results['loadings'])

    output.save_csv(loadings, output_dir, TEST_NAME, 'loadings', index=True)
    output.save_csv(efa_results['communalities'], output_dir, TEST_NAME, 'communalities', index=True)
    output.save_csv(efa_results['factor_correlations'], output_dir, TEST_NAME,
                    'factor-correlations', index=True)
    output.save_figure(viz.plot_loadings_heatmap(loadings), output_dir, TEST_NAME, 'loadings')
    output.save_figure(viz.plot_factor_diagram(loadings), output_dir, TEST_NAME, 'diagram')

    # Step 8: Factor scores
    factor_scores = efa.calculate_factor_scores(
        efa_results['factor_analyzer'], scaled_array, valid_indices
    )
    output.save_csv(factor_scores, output_dir, TEST_NAME, 'factor-scores', index=True)

    # Step 9: Scale scores
    keys = {
        scale: [k for k in keyed if k.lstrip('-') not in dropped]
        for scale, keyed in params['keys'].items()
    }
    keys = {scale: keyed for scale, keyed in keys.items() if keyed}
    scored = scoring.score_items(df, keys)
    output.save_csv(scored['scores'], output_dir, TEST_NAME, 'scale-scores', index=True)
    output.save_csv(scored['alpha'], output_dir, TEST_NAME, 'reliability', index=True)
    output.save_csv(scored['item_stats'], output_dir, TEST_NAME, 'item-stats')

    # Step 10: Group differences in scale scores
    print("\n" + "=" * 70)
    print(f"STEP 10: SCALE SCORES BY {params['group_col'].upper()}")
    print("=" * 70)

    scales = list(scored['scores'].columns)
    analysis_df = scored['scores'].join(df[[params['group_col']]])
    anova_df = stats.run_anova_multi(analysis_df, scales, params['group_col'])
    stats.print_anova_results(anova_df)
    output.save_csv(anova_df, output_dir, TEST_NAME, 'group-anova')

    group_means = stats.calculate_group_means(analysis_df, scales, params['group_col'])
    output.save_csv(group_means, output_dir, TEST_NAME, 'group-means', index=True)

    # Post-hoc comparisons for scales with a significant group effect
    tukey_frames = []
    for scale in anova_df.loc[anova_df['significant'], 'variable']:
        result = stats.run_tukey_hsd(analysis_df, scale, params['group_col'])
        result.insert(0, 'variable', scale)
        tukey_frames.append(result)

    tukey = pd.concat(tukey_frames, ignore_index=True) if tukey_frames else pd.DataFrame()
    if len(tukey):
        output.save_csv(tukey, output_dir, TEST_NAME, 'tukey')

    # Step 11: Report
    report = generate_report(
        descriptives, dropped, factorability, kaiser_factors, parallel,
        efa_results, scored, anova_df, params
    )
    output.save_report(report, output_dir, TEST_NAME)

    print("\n" + "=" * 70)
    print("ANALYSIS COMPLETE")
    print("=" * 70)
    output.print_summary(output_dir)

    return {
        'df': df,
        'descriptives': descriptives,
        'dropped_items': dropped,
        'correlations': corr,
        'factorability': factorability,
        'parallel': parallel,
        'efa': efa_results,
        'factor_scores': factor_scores,
        'scoring': scored,
        'anova': anova_df,
        'tukey': tukey,
        'output_dir': output_dir,
    }


def generate_report(descriptives, dropped, factorability, kaiser_factors, parallel,
                    efa_results, scored, anova_df, params):
    """Generate text report summarizing analysis."""
    lines = [
        "=" * 70,
        "PERSONALITY QUESTIONNAIRE REPORT",
        "=" * 70,
        "",
        "CONFIGURATION",
        "-" * 50,
        f"Data file: {params['data_file'] or 'simulated'}",
        f"Items analyzed: {len(descriptives)}",
        f"Zero-variance items dropped: {', '.join(dropped) if dropped else 'none'}",
        f"Rotation: {params['rotation']}",
        "",
        "FACTORABILITY",
        "-" * 50,
        f"Bartlett's test: p={factorability['bartlett_p_value']:.2e} "
        f"({'PASS' if factorability['bartlett_pass'] else 'FAIL'})",
        f"KMO: {factorability['kmo_overall']:.3f} ({factorability['kmo_label']})",
        "",
        "NUMBER OF FACTORS",
        "-" * 50,
        f"Kaiser criterion: {kaiser_factors}",
        f"Parallel analysis: {parallel['n_factors']}",
        f"Extracted: {efa_results['n_factors']}",
        "",
        "FACTOR LOADINGS",
        "-" * 50,
    ]

    for factor, loaders in efa.interpret_factors(efa_results['loadings']).items():
        if loaders:
            lines.append(f"\n{factor}:")
            for var, loading in loaders:
                sign = "+" if loading > 0 else "-"
                lines.append(f"  {sign} {var}: {loading:.2f}")

    lines.extend([
        "",
        f"Total variance explained: "
        f"{efa_results['variance'].loc['Cumulative_Var'].iloc[-1]*100:.1f}%",
        "",
        "SCALE RELIABILITY",
        "-" * 50,
    ])

    for scale, row in scored['alpha'].iterrows():
        lines.append(f"{scale}: alpha={row['raw_alpha']:.3f} ({row['label']}), "
                     f"average r={row['average_r']:.3f}")

    lines.extend([
        "",
        f"GROUP DIFFERENCES (by {params['group_col']})",
        "-" * 50,
    ])

    for _, row in anova_df.iterrows():
        sig = "SIGNIFICANT" if row['significant'] else "not significant"
        lines.append(f"{row['variable']}: F={row['f_statistic']:.2f}, p={row['p_value']:.2e}, "
                     f"eta^2={row['eta_squared']:.3f} ({sig})")

    lines.extend(["", "=" * 70])
    return "\n".join(lines)


# =============================================================================
# ENTRY POINT
# =============================================================================
if __name__ == '__main__':
    params = {**DEFAULTS}
    results = run_analysis(params)
