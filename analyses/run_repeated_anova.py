#!/usr/bin/env python3
"""
Repeated-Measures ANOVA Script
==============================

Reshapes a wide repeated-measures table into tidy long format, fits a
mixed ANOVA (treatment x phase) and a within-subject ANOVA (phase x hour),
then follows up with estimated marginal means and pairwise contrasts.

Parameters:
    data_file     - Path to wide CSV (None = simulate)
    n_per_group   - Subjects per treatment group when simulating
    id_cols       - Columns identifying each subject
    names_sep     - Separator between phase and hour in column names
    phases        - Phase levels in display order
    dv            - Name of the dependent variable in long format
    between       - Between-subject factor for the mixed ANOVA
    p_adjust      - p-value adjustment for contrasts
    output_base   - Base output directory

Outputs:
    - Long-format data (CSV)
    - ANOVA tables (CSV)
    - Marginal means and contrasts (CSV)
    - Marginal means plot (PNG)
    - Text report (TXT)
"""

import sys
from pathlib import Path

# Hybrid import: works both when pip-installed and when run directly
try:
    from psych_core import data, reshape, anova, viz, output, config
except ImportError:
    sys.path.insert(0, str(Path(__file__).parent.parent))
    from psych_core import data, reshape, anova, viz, output, config

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
    'n_per_group': 8,
    'id_cols': ['id', 'treatment', 'gender'],
    'names_sep': '_',
    'phases': ['pre', 'post', 'fup'],
    'dv': 'value',
    'between': 'treatment',
    'p_adjust': config.DEFAULT_P_ADJUST,
    'output_base': config.DEFAULT_OUTPUT_BASE,
}

TEST_NAME = 'repeated-anova'


# =============================================================================
# MAIN ANALYSIS
# =============================================================================
def run_analysis(params: dict) -> dict:
    """Run the repeated-measures ANOVA pipeline."""
    print("=" * 70)
    print("REPEATED-MEASURES ANOVA")
    print("=" * 70)

    output_dir = output.get_output_dir(TEST_NAME, params['output_base'])
    viz.setup_style()
    dv = params['dv']
    between = params['between']
    id_col = params['id_cols'][0]

    # Step 1: Load wide data
    print("\n" + "=" * 70)
    print("STEP 1: LOADING DATA")
    print("=" * 70)

    if params['data_file']:
        wide = data.load_csv(params['data_file'])
    else:
        wide = data.simulate_repeated_measures(params['n_per_group'], phases=tuple(params['phases']),
                                               sep=params['names_sep'])

    # Step 2: Wide -> long
    print("\n" + "=" * 70)
    print("STEP 2: RESHAPING TO LONG FORMAT")
    print("=" * 70)

    long_df = reshape.to_long(
        wide,
        id_cols=params['id_cols'],
        names_to=['phase', 'hour'],
        values_to=dv,
        names_sep=params['names_sep'],
    )
    long_df['phase'] = pd.Categorical(long_df['phase'], categories=params['phases'], ordered=True)
    print(long_df.head(10).to_string(index=False))
    output.save_csv(long_df, output_dir, TEST_NAME, 'long-data')

    # Step 3: Mixed ANOVA
    print("\n" + "=" * 70)
    print(f"STEP 3: MIXED ANOVA ({between} x phase)")
    print("=" * 70)

    mixed = anova.aov_ez(long_df, dv, id_col, between=between, within='phase')
    anova.print_anova_table(mixed)
    output.save_csv(mixed, output_dir, TEST_NAME, 'mixed-anova')

    # Step 4: Within-subject ANOVA
    print("\n" + "=" * 70)
    print("STEP 4: WITHIN-SUBJECT ANOVA (phase x hour)")
    print("=" * 70)

    within = anova.aov_ez(long_df, dv, id_col, within=['phase', 'hour'])
    anova.print_anova_table(within)
    output.save_csv(within, output_dir, TEST_NAME, 'within-anova')

    # Step 5: Marginal means and contrasts
    print("\n" + "=" * 70)
    print("STEP 5: MARGINAL MEANS AND CONTRASTS")
    print("=" * 70)

    emm = anova.emmeans(long_df, dv, id_col, specs='phase', by=between)
    print(emm.round(3).to_string(index=False))
    output.save_csv(emm, output_dir, TEST_NAME, 'emmeans')

    phase_contrasts = anova.pairwise_contrasts(
        long_df, dv, id_col, factor='phase', by=between, adjust=params['p_adjust']
    )
    group_contrasts = anova.pairwise_contrasts(
        long_df, dv, id_col, factor=between, by='phase', adjust=params['p_adjust']
    )
    print("\nPhase contrasts within each group:")
    print(phase_contrasts.round(4).to_string(index=False))
    print(f"\n{between} contrasts within each phase:")
    print(group_contrasts.round(4).to_string(index=False))
    output.save_csv(phase_contrasts, output_dir, TEST_NAME, 'phase-contrasts')
    output.save_csv(group_contrasts, output_dir, TEST_NAME, f'{between}-contrasts')

    fig = viz.plot_marginal_means(emm, x='phase', trace=between, ylabel=dv)
    output.save_figure(fig, output_dir, TEST_NAME, 'marginal-means')

    # Step 6: Report
    report = generate_report(mixed, within, emm, phase_contrasts, group_contrasts, params)
    output.save_report(report, output_dir, TEST_NAME)

    print("\n" + "=" * 70)
    print("ANALYSIS COMPLETE")
    print("=" * 70)
    output.print_summary(output_dir)

    return {
        'wide': wide,
        'long': long_df,
        'mixed_anova': mixed,
        'within_anova': within,
        'emmeans': emm,
        'phase_contrasts': phase_contrasts,
        'group_contrasts': group_contrasts,
        'output_dir': output_dir,
    }


def generate_report(mixed, within, emm, phase_contrasts, group_contrasts, params):
    """Generate text report."""
    lines = [
        "=" * 70,
        "REPEATED-MEASURES ANOVA REPORT",
        "=" * 70,
        "",
        "CONFIGURATION",
        "-" * 50,
        f"Data file: {params['data_file'] or 'simulated'}",
        f"Between factor: {params['between']}",
        f"Phases: {', '.join(params['phases'])}",
        f"Contrast p-value adjustment: {params['p_adjust']}",
        "",
    ]

    for title, table in [("MIXED ANOVA", mixed), ("WITHIN-SUBJECT ANOVA", within)]:
        lines.extend([title, "-" * 50])
        for _, row in table.iterrows():
            lines.append(f"{row['effect']}: F({row['df1']:.0f}, {row['df2']:.0f})={row['F']:.2f}, "
                         f"p={row['p_value']:.2e}{row['sig_marker']}, pes={row['pes']:.3f}")
        lines.append("")

    lines.extend([
        "ESTIMATED MARGINAL MEANS",
        "-" * 50,
        emm.round(3).to_string(index=False),
        "",
        "SIGNIFICANT CONTRASTS",
        "-" * 50,
    ])

    for contrasts, by in [(phase_contrasts, params['between']), (group_contrasts, 'phase')]:
        for _, row in contrasts[contrasts['significant']].iterrows():
            lines.append(f"[{by}={row[by]}] {row['contrast']}: estimate={row['estimate']:.2f}, "
                         f"p_adj={row['p_adjusted']:.3g}")

    lines.extend(["", "=" * 70])
    return "\n".join(lines)


# =============================================================================
# ENTRY POINT
# =============================================================================
if __name__ == '__main__':
    params = {**DEFAULTS}
    results = run_analysis(params)
