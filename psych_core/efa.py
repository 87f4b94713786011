"""
Exploratory Factor Analysis Module
===================================

Core EFA functions for factorability testing, choosing the number of
factors, factor extraction, and score calculation.
"""

import warnings

import pandas as pd
import numpy as np
from factor_analyzer import FactorAnalyzer
from factor_analyzer.factor_analyzer import calculate_bartlett_sphericity, calculate_kmo

from . import config
from .errors import DataValidationError, ZeroVarianceError


def _as_frame(data, var_names: list[str] = None) -> pd.DataFrame:
    if isinstance(data, pd.DataFrame):
        return data if var_names is None else data[var_names]
    columns = var_names if var_names is not None else [f'V{i+1}' for i in range(data.shape[1])]
    return pd.DataFrame(np.asarray(data), columns=columns)


def _check_zero_variance(data, var_names: list[str] = None) -> None:
    """Raise ZeroVarianceError naming any constant column."""
    frame = _as_frame(data, var_names)
    constant = [col for col in frame.columns if frame[col].dropna().nunique() < 2]
    if constant:
        raise ZeroVarianceError(constant)


def check_factorability(scaled_data: np.ndarray, var_names: list[str]) -> dict:
    """
    Test whether data is suitable for factor analysis.

    Performs:
    - Bartlett's Test of Sphericity: Should be significant (p < 0.05)
    - KMO (Kaiser-Meyer-Olkin): Should be > 0.6, ideally > 0.8

    Parameters:
        scaled_data: Standardized data array (n_samples x n_features)
        var_names: List of variable names

    Returns:
        Dictionary with test results and interpretations
    """
    _check_zero_variance(scaled_data, var_names)

    chi_square, p_value = calculate_bartlett_sphericity(scaled_data)
    kmo_all, kmo_model = calculate_kmo(scaled_data)

    results = {
        'bartlett_chi_square': chi_square,
        'bartlett_p_value': p_value,
        'bartlett_pass': p_value < config.ALPHA_LEVEL,
        'kmo_overall': kmo_model,
        'kmo_label': config.get_kmo_label(kmo_model),
        'kmo_per_variable': dict(zip(var_names, kmo_all)),
    }

    print("\n" + "=" * 60)
    print("FACTORABILITY TESTS")
    print("=" * 60)

    print(f"\nBartlett's Test of Sphericity:")
    print(f"  Chi-square: {chi_square:,.2f}")
    print(f"  p-value: {p_value:.2e}")
    print(f"  Result: {'PASS' if results['bartlett_pass'] else 'FAIL'}")

    print(f"\nKaiser-Meyer-Olkin (KMO) Measure:")
    print(f"  Overall KMO: {kmo_model:.3f} ({results['kmo_label']})")

    print(f"\n  Per-variable KMO:")
    for var, kmo in results['kmo_per_variable'].items():
        print(f"    {var}: {kmo:.3f} ({config.get_kmo_label(kmo)})")

    return results


def determine_num_factors(scaled_data: np.ndarray, var_names: list[str] = None) -> tuple:
    """
    Determine number of factors using Kaiser criterion.

    Kaiser criterion: Retain factors with eigenvalue > 1

    Parameters:
        scaled_data: Standardized data array
        var_names: Optional variable names (for sizing)

    Returns:
        Tuple of (eigenvalues array, suggested number of factors)
    """
    _check_zero_variance(scaled_data, var_names)
    n_vars = scaled_data.shape[1] if var_names is None else len(var_names)

    # Fit with max possible factors to get all eigenvalues
    fa = FactorAnalyzer(n_factors=n_vars, rotation=None)
    fa.fit(scaled_data)
    eigenvalues, _ = fa.get_eigenvalues()

    kaiser_factors = int(sum(eigenvalues > 1))

    print("\n" + "=" * 60)
    print("FACTOR EXTRACTION CRITERIA")
    print("=" * 60)

    print(f"\nEigenvalues:")
    for i, ev in enumerate(eigenvalues, 1):
        marker = " <-- Kaiser cutoff" if i == kaiser_factors and ev > 1 else ""
        print(f"  Factor {i}: {ev:.3f}{marker}")

    print(f"\nKaiser Criterion (eigenvalue > 1): {kaiser_factors} factors")

    total_var = sum(eigenvalues)
    cum_var = np.cumsum(eigenvalues) / total_var * 100
    print(f"\nCumulative variance explained:")
    for i in range(min(kaiser_factors + 1, len(eigenvalues))):
        print(f"  {i+1} factor(s): {cum_var[i]:.1f}%")

    return eigenvalues, kaiser_factors


def parallel_analysis(
    scaled_data: np.ndarray,
    n_iter: int = None,
    quantile: float = None,
    seed: int = None
) -> dict:
    """
    Horn's parallel analysis on correlation-matrix eigenvalues.

    Observed eigenvalues are compared with those of random normal data of
    the same shape; factors are retained while the observed eigenvalue
    exceeds the chosen quantile of the random ones.

    Parameters:
        scaled_data: Data array (n_samples x n_features), no missing values
        n_iter: Number of random datasets. Defaults to config.PARALLEL_ITERATIONS
        quantile: Quantile of random eigenvalues to beat. Defaults to config.PARALLEL_QUANTILE
        seed: Random seed. Defaults to config.RANDOM_SEED

    Returns:
        Dictionary with observed, simulated eigenvalues and n_factors
    """
    if n_iter is None:
        n_iter = config.PARALLEL_ITERATIONS
    if quantile is None:
        quantile = config.PARALLEL_QUANTILE
    if seed is None:
        seed = config.RANDOM_SEED

    data = np.asarray(scaled_data, dtype=float)
    _check_zero_variance(data)
    n_obs, n_vars = data.shape
    rng = np.random.default_rng(seed)

    observed = np.sort(np.linalg.eigvalsh(np.corrcoef(data, rowvar=False)))[::-1]

    random_eigs = np.empty((n_iter, n_vars))
    for i in range(n_iter):
        noise = rng.standard_normal((n_obs, n_vars))
        random_eigs[i] = np.sort(np.linalg.eigvalsh(np.corrcoef(noise, rowvar=False)))[::-1]
    simulated = np.quantile(random_eigs, quantile, axis=0)

    n_factors = 0
    for obs, sim in zip(observed, simulated):
        if obs <= sim:
            break
        n_factors += 1
    n_factors = max(n_factors, 1)

    print("\n" + "=" * 60)
    print(f"PARALLEL ANALYSIS ({n_iter} iterations, {quantile:.0%} quantile)")
    print("=" * 60)
    for i, (obs, sim) in enumerate(zip(observed, simulated), 1):
        marker = " <-- retain" if i <= n_factors else ""
        print(f"  Factor {i}: observed {obs:.3f} vs random {sim:.3f}{marker}")
    print(f"\nParallel analysis suggests {n_factors} factors")

    return {
        'observed': observed,
        'simulated': simulated,
        'n_factors': n_factors,
    }


def run_efa(
    scaled_data: np.ndarray,
    var_names: list[str],
    n_factors: int,
    rotation: str = None,
    method: str = None
) -> dict:
    """
    Run Exploratory Factor Analysis with specified rotation.

    Parameters:
        scaled_data: Standardized data array
        var_names: List of variable names
        n_factors: Number of factors to extract
        rotation: Rotation method. Defaults to config.DEFAULT_ROTATION
        method: Extraction method. Defaults to config.DEFAULT_FA_METHOD

    Returns:
        Dictionary with factor_analyzer, loadings, communalities, uniquenesses,
        variance and factor_correlations
    """
    if rotation is None:
        rotation = config.DEFAULT_ROTATION
    if method is None:
        method = config.DEFAULT_FA_METHOD

    if not 1 <= n_factors <= len(var_names):
        raise DataValidationError(
            f"n_factors must be between 1 and {len(var_names)}, got {n_factors}"
        )
    _check_zero_variance(scaled_data, var_names)

    # A single factor cannot be rotated
    if n_factors == 1:
        rotation = None

    fa = FactorAnalyzer(n_factors=n_factors, rotation=rotation, method=method)
    fa.fit(scaled_data)

    factor_names = [f'Factor_{i+1}' for i in range(n_factors)]
    loadings = pd.DataFrame(fa.loadings_, index=var_names, columns=factor_names)

    communalities = pd.DataFrame(
        fa.get_communalities(),
        index=var_names,
        columns=['Communality']
    )
    uniquenesses = pd.Series(fa.get_uniquenesses(), index=var_names, name='Uniqueness')

    variance = fa.get_factor_variance()
    variance_df = pd.DataFrame(
        variance,
        index=['Variance', 'Proportional_Var', 'Cumulative_Var'],
        columns=factor_names
    )

    phi = getattr(fa, 'phi_', None)
    if phi is None:
        phi = np.eye(n_factors)
    factor_correlations = pd.DataFrame(phi, index=factor_names, columns=factor_names)

    rotation_label = rotation or 'no'
    print("\n" + "=" * 60)
    print(f"FACTOR ANALYSIS ({n_factors} factors, {method}, {rotation_label} rotation)")
    print("=" * 60)

    print("\nFactor Loadings:")
    print("-" * 50)
    print(loadings.round(3).to_string())

    print("\nCommunalities:")
    print("-" * 50)
    for var in var_names:
        comm = communalities.loc[var, 'Communality']
        status = "LOW" if comm < config.LOW_COMMUNALITY else "OK"
        print(f"  {var}: {comm:.3f} [{status}]")

    low = communalities[communalities['Communality'] < config.LOW_COMMUNALITY].index.tolist()
    if low:
        warnings.warn(f"Items with low communality: {', '.join(low)}", UserWarning, stacklevel=2)

    print(f"\nTotal variance explained: {variance[2][-1]*100:.1f}%")

    if n_factors > 1:
        print("\nFactor Correlations:")
        print(factor_correlations.round(2).to_string())

    print("\n" + "-" * 50)
    print(f"FACTOR INTERPRETATION (loadings > {config.LOADING_THRESHOLD})")
    print("-" * 50)

    for factor, loaders in interpret_factors(loadings).items():
        if loaders:
            print(f"\n{factor}:")
            for var, loading in loaders:
                sign = "+" if loading > 0 else "-"
                print(f"  {sign} {var}: {loading:.2f}")

    return {
        'factor_analyzer': fa,
        'loadings': loadings,
        'communalities': communalities,
        'uniquenesses': uniquenesses,
        'variance': variance_df,
        'factor_correlations': factor_correlations,
        'n_factors': n_factors,
        'rotation': rotation,
        'method': method,
    }


def calculate_factor_scores(
    fa: FactorAnalyzer,
    scaled_data: np.ndarray,
    valid_indices: pd.Index = None
) -> pd.DataFrame:
    """
    Calculate factor scores for each observation.

    Parameters:
        fa: Fitted FactorAnalyzer object
        scaled_data: Standardized data array
        valid_indices: Optional index to assign to output DataFrame

    Returns:
        DataFrame with factor scores (n_samples x n_factors)
    """
    scores = fa.transform(scaled_data)
    n_factors = scores.shape[1]

    scores_df = pd.DataFrame(
        scores,
        index=valid_indices,
        columns=[f'Factor_{i+1}' for i in range(n_factors)]
    )

    print("\n" + "=" * 60)
    print("FACTOR SCORES")
    print("=" * 60)
    print(f"Calculated {n_factors} factor scores for {len(scores_df):,} observations")
    print("\nFactor Score Statistics:")
    print(scores_df.describe().round(3).to_string())

    return scores_df


def interpret_factors(
    loadings: pd.DataFrame,
    threshold: float = None
) -> dict[str, list[tuple[str, float]]]:
    """
    Generate factor interpretations based on high loadings.

    Parameters:
        loadings: Factor loadings DataFrame
        threshold: Minimum absolute loading to consider. Defaults to config.LOADING_THRESHOLD

    Returns:
        Dictionary mapping factor names to list of (variable, loading) tuples
    """
    if threshold is None:
        threshold = config.LOADING_THRESHOLD

    interpretations = {}
    for col in loadings.columns:
        high_loaders = loadings[abs(loadings[col]) > threshold][col]
        high_loaders = high_loaders.reindex(high_loaders.abs().sort_values(ascending=False).index)
        interpretations[col] = [(var, loading) for var, loading in high_loaders.items()]

    return interpretations


def sort_loadings(loadings: pd.DataFrame) -> pd.DataFrame:
    """
    Order variables by their primary factor, strongest loadings first.

    Variables are grouped by the factor they load on most (in absolute
    value), factors in column order.
    """
    abs_loadings = loadings.abs()
    primary = abs_loadings.values.argmax(axis=1)
    strength = abs_loadings.values.max(axis=1)
    order = sorted(range(len(loadings)), key=lambda i: (primary[i], -strength[i]))
    return loadings.iloc[order]


def get_factorability_summary(results: dict) -> pd.DataFrame:
    """
    Convert factorability results to a summary DataFrame.

    Parameters:
        results: Output from check_factorability()

    Returns:
        DataFrame with factorability test results
    """
    rows = [
        {'Test': 'Bartlett_Chi_Square', 'Value': results['bartlett_chi_square'], 'Interpretation': ''},
        {'Test': 'Bartlett_p_value', 'Value': results['bartlett_p_value'],
         'Interpretation': 'PASS' if results['bartlett_pass'] else 'FAIL'},
        {'Test': 'KMO_Overall', 'Value': results['kmo_overall'], 'Interpretation': results['kmo_label']},
    ]

    for var, kmo in results['kmo_per_variable'].items():
        rows.append({
            'Test': f'KMO_{var}',
            'Value': kmo,
            'Interpretation': config.get_kmo_label(kmo)
        })

    return pd.DataFrame(rows)
