"""
Data Loading and Preprocessing Module
======================================

Functions for loading, validating, keying and standardizing questionnaire
data, plus simulated datasets for running the analyses without a data file.
"""

import warnings

import pandas as pd
import numpy as np
from pathlib import Path
from sklearn.preprocessing import StandardScaler

from . import config
from .errors import DataValidationError


def load_csv(filepath: str = None) -> pd.DataFrame:
    """
    Load CSV file with basic validation.

    Parameters:
        filepath: Path to CSV file. Defaults to config.DEFAULT_DATA_FILE

    Returns:
        DataFrame with loaded data
    """
    if filepath is None:
        filepath = config.DEFAULT_DATA_FILE
    if filepath is None or not Path(filepath).exists():
        raise FileNotFoundError(f"Data file not found: {filepath}")

    df = pd.read_csv(filepath)
    print(f"Loaded {len(df):,} records with {len(df.columns)} columns from {filepath}")
    return df


def require_columns(df: pd.DataFrame, columns: list[str]) -> None:
    """Raise DataValidationError if any of columns is absent from df."""
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise DataValidationError(f"Missing required columns: {missing}")


def select_items(
    df: pd.DataFrame,
    items: list[str] = None,
    prefixes: list[str] = None
) -> pd.DataFrame:
    """
    Select numeric item columns.

    Parameters:
        df: Input DataFrame
        items: Explicit item names. Defaults to config.BFI_ITEMS
        prefixes: Select every column starting with one of these instead

    Returns:
        DataFrame holding only the item columns
    """
    if prefixes is not None:
        items = [c for c in df.columns if any(str(c).startswith(p) for p in prefixes)]
        if not items:
            raise DataValidationError(f"No columns match prefixes {prefixes}")
    elif items is None:
        items = config.BFI_ITEMS

    require_columns(df, items)

    non_numeric = [c for c in items if not pd.api.types.is_numeric_dtype(df[c])]
    if non_numeric:
        raise DataValidationError(f"Item columns must be numeric: {non_numeric}")

    return df[list(items)].copy()


def find_zero_variance_items(df: pd.DataFrame, items: list[str] = None) -> list[str]:
    """
    Find items that cannot be correlated because they never vary.

    An item qualifies when its non-missing responses have fewer than two
    distinct values (all missing counts too).
    """
    if items is None:
        items = list(df.columns)

    constant = []
    for item in items:
        values = df[item].dropna()
        if values.nunique() < 2:
            constant.append(item)
    return constant


def drop_zero_variance_items(
    df: pd.DataFrame,
    items: list[str] = None
) -> tuple[pd.DataFrame, list[str]]:
    """
    Remove zero-variance items before correlation or factor analysis.

    Parameters:
        df: Input DataFrame
        items: Columns to check. Defaults to all columns

    Returns:
        Tuple of (DataFrame without the constant items, list of dropped items)
    """
    dropped = find_zero_variance_items(df, items)
    if dropped:
        warnings.warn(
            f"Dropping zero-variance items: {', '.join(dropped)}",
            UserWarning,
            stacklevel=2,
        )
        print(f"Dropped {len(dropped)} zero-variance item(s): {', '.join(dropped)}")
    return df.drop(columns=dropped), dropped


def reverse_items(
    df: pd.DataFrame,
    items: list[str],
    min_value: float = None,
    max_value: float = None
) -> pd.DataFrame:
    """
    Reverse-key items so that high scores mean the same thing on every item.

    Parameters:
        df: Input DataFrame
        items: Items to reflect
        min_value: Lowest response option. Defaults to config.ITEM_MIN
        max_value: Highest response option. Defaults to config.ITEM_MAX

    Returns:
        Copy of df with items replaced by (max + min - x)
    """
    if min_value is None:
        min_value = config.ITEM_MIN
    if max_value is None:
        max_value = config.ITEM_MAX

    require_columns(df, items)
    df = df.copy()
    for item in items:
        df[item] = (max_value + min_value) - df[item]
    return df


def standardize_features(
    df: pd.DataFrame,
    columns: list[str] = None
) -> tuple[np.ndarray, pd.DataFrame, pd.Index, StandardScaler]:
    """
    Z-score normalize selected columns.

    Parameters:
        df: Input DataFrame
        columns: Columns to standardize. Defaults to config.BFI_ITEMS

    Returns:
        Tuple of (scaled array, scaled DataFrame, valid indices, fitted scaler)
    """
    if columns is None:
        columns = config.BFI_ITEMS
    require_columns(df, columns)

    # Get rows with complete data
    data = df[columns].dropna()
    valid_indices = data.index

    print(f"Records with complete data: {len(data):,}")
    if len(data) < 3:
        raise DataValidationError(
            f"Need at least 3 complete records to standardize, got {len(data)}"
        )

    scaler = StandardScaler()
    scaled_array = scaler.fit_transform(data)
    scaled_df = pd.DataFrame(scaled_array, columns=columns, index=valid_indices)

    print("Standardization complete (mean≈0, std≈1 for each variable)")

    return scaled_array, scaled_df, valid_indices, scaler


def _to_likert(latent: np.ndarray, n_points: int) -> np.ndarray:
    # Evenly spaced cut points over +-1.5 SD
    cuts = np.linspace(-1.5, 1.5, n_points - 1)
    return np.digitize(latent, cuts) + 1


def simulate_bfi(
    n: int = 1000,
    seed: int = None,
    loading: float = 0.8,
    missing_rate: float = 0.005
) -> pd.DataFrame:
    """
    Generate a synthetic Big Five item table.

    Each scale's items load on one latent trait; reverse-keyed items (per
    config.BFI_KEYS) load negatively. Respondents with gender 2 score higher
    on agreeableness.

    Parameters:
        n: Number of respondents
        seed: Random seed. Defaults to config.RANDOM_SEED
        loading: Absolute item loading on its trait
        missing_rate: Share of item responses set to missing

    Returns:
        DataFrame with the 25 items plus gender, education and age
    """
    if seed is None:
        seed = config.RANDOM_SEED
    rng = np.random.default_rng(seed)

    gender = rng.integers(1, 3, size=n)
    education = rng.integers(1, 6, size=n).astype(float)
    education[rng.random(n) < 0.08] = np.nan
    age = rng.integers(16, 71, size=n)

    columns = {}
    for scale, keyed in config.BFI_KEYS.items():
        trait = rng.normal(size=n)
        if scale == 'agree':
            trait = trait + 0.4 * (gender == 2)
        for key in keyed:
            sign = -1.0 if key.startswith('-') else 1.0
            noise = rng.normal(size=n) * np.sqrt(1 - loading ** 2)
            latent = sign * loading * trait + noise
            responses = _to_likert(latent, config.ITEM_MAX - config.ITEM_MIN + 1).astype(float)
            responses[rng.random(n) < missing_rate] = np.nan
            columns[key.lstrip('-')] = responses

    df = pd.DataFrame(columns)[config.BFI_ITEMS]
    df['gender'] = gender
    df['education'] = education
    df['age'] = age

    print(f"Simulated {n:,} respondents on {len(config.BFI_ITEMS)} items")
    return df


def simulate_repeated_measures(
    n_per_group: int = 8,
    seed: int = None,
    phases: tuple = ('pre', 'post', 'fup'),
    hours: int = 5,
    sep: str = '_'
) -> pd.DataFrame:
    """
    Generate a wide repeated-measures table.

    One row per subject with between-subject factors `treatment` and `gender`
    and one column per phase x hour cell (e.g. pre_1 ... fup_5). Treated
    groups improve after the pre phase; control stays flat.

    Parameters:
        n_per_group: Subjects per treatment group
        seed: Random seed. Defaults to config.RANDOM_SEED
        phases: Names of the measurement phases
        hours: Measurements per phase
        sep: Separator between phase and hour in the column names

    Returns:
        Wide DataFrame
    """
    if seed is None:
        seed = config.RANDOM_SEED
    rng = np.random.default_rng(seed)

    treatment_gain = {'control': 0.0, 'A': 2.0, 'B': 1.2}
    rows = []
    subject = 1
    for treatment, gain in treatment_gain.items():
        for _ in range(n_per_group):
            row = {
                'id': subject,
                'treatment': treatment,
                'gender': rng.choice(['F', 'M']),
            }
            baseline = 4.0 + rng.normal(scale=1.0)
            for p, phase in enumerate(phases):
                for hour in range(1, hours + 1):
                    value = baseline + (gain * p / max(len(phases) - 1, 1))
                    value += 0.3 * np.sin(hour)
                    value += rng.normal(scale=0.6)
                    row[f"{phase}{sep}{hour}"] = round(value, 2)
            rows.append(row)
            subject += 1

    df = pd.DataFrame(rows)
    print(f"Simulated {len(df)} subjects x {len(phases) * hours} repeated measures")
    return df
