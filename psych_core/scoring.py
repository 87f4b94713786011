"""
Item Scoring Module
===================

Turn item responses into scale scores using scoring keys, with
reliability (Cronbach's alpha) and item-total statistics per scale.

Keys map a scale name to its items; a leading '-' marks a reverse-keyed
item, e.g. {'agree': ['-A1', 'A2', 'A3']}.
"""

import pandas as pd
import numpy as np
import pingouin as pg

from . import config
from .data import require_columns, reverse_items
from .errors import DataValidationError

IMPUTE_METHODS = ('none', 'median', 'mean')


def make_keys(keys: dict[str, list[str]]) -> dict[str, dict]:
    """
    Parse signed scoring keys.

    Parameters:
        keys: Mapping of scale name to item names ('-' prefix = reversed)

    Returns:
        Mapping of scale name to {'items': [...], 'reversed': [...]}
    """
    parsed = {}
    for scale, keyed_items in keys.items():
        if not keyed_items:
            raise DataValidationError(f"Scale '{scale}' has no items")
        items = [k.lstrip('-') for k in keyed_items]
        reversed_items = [k.lstrip('-') for k in keyed_items if k.startswith('-')]
        parsed[scale] = {'items': items, 'reversed': reversed_items}
    return parsed


def cronbach_alpha(items_df: pd.DataFrame) -> dict:
    """
    Internal consistency of a set of (already keyed) items.

    Uses complete cases only. raw_alpha comes from the item covariances,
    std_alpha from the same estimator applied to z-scored items.

    Returns:
        Dictionary with raw_alpha, std_alpha, average_r, n_items and n_obs
    """
    complete = items_df.dropna()
    k = items_df.shape[1]
    result = {
        'raw_alpha': np.nan,
        'std_alpha': np.nan,
        'average_r': np.nan,
        'n_items': k,
        'n_obs': len(complete),
    }
    if k < 2 or len(complete) < 2:
        return result

    if complete.sum(axis=1).var() > 0:
        result['raw_alpha'] = pg.cronbach_alpha(data=complete, nan_policy='listwise')[0]

    sd = complete.std()
    if (sd == 0).any():
        return result

    corr = complete.corr().values
    average_r = corr[~np.eye(k, dtype=bool)].mean()
    result['average_r'] = average_r

    # Standardized total has zero variance when 1 + (k-1)*average_r == 0
    if not np.isclose(1 + (k - 1) * average_r, 0):
        z_scores = (complete - complete.mean()) / sd
        result['std_alpha'] = pg.cronbach_alpha(data=z_scores, nan_policy='listwise')[0]
    return result


def item_total_correlations(items_df: pd.DataFrame) -> pd.Series:
    """Correlation of each item with the sum of the remaining items."""
    complete = items_df.dropna()
    total = complete.sum(axis=1)
    r_drop = {}
    for item in complete.columns:
        rest = total - complete[item]
        r_drop[item] = complete[item].corr(rest)
    return pd.Series(r_drop, name='r_drop')


def score_items(
    df: pd.DataFrame,
    keys: dict[str, list[str]] = None,
    min_value: float = None,
    max_value: float = None,
    impute: str = 'none',
    totals: bool = False
) -> dict:
    """
    Score scales from item responses.

    Parameters:
        df: Item response DataFrame
        keys: Signed scoring keys. Defaults to config.BFI_KEYS
        min_value: Lowest response option. Defaults to config.ITEM_MIN
        max_value: Highest response option. Defaults to config.ITEM_MAX
        impute: 'none' averages the answered items; 'median' / 'mean' fill
                missing responses with the item statistic first
        totals: Return sums instead of means

    Returns:
        Dictionary with scores, alpha, item_stats, scale_correlations and keys
    """
    if keys is None:
        keys = config.BFI_KEYS
    if impute not in IMPUTE_METHODS:
        raise ValueError(f"impute must be one of {IMPUTE_METHODS}, got '{impute}'")

    parsed = make_keys(keys)
    all_items = sorted({item for spec in parsed.values() for item in spec['items']})
    try:
        require_columns(df, all_items)
    except DataValidationError as e:
        raise DataValidationError(f"Scoring keys reference unknown items. {e}") from e

    scores = {}
    alpha_rows = []
    item_rows = []
    for scale, spec in parsed.items():
        # Reversal is per scale: an item may be keyed differently elsewhere
        scale_items = reverse_items(df[spec['items']], spec['reversed'], min_value, max_value)
        if impute == 'median':
            scale_items = scale_items.fillna(scale_items.median())
        elif impute == 'mean':
            scale_items = scale_items.fillna(scale_items.mean())

        if totals:
            scores[scale] = scale_items.sum(axis=1, min_count=1)
        else:
            scores[scale] = scale_items.mean(axis=1)

        reliability = cronbach_alpha(scale_items)
        reliability['scale'] = scale
        reliability['label'] = (
            config.get_alpha_label(reliability['raw_alpha'])
            if not np.isnan(reliability['raw_alpha']) else ''
        )
        alpha_rows.append(reliability)

        r_drop = item_total_correlations(scale_items) if len(spec['items']) > 1 else pd.Series(dtype=float)
        for item in spec['items']:
            item_rows.append({
                'scale': scale,
                'item': item,
                'reversed': item in spec['reversed'],
                'mean': scale_items[item].mean(),
                'sd': scale_items[item].std(),
                'r_drop': r_drop.get(item, np.nan),
            })

    scores_df = pd.DataFrame(scores, index=df.index)
    alpha_df = pd.DataFrame(alpha_rows).set_index('scale')[
        ['raw_alpha', 'std_alpha', 'average_r', 'n_items', 'n_obs', 'label']
    ]
    item_stats = pd.DataFrame(item_rows)

    print("\n" + "=" * 60)
    print(f"SCALE SCORES ({'sums' if totals else 'means'}, impute={impute})")
    print("=" * 60)
    for scale, row in alpha_df.iterrows():
        n_rev = len(parsed[scale]['reversed'])
        print(f"  {scale}: alpha={row['raw_alpha']:.3f} ({row['label']}), "
              f"{row['n_items']} items, {n_rev} reversed")

    return {
        'scores': scores_df,
        'alpha': alpha_df,
        'item_stats': item_stats,
        'scale_correlations': scores_df.corr(),
        'keys': parsed,
    }
