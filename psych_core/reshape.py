"""
Data Reshaping Module
=====================

Move between wide layouts (one row per subject, one column per measured
cell) and tidy long layouts (one row per observation).
"""

import pandas as pd

from .data import require_columns
from .errors import DataValidationError


def to_long(
    df: pd.DataFrame,
    id_cols: list[str],
    value_cols: list[str] = None,
    names_to='variable',
    values_to: str = 'value',
    names_sep: str = None
) -> pd.DataFrame:
    """
    Stack measurement columns into rows.

    Parameters:
        df: Wide DataFrame
        id_cols: Columns identifying each row (kept as-is)
        value_cols: Columns to stack. Defaults to every non-id column
        names_to: Name of the key column, or a list of names when
                  splitting column names with names_sep
        values_to: Name of the value column
        names_sep: Separator used to split column names into several keys

    Returns:
        Long DataFrame
    """
    require_columns(df, id_cols)
    if value_cols is None:
        value_cols = [c for c in df.columns if c not in id_cols]
    require_columns(df, value_cols)

    key_names = [names_to] if isinstance(names_to, str) else list(names_to)
    if len(key_names) > 1 and names_sep is None:
        raise DataValidationError("names_sep is required when names_to has several columns")

    long_df = df.melt(
        id_vars=id_cols,
        value_vars=value_cols,
        var_name='__key__',
        value_name=values_to,
    )

    if names_sep is None:
        long_df = long_df.rename(columns={'__key__': key_names[0]})
    else:
        parts = long_df['__key__'].astype(str).str.split(names_sep, expand=True)
        if parts.shape[1] != len(key_names) or parts.isna().any().any():
            raise DataValidationError(
                f"Column names split on '{names_sep}' do not give {len(key_names)} parts "
                f"for {key_names}"
            )
        parts.columns = key_names
        long_df = pd.concat([long_df.drop(columns='__key__'), parts], axis=1)
        long_df = long_df[list(id_cols) + key_names + [values_to]]

    print(f"Reshaped wide ({len(df):,} x {len(value_cols)}) -> long ({len(long_df):,} rows)")
    return long_df


def is_tidy_long(df: pd.DataFrame, id_cols: list[str], key_cols: list[str]) -> bool:
    """True when every id/key combination occurs exactly once."""
    require_columns(df, list(id_cols) + list(key_cols))
    return not df.duplicated(subset=list(id_cols) + list(key_cols)).any()


def to_wide(
    df: pd.DataFrame,
    id_cols: list[str],
    names_from,
    values_from: str,
    names_sep: str = '_'
) -> pd.DataFrame:
    """
    Spread a key column (or several) into separate measurement columns.

    Parameters:
        df: Long DataFrame
        id_cols: Columns identifying each output row
        names_from: Key column, or list of key columns joined with names_sep
        values_from: Column holding the values
        names_sep: Separator for joining several key columns

    Returns:
        Wide DataFrame with flat column names
    """
    key_cols = [names_from] if isinstance(names_from, str) else list(names_from)
    require_columns(df, list(id_cols) + key_cols + [values_from])

    if not is_tidy_long(df, id_cols, key_cols):
        dupes = df[df.duplicated(subset=list(id_cols) + key_cols, keep=False)]
        raise DataValidationError(
            f"{len(dupes)} rows share the same {list(id_cols) + key_cols} combination; "
            "aggregate them before reshaping"
        )

    df = df.copy()
    if len(key_cols) == 1:
        key = key_cols[0]
    else:
        key = '__key__'
        df[key] = df[key_cols].astype(str).agg(names_sep.join, axis=1)

    wide = df.pivot(index=list(id_cols), columns=key, values=values_from)
    wide.columns = [str(c) for c in wide.columns]
    wide = wide.reset_index()

    print(f"Reshaped long ({len(df):,} rows) -> wide ({len(wide):,} x {wide.shape[1]})")
    return wide
