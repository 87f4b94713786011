"""Shared fixtures for the test suite."""

import sys
from pathlib import Path

import pytest
import numpy as np
import pandas as pd

# Analysis scripts live outside the installed package
sys.path.insert(0, str(Path(__file__).parent.parent))

from psych_core import config, data, reshape
import matplotlib.pyplot as plt


@pytest.fixture(scope="session")
def bfi():
    """Simulated Big Five responses with a clean five-factor structure."""
    return data.simulate_bfi(n=800, seed=1, missing_rate=0.0)


@pytest.fixture(scope="session")
def bfi_items(bfi):
    return bfi[config.BFI_ITEMS]


@pytest.fixture
def rm_wide():
    return data.simulate_repeated_measures(n_per_group=10, seed=3)


@pytest.fixture
def rm_long(rm_wide):
    long_df = reshape.to_long(
        rm_wide,
        id_cols=['id', 'treatment', 'gender'],
        names_to=['phase', 'hour'],
        values_to='value',
        names_sep='_',
    )
    long_df['phase'] = pd.Categorical(long_df['phase'], categories=['pre', 'post', 'fup'])
    return long_df


@pytest.fixture
def groups_df():
    """Three groups with clearly different means."""
    rng = np.random.default_rng(7)
    return pd.DataFrame({
        'subject': range(60),
        'group': np.repeat(['a', 'b', 'c'], 20),
        'score': np.concatenate([
            rng.normal(0, 1, 20),
            rng.normal(1.5, 1, 20),
            rng.normal(3, 1, 20),
        ]),
    })


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close('all')
