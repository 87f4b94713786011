"""
Psychometric Analysis Core Library
==================================

Modular framework for questionnaire and experiment analysis: item
descriptives, correlation tests, exploratory factor analysis, scale
scoring, reshaping, and factorial ANOVA with post-hoc contrasts.

Modules:
    config   - Global configuration parameters
    errors   - Exception types
    data     - Data loading, validation, keying, standardization, simulation
    stats    - Descriptives, correlation tests, one-way ANOVA
    efa      - Factor analysis functions
    scoring  - Scale scores and reliability
    reshape  - Wide <-> long reshaping
    anova    - Factorial ANOVA, marginal means, contrasts
    viz      - Visualization utilities
    output   - Output naming and saving
"""

from . import config
from . import errors
from . import data
from . import stats
from . import efa
from . import scoring
from . import reshape
from . import anova
from . import viz
from . import output

__version__ = '1.0.0'

__all__ = [
    'config',
    'errors',
    'data',
    'stats',
    'efa',
    'scoring',
    'reshape',
    'anova',
    'viz',
    'output',
]
