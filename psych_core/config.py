"""
Global Configuration for Psychometric Analysis Framework
========================================================

Central location for default parameters used across all analysis scripts.
Override these in individual analysis scripts as needed.
"""

# =============================================================================
# DATA CONFIGURATION
# =============================================================================
# None = analysis scripts simulate their own data
DEFAULT_DATA_FILE = None

# Big Five Inventory: 5 scales x 5 items, 6-point Likert responses
BFI_ITEMS = [
    'A1', 'A2', 'A3', 'A4', 'A5',   # Agreeableness
    'C1', 'C2', 'C3', 'C4', 'C5',   # Conscientiousness
    'E1', 'E2', 'E3', 'E4', 'E5',   # Extraversion
    'N1', 'N2', 'N3', 'N4', 'N5',   # Neuroticism
    'O1', 'O2', 'O3', 'O4', 'O5',   # Openness
]

# Leading '-' marks a reverse-keyed item
BFI_KEYS = {
    'agree': ['-A1', 'A2', 'A3', 'A4', 'A5'],
    'conscientious': ['C1', 'C2', 'C3', '-C4', '-C5'],
    'extraversion': ['-E1', '-E2', 'E3', 'E4', 'E5'],
    'neuroticism': ['N1', 'N2', 'N3', 'N4', 'N5'],
    'openness': ['O1', '-O2', 'O3', 'O4', '-O5'],
}

BFI_DEMOGRAPHICS = ['gender', 'education', 'age']

ITEM_MIN = 1
ITEM_MAX = 6

# =============================================================================
# EFA CONFIGURATION
# =============================================================================
DEFAULT_FA_METHOD = 'minres'
DEFAULT_ROTATION = 'oblimin'
LOADING_THRESHOLD = 0.3    # Loadings below this are hidden in reports/diagrams
LOW_COMMUNALITY = 0.2

# Parallel analysis
PARALLEL_ITERATIONS = 20
PARALLEL_QUANTILE = 0.95
RANDOM_SEED = 42

# =============================================================================
# TEST CONFIGURATION
# =============================================================================
ALPHA_LEVEL = 0.05
DEFAULT_P_ADJUST = 'holm'
DEFAULT_CORR_METHOD = 'pearson'
TRIM_PROPORTION = 0.1

# =============================================================================
# OUTPUT CONFIGURATION
# =============================================================================
DEFAULT_OUTPUT_BASE = 'outputs'
DEFAULT_DPI = 150

# =============================================================================
# INTERPRETATION LABELS
# =============================================================================
KMO_THRESHOLDS = {
    0.9: "Marvelous",
    0.8: "Meritorious",
    0.7: "Middling",
    0.6: "Mediocre",
    0.5: "Miserable",
    0.0: "Unacceptable",
}

ALPHA_THRESHOLDS = {
    0.9: "Excellent",
    0.8: "Good",
    0.7: "Acceptable",
    0.6: "Questionable",
    0.5: "Poor",
    0.0: "Unacceptable",
}

# Cohen's benchmarks for eta squared
EFFECT_THRESHOLDS = {
    0.14: "Large",
    0.06: "Medium",
    0.01: "Small",
    0.0: "Negligible",
}


def _label_for(value: float, thresholds: dict, fallback: str) -> str:
    for threshold, label in sorted(thresholds.items(), reverse=True):
        if value >= threshold:
            return label
    return fallback


def get_kmo_label(kmo_value: float) -> str:
    """Return human-readable KMO interpretation."""
    return _label_for(kmo_value, KMO_THRESHOLDS, "Unacceptable")


def get_alpha_label(alpha_value: float) -> str:
    """Return human-readable reliability interpretation."""
    return _label_for(alpha_value, ALPHA_THRESHOLDS, "Unacceptable")


def get_effect_label(eta_squared: float) -> str:
    """Return human-readable effect size interpretation."""
    return _label_for(eta_squared, EFFECT_THRESHOLDS, "Negligible")


def get_sig_marker(p_value: float) -> str:
    """Return significance stars for a p-value."""
    if p_value < 0.001:
        return "***"
    elif p_value < 0.01:
        return "**"
    elif p_value < 0.05:
        return "*"
    return ""
