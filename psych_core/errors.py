"""
Exception Types
===============

Errors raised by the analysis modules. All derive from PsychAnalysisError
so scripts can catch the whole family in one place.
"""


class PsychAnalysisError(Exception):
    """Base class for analysis errors."""


class DataValidationError(PsychAnalysisError):
    """Input table is missing columns, has wrong types, or too little data."""


class ZeroVarianceError(PsychAnalysisError):
    """One or more items have no variance and cannot be correlated."""

    def __init__(self, items: list[str], message: str = None):
        self.items = list(items)
        if message is None:
            message = (
                f"Zero-variance items cannot be analyzed: {', '.join(self.items)}. "
                "Remove them with data.drop_zero_variance_items()."
            )
        super().__init__(message)


class DesignError(PsychAnalysisError):
    """ANOVA design cannot be fitted with the available backends."""
