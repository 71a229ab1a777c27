"""
Named failure conditions raised on caller contract violations.

All exceptions subclass ``ValueError`` so callers that already guard
against bad inputs with ``except ValueError`` keep working.
"""


class HeartFailureMLError(ValueError):
    """Base class for input-validation errors raised by this package."""


class InvalidDatasetError(HeartFailureMLError):
    """Dataset is empty, malformed, or its records do not share one key set."""


class InvalidLabelDomainError(HeartFailureMLError):
    """Label field is missing or is not two-valued."""


class EmptyStratumError(HeartFailureMLError):
    """A label group has no rows in one of the split partitions."""


class SingleClassError(HeartFailureMLError):
    """True labels contain only one class, so ROC/AUC is undefined."""


class LengthMismatchError(HeartFailureMLError):
    """Parallel sequences that must be index-aligned differ in length."""
