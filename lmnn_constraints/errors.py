"""Errors raised while generating distance based constraints."""

from typing import Any, Optional


class ConstraintError(ValueError):
    """Base class for constraint generation failures."""


class InsufficientNeighborsError(ConstraintError):
    """Raised when k exceeds the candidates available for a queried point.

    Parameters
    ----------
    message : str
        Human readable description
    k : int, optional
        Number of neighbors requested
    available : int, optional
        Number of candidates actually available
    label : Any, optional
        Label value of the class that ran short
    """

    def __init__(
        self,
        message: str,
        k: Optional[int] = None,
        available: Optional[int] = None,
        label: Any = None,
    ):
        super().__init__(message)
        self.k = k
        self.available = available
        self.label = label


class DegenerateLabelingError(InsufficientNeighborsError):
    """Raised when impostors are requested from fewer than two distinct labels."""


class DimensionMismatchError(ConstraintError):
    """Raised when dataset, labels or requested indices do not line up."""
