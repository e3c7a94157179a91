"""
LMNN Constraints - Training constraints for large margin nearest neighbor learning.

This package computes the distance based constraints consumed by a
margin-based metric learning loop:

- Target neighbors: nearest same-labeled points
- Impostors: nearest differently-labeled points, optionally with distances
- Triplets: (anchor, target neighbor, impostor) training constraints
- Batching: full dataset, contiguous ranges, or explicit point subsets
"""

__version__ = "1.0.0"

from lmnn_constraints.DEFAULT_CONSTS import (  # noqa: E402
    ConstraintKeys,
    DEFAULT_CONSTRAINT_KEYS,
)
from lmnn_constraints.errors import (  # noqa: E402
    ConstraintError,
    DegenerateLabelingError,
    DimensionMismatchError,
    InsufficientNeighborsError,
)
from lmnn_constraints.constraints import (  # noqa: E402
    Constraints,
    ConstraintsConfig,
    NeighborSearch,
    generate_constraints,
)

__all__ = [
    "ConstraintKeys",
    "DEFAULT_CONSTRAINT_KEYS",
    "ConstraintError",
    "DegenerateLabelingError",
    "DimensionMismatchError",
    "InsufficientNeighborsError",
    "Constraints",
    "ConstraintsConfig",
    "NeighborSearch",
    "generate_constraints",
]
