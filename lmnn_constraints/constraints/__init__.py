"""Distance based training constraints for large margin nearest neighbors.

This module provides the constraint generation core:
- Label partition cache (same-label / different-label index sets)
- Neighbor search over index subsets with a substitutable metric
- Target neighbor and impostor calculation on full data, batches or subsets
- Triplet assembly paired by neighbor rank

Examples
--------
>>> from lmnn_constraints.constraints import Constraints
>>>
>>> constraints = Constraints(k=3)
>>> constraints.precalculate(labels)
>>> targets = constraints.target_neighbors(dataset, labels)
>>> impostors, distances = constraints.impostors(
...     dataset, labels, begin=0, batch_size=256, return_distances=True
... )
>>> triplets = constraints.triplets(dataset, labels)
"""

from .batching import iter_batches, resolve_query_indices
from .config import ConstraintsConfig
from .constraints import Constraints, assemble_triplets, generate_constraints
from .label_partition import LabelPartition, LabelPartitioner
from .metrics import (
    CallableMetric,
    ChebyshevDistance,
    CosineDistance,
    DistanceMetric,
    EuclideanDistance,
    ManhattanDistance,
    MetricName,
    SquaredEuclideanDistance,
    get_metric,
)
from .neighbor_search import NeighborSearch

__all__ = [
    "Constraints",
    "assemble_triplets",
    "generate_constraints",
    "ConstraintsConfig",
    "LabelPartition",
    "LabelPartitioner",
    "NeighborSearch",
    "iter_batches",
    "resolve_query_indices",
    # Metrics
    "DistanceMetric",
    "MetricName",
    "SquaredEuclideanDistance",
    "EuclideanDistance",
    "ManhattanDistance",
    "ChebyshevDistance",
    "CosineDistance",
    "CallableMetric",
    "get_metric",
]
