"""Distance metrics used by the neighbor search.

Every metric exposes a scalar ``evaluate(a, b)`` and a vectorized
``pairwise(x, y)``. Calculators only ever talk to ``pairwise`` so a metric
can be swapped without touching constraint logic.
"""

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Callable, Union

import numpy as np
import torch
from scipy.spatial.distance import cdist

LOGGER = logging.getLogger(__name__)


class MetricName(str, Enum):
    """Names of the built-in distance metrics."""

    SQUARED_EUCLIDEAN = "squared_euclidean"
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    CHEBYSHEV = "chebyshev"
    COSINE = "cosine"


class DistanceMetric(ABC):
    """Base class for pairwise distance evaluators.

    Implementations must be non-negative and symmetric.
    """

    name = "custom"

    @abstractmethod
    def pairwise(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        """
        Compute distances between every row of ``x`` and every row of ``y``.

        Args:
            x: Points of shape [n_x, dim]
            y: Points of shape [n_y, dim]

        Returns:
            Distance matrix of shape [n_x, n_y]
        """
        pass

    def evaluate(self, a: torch.Tensor, b: torch.Tensor) -> float:
        """Distance between two single points."""
        return self.pairwise(a.reshape(1, -1), b.reshape(1, -1))[0, 0].item()

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class _LpMetric(DistanceMetric):
    """Minkowski distance through ``torch.cdist``."""

    p = 2.0

    def pairwise(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        # The matmul path of cdist is not exact, equal distances must compare equal
        return torch.cdist(x, y, p=self.p, compute_mode="donot_use_mm_for_euclid_dist")


class SquaredEuclideanDistance(_LpMetric):
    """Squared L2 distance, the default for target neighbor and impostor search."""

    name = MetricName.SQUARED_EUCLIDEAN.value

    def pairwise(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        return super().pairwise(x, y).pow(2)


class EuclideanDistance(_LpMetric):
    """L2 distance."""

    name = MetricName.EUCLIDEAN.value


class ManhattanDistance(_LpMetric):
    """L1 distance."""

    name = MetricName.MANHATTAN.value
    p = 1.0


class ChebyshevDistance(_LpMetric):
    """L-infinity distance."""

    name = MetricName.CHEBYSHEV.value
    p = float("inf")


class CosineDistance(DistanceMetric):
    """Cosine distance: 1 - cosine similarity, clamped to be non-negative."""

    name = MetricName.COSINE.value

    def __init__(self, eps: float = 1e-12):
        self.eps = eps

    def pairwise(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        x_norm = x / x.norm(dim=1, keepdim=True).clamp_min(self.eps)
        y_norm = y / y.norm(dim=1, keepdim=True).clamp_min(self.eps)
        similarity = torch.mm(x_norm, y_norm.T)
        return (1.0 - similarity).clamp_min(0.0)


class CallableMetric(DistanceMetric):
    """Wrap a plain ``f(a, b) -> float`` as a metric.

    Pairwise evaluation goes through ``scipy.spatial.distance.cdist``, which
    calls ``f`` on every pair of numpy rows.

    Args:
        func: Symmetric, non-negative distance function on 1D arrays
        name: Optional name used in logs
    """

    def __init__(self, func: Callable[[np.ndarray, np.ndarray], float], name: str = None):
        if not callable(func):
            raise TypeError(f"func must be callable, got {type(func)}")
        self.func = func
        self.name = name or getattr(func, "__name__", "custom")

    def pairwise(self, x: torch.Tensor, y: torch.Tensor) -> torch.Tensor:
        x_np = x.detach().cpu().numpy()
        y_np = y.detach().cpu().numpy()
        distances = cdist(x_np, y_np, metric=self.func)
        return torch.as_tensor(distances, dtype=x.dtype, device=x.device)

    def evaluate(self, a: torch.Tensor, b: torch.Tensor) -> float:
        return float(self.func(a.detach().cpu().numpy(), b.detach().cpu().numpy()))

    def __repr__(self) -> str:
        return f"CallableMetric(name={self.name!r})"


_BUILTIN_METRICS = {
    MetricName.SQUARED_EUCLIDEAN: SquaredEuclideanDistance,
    MetricName.EUCLIDEAN: EuclideanDistance,
    MetricName.MANHATTAN: ManhattanDistance,
    MetricName.CHEBYSHEV: ChebyshevDistance,
    MetricName.COSINE: CosineDistance,
}


def get_metric(metric: Union[str, MetricName, DistanceMetric, Callable, None] = None) -> DistanceMetric:
    """
    Resolve a metric name, instance or callable to a DistanceMetric instance.

    Args:
        metric: Metric name, MetricName, DistanceMetric instance, plain
            callable ``f(a, b)``, or None for squared Euclidean

    Returns:
        DistanceMetric instance
    """
    if metric is None:
        return SquaredEuclideanDistance()
    if isinstance(metric, DistanceMetric):
        return metric
    if isinstance(metric, str):
        try:
            metric_name = MetricName(metric)
        except ValueError:
            valid = ", ".join(m.value for m in MetricName)
            raise ValueError(f"Unknown metric: {metric}. Choose one of: {valid}") from None
        return _BUILTIN_METRICS[metric_name]()
    if callable(metric):
        LOGGER.debug(f"Wrapping callable {metric!r} in CallableMetric")
        return CallableMetric(metric)
    raise TypeError(f"metric must be a str, DistanceMetric or callable, got {type(metric)}")
