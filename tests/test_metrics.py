"""Tests for distance metrics."""

import numpy as np
import pytest
import torch

from lmnn_constraints.constraints import (
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


@pytest.fixture
def points():
    """Two small point sets."""
    x = torch.tensor([[0.0, 0.0], [3.0, 4.0]])
    y = torch.tensor([[0.0, 0.0], [1.0, 1.0], [3.0, 0.0]])
    return x, y


class TestBuiltinMetrics:
    """Test built-in pairwise metrics."""

    def test_squared_euclidean(self, points):
        x, y = points
        distances = SquaredEuclideanDistance().pairwise(x, y)

        assert distances.shape == (2, 3)
        expected = torch.tensor([[0.0, 2.0, 9.0], [25.0, 13.0, 16.0]])
        assert torch.allclose(distances, expected)

    def test_euclidean(self, points):
        x, y = points
        distances = EuclideanDistance().pairwise(x, y)

        assert distances[1, 0].item() == pytest.approx(5.0)
        assert distances[0, 2].item() == pytest.approx(3.0)

    def test_manhattan(self, points):
        x, y = points
        distances = ManhattanDistance().pairwise(x, y)

        assert distances.tolist() == [[0.0, 2.0, 3.0], [7.0, 5.0, 4.0]]

    def test_chebyshev(self, points):
        x, y = points
        distances = ChebyshevDistance().pairwise(x, y)

        assert distances.tolist() == [[0.0, 1.0, 3.0], [4.0, 3.0, 4.0]]

    def test_cosine(self):
        x = torch.tensor([[1.0, 0.0], [0.0, 2.0]])
        y = torch.tensor([[2.0, 0.0], [0.0, 1.0], [-1.0, 0.0]])
        distances = CosineDistance().pairwise(x, y)

        expected = torch.tensor([[0.0, 1.0, 2.0], [1.0, 0.0, 1.0]])
        assert torch.allclose(distances, expected, atol=1e-6)

    def test_cosine_non_negative(self):
        """Test rounding never produces negative cosine distances."""
        torch.manual_seed(0)
        x = torch.randn(20, 8)
        distances = CosineDistance().pairwise(x, x)

        assert (distances >= 0).all()

    @pytest.mark.parametrize(
        "metric",
        [
            SquaredEuclideanDistance(),
            EuclideanDistance(),
            ManhattanDistance(),
            ChebyshevDistance(),
            CosineDistance(),
        ],
    )
    def test_symmetric(self, metric):
        """Test pairwise distances are symmetric."""
        torch.manual_seed(1)
        x = torch.randn(10, 3, dtype=torch.float64)
        distances = metric.pairwise(x, x)

        assert torch.allclose(distances, distances.T)
        assert (distances >= 0).all()

    def test_evaluate_single_pair(self):
        """Test scalar evaluation matches pairwise."""
        a = torch.tensor([1.0, 2.0])
        b = torch.tensor([4.0, 6.0])

        assert SquaredEuclideanDistance().evaluate(a, b) == pytest.approx(25.0)
        assert EuclideanDistance().evaluate(a, b) == pytest.approx(5.0)


class TestCallableMetric:
    """Test wrapping plain functions as metrics."""

    def test_pairwise_uses_function(self, points):
        x, y = points

        def l1(a, b):
            return float(np.abs(a - b).sum())

        metric = CallableMetric(l1)
        distances = metric.pairwise(x, y)

        assert metric.name == "l1"
        assert distances.dtype == x.dtype
        assert torch.allclose(distances, ManhattanDistance().pairwise(x, y))

    def test_evaluate(self):
        metric = CallableMetric(lambda a, b: float(np.max(np.abs(a - b))), name="max")

        assert metric.evaluate(torch.tensor([0.0, 0.0]), torch.tensor([1.0, -3.0])) == 3.0
        assert repr(metric) == "CallableMetric(name='max')"

    def test_not_callable(self):
        with pytest.raises(TypeError, match="func must be callable"):
            CallableMetric(42)


class TestGetMetric:
    """Test metric resolution."""

    def test_default(self):
        assert isinstance(get_metric(), SquaredEuclideanDistance)

    @pytest.mark.parametrize("name", [m.value for m in MetricName])
    def test_by_name(self, name):
        metric = get_metric(name)

        assert isinstance(metric, DistanceMetric)
        assert metric.name == name

    def test_by_enum(self):
        assert isinstance(get_metric(MetricName.MANHATTAN), ManhattanDistance)

    def test_instance_passthrough(self):
        metric = CosineDistance()
        assert get_metric(metric) is metric

    def test_callable_wrapped(self):
        metric = get_metric(lambda a, b: 0.0)
        assert isinstance(metric, CallableMetric)

    def test_unknown_name(self):
        with pytest.raises(ValueError, match="Unknown metric: hamming"):
            get_metric("hamming")

    def test_invalid_type(self):
        with pytest.raises(TypeError, match="metric must be"):
            get_metric(3.5)
