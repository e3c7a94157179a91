"""
Query selection shared by every constraint calculator.

A query is either the full dataset, a contiguous ``[begin, begin + batch_size)``
range, or an explicit list of point indices. ``resolve_query_indices`` turns
any of these into one index tensor whose order defines the output columns.
"""

from typing import Iterator, Optional, Tuple

import torch

from lmnn_constraints.data_validation import (
    validate_batch_range,
    validate_point_indices_bounds,
)


def resolve_query_indices(
    n_points: int,
    begin: Optional[int] = None,
    batch_size: Optional[int] = None,
    points: Optional[torch.Tensor] = None,
) -> torch.Tensor:
    """
    Resolve a query selection to dataset indices.

    Parameters
    ----------
    n_points : int
        Number of points in the dataset
    begin : int, optional
        First point of a contiguous batch
    batch_size : int, optional
        Number of points in a contiguous batch
    points : torch.Tensor, optional
        Explicit, possibly unordered point indices

    Returns
    -------
    torch.Tensor
        Long tensor of queried indices, in output column order

    Raises
    ------
    ValueError
        If both a range and explicit points are given, or only half a range
    DimensionMismatchError
        If the range or an explicit index falls outside the dataset

    Examples
    --------
    >>> resolve_query_indices(10, begin=4, batch_size=3)
    tensor([4, 5, 6])
    >>> resolve_query_indices(10, points=torch.tensor([7, 2]))
    tensor([7, 2])
    """
    has_range = begin is not None or batch_size is not None

    if points is not None:
        if has_range:
            raise ValueError("Pass either begin/batch_size or points, not both")
        validate_point_indices_bounds(points, n_points)
        return points.to(torch.long)

    if has_range:
        if begin is None or batch_size is None:
            raise ValueError("begin and batch_size must be given together")
        validate_batch_range(begin, batch_size, n_points)
        return torch.arange(begin, begin + batch_size, dtype=torch.long)

    return torch.arange(n_points, dtype=torch.long)


def iter_batches(n_points: int, batch_size: int) -> Iterator[Tuple[int, int]]:
    """Yield disjoint ``(begin, size)`` ranges covering ``n_points`` points.

    The last batch is shorter when ``batch_size`` does not divide ``n_points``.

    >>> list(iter_batches(7, 3))
    [(0, 3), (3, 3), (6, 1)]
    """
    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or batch_size < 1:
        raise ValueError(f"batch_size must be a positive integer, got {batch_size}")

    for begin in range(0, n_points, batch_size):
        yield begin, min(batch_size, n_points - begin)
