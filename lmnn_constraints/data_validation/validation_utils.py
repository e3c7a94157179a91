"""
Shared validation utilities for constraint generation.

This module provides common validation functions used across the
constraint calculators (Constraints, NeighborSearch, LabelPartition).

Key Features:
- Tensor type and shape validation
- Length consistency checks between dataset and labels
- Index bounds validation for explicit point subsets
- Contiguous batch range validation
"""

from typing import Any, Optional, Tuple

import torch

from lmnn_constraints.errors import DimensionMismatchError


def _check_tensor_ndim(tensor: Any, name: str, ndim: int) -> None:
    if not isinstance(tensor, torch.Tensor):
        raise TypeError(f"{name} must be torch.Tensor, got {type(tensor)}")
    if tensor.ndim != ndim:
        raise ValueError(f"{name} must be {ndim}D, got shape {tuple(tensor.shape)}")


def validate_tensor_2d(
    tensor: Any,
    name: str,
    expected_cols: Optional[int] = None,
    min_rows: int = 1
) -> None:
    """Validate a ``[rows, cols]`` tensor, optionally pinning the column count.

    Parameters
    ----------
    tensor : Any
        Object to validate
    name : str
        Name used in error messages
    expected_cols : int, optional
        Required column count (e.g. the dataset dimension), unchecked if None
    min_rows : int, optional
        Fewest rows accepted (default: 1)

    Raises
    ------
    TypeError
        If tensor is not torch.Tensor
    ValueError
        If tensor is not 2D or has fewer than ``min_rows`` rows
    DimensionMismatchError
        If the column count differs from ``expected_cols``

    Examples
    --------
    >>> validate_tensor_2d(torch.randn(10, 3), "dataset")
    >>> validate_tensor_2d(torch.randn(5, 3), "queries", expected_cols=3)
    """
    _check_tensor_ndim(tensor, name, 2)

    n_rows, n_cols = tensor.shape
    if n_rows < min_rows:
        raise ValueError(f"{name} must have at least {min_rows} rows, got {n_rows}")

    if expected_cols is not None and n_cols != expected_cols:
        raise DimensionMismatchError(f"{name} expected {expected_cols} columns, got {n_cols}")


def validate_tensor_1d(
    tensor: Any,
    name: str,
    expected_length: Optional[int] = None,
    min_length: int = 1
) -> None:
    """Validate a flat tensor such as labels or a list of point indices.

    Parameters
    ----------
    tensor : Any
        Object to validate
    name : str
        Name used in error messages
    expected_length : int, optional
        Required length (e.g. the number of dataset points), unchecked if None
    min_length : int, optional
        Fewest elements accepted (default: 1)

    Raises
    ------
    TypeError
        If tensor is not torch.Tensor
    ValueError
        If tensor is not 1D or has fewer than ``min_length`` elements
    DimensionMismatchError
        If the length differs from ``expected_length``

    Examples
    --------
    >>> validate_tensor_1d(torch.tensor([0, 0, 1]), "labels", expected_length=3)
    """
    _check_tensor_ndim(tensor, name, 1)

    length = tensor.shape[0]
    if length < min_length:
        raise ValueError(f"{name} must have at least {min_length} elements, got {length}")

    if expected_length is not None and length != expected_length:
        raise DimensionMismatchError(f"{name} expected length {expected_length}, got {length}")


def validate_dataset(dataset: Any, name: str = "dataset") -> None:
    """Validate a floating point ``[n_points, dim]`` dataset tensor."""
    validate_tensor_2d(dataset, name)
    if not torch.is_floating_point(dataset):
        raise TypeError(f"{name} must be a floating point tensor, got dtype {dataset.dtype}")


def validate_labels(labels: Any, name: str = "labels") -> None:
    """Validate a 1D integer label tensor."""
    validate_tensor_1d(labels, name)
    if torch.is_floating_point(labels) or torch.is_complex(labels):
        raise TypeError(f"{name} must be an integer tensor, got dtype {labels.dtype}")


def validate_length_consistency(
    *tensors_and_names: Tuple[Any, str, int]
) -> None:
    """Validate that tensors/lists have consistent lengths.

    Parameters
    ----------
    *tensors_and_names : Tuple[Any, str, int]
        Tuples of (tensor/list, name, expected_length)

    Raises
    ------
    TypeError
        If an item is neither a tensor nor a list/tuple
    DimensionMismatchError
        If lengths don't match expectations

    Examples
    --------
    >>> dataset = torch.randn(100, 4)
    >>> labels = torch.randint(0, 5, (100,))
    >>> validate_length_consistency((labels, "labels", dataset.shape[0]))
    """
    for item, name, expected_length in tensors_and_names:
        if isinstance(item, torch.Tensor):
            actual_length = item.shape[0]
        elif isinstance(item, (list, tuple)):
            actual_length = len(item)
        else:
            raise TypeError(
                f"{name} must be torch.Tensor or list, got {type(item)}"
            )

        if actual_length != expected_length:
            raise DimensionMismatchError(
                f"{name} length ({actual_length}) must equal {expected_length}"
            )


def validate_point_indices_bounds(
    points: torch.Tensor,
    n_points: int,
    name: str = "points"
) -> None:
    """Validate that explicit point indices are within ``[0, n_points)``.

    An empty index tensor is valid and selects no points.

    Parameters
    ----------
    points : torch.Tensor
        1D integer tensor of dataset indices
    n_points : int
        Number of points in the dataset
    name : str, optional
        Name for error messages (default: "points")

    Raises
    ------
    TypeError
        If points is not an integer tensor (boolean masks included)
    DimensionMismatchError
        If any index is out of range

    Examples
    --------
    >>> validate_point_indices_bounds(torch.tensor([4, 0, 2]), n_points=5)
    """
    validate_tensor_1d(points, name, min_length=0)
    if points.dtype == torch.bool or torch.is_floating_point(points) or torch.is_complex(points):
        raise TypeError(
            f"{name} must be an integer index tensor, got dtype {points.dtype}; "
            f"convert boolean masks with mask.nonzero().squeeze(1)"
        )

    if points.numel() == 0:
        return

    min_idx = points.min().item()
    max_idx = points.max().item()
    if min_idx < 0 or max_idx >= n_points:
        bad_idx = min_idx if min_idx < 0 else max_idx
        raise DimensionMismatchError(
            f"{name} contains out-of-range index {bad_idx}, "
            f"valid range is [0, {n_points - 1}]"
        )


def validate_batch_range(begin: Any, batch_size: Any, n_points: int) -> None:
    """Validate a contiguous ``[begin, begin + batch_size)`` query range.

    Raises
    ------
    TypeError
        If begin or batch_size is not an int
    ValueError
        If batch_size is not positive
    DimensionMismatchError
        If the range falls outside the dataset
    """
    for value, name in ((begin, "begin"), (batch_size, "batch_size")):
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError(f"{name} must be int, got {type(value)}")

    if batch_size < 1:
        raise ValueError(f"batch_size must be a positive integer, got {batch_size}")

    if begin < 0 or begin + batch_size > n_points:
        raise DimensionMismatchError(
            f"Batch [{begin}, {begin + batch_size}) is out of range "
            f"for a dataset of {n_points} points"
        )


def validate_k(k: Any) -> None:
    """Validate the number of neighbors requested per point."""
    if isinstance(k, bool) or not isinstance(k, int) or k < 1:
        raise ValueError(f"k must be a positive integer, got {k}")
