"""Data validation utilities for lmnn_constraints.

This module provides tensor validation shared by the constraint calculators.

Key Features:
- Tensor shape and type validation
- Dataset / label length consistency
- Index bounds validation for explicit subsets
- Batch range validation

Examples
--------
>>> from lmnn_constraints.data_validation import validate_dataset, validate_labels
>>>
>>> validate_dataset(torch.randn(10, 3))
>>> validate_labels(torch.tensor([0, 1, 0, 1, 0, 1, 0, 1, 0, 1]))
"""

from .validation_utils import (
    validate_tensor_2d,
    validate_tensor_1d,
    validate_dataset,
    validate_labels,
    validate_length_consistency,
    validate_point_indices_bounds,
    validate_batch_range,
    validate_k,
)

__all__ = [
    "validate_tensor_2d",
    "validate_tensor_1d",
    "validate_dataset",
    "validate_labels",
    "validate_length_consistency",
    "validate_point_indices_bounds",
    "validate_batch_range",
    "validate_k",
]
