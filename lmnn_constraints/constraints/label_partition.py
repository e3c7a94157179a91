"""
Label partition cache for constraint generation.

Maps every unique label to a dense position and stores, per position, the
indices of points that share the label and of points that do not. The
partition is built once and reused by every target neighbor, impostor and
triplet query until it is explicitly rebuilt.
"""

import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import torch

from lmnn_constraints.data_validation import validate_labels

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class LabelPartition:
    """Same-label / different-label index sets derived from a label vector.

    Attributes
    ----------
    unique_labels : torch.Tensor
        Sorted distinct label values [n_classes]
    label_positions : torch.Tensor
        Dense class position of every point [n_points]
    index_same : List[torch.Tensor]
        Per class position, ascending indices of points with that label.
        Includes every such point; self exclusion happens at query time.
    index_diff : List[torch.Tensor]
        Per class position, ascending indices of points without that label

    Examples
    --------
    >>> partition = LabelPartition.from_labels(torch.tensor([1, 1, 7, 7, 7]))
    >>> partition.unique_labels
    tensor([1, 7])
    >>> partition.index_same[1]
    tensor([2, 3, 4])
    >>> partition.index_diff[1]
    tensor([0, 1])
    """

    unique_labels: torch.Tensor
    label_positions: torch.Tensor
    index_same: List[torch.Tensor]
    index_diff: List[torch.Tensor]

    @classmethod
    def from_labels(cls, labels: torch.Tensor) -> "LabelPartition":
        """Build the partition for a 1D integer label tensor."""
        validate_labels(labels)

        unique_labels, label_positions = torch.unique(labels, sorted=True, return_inverse=True)
        label_positions = label_positions.to(torch.long)

        index_same = []
        index_diff = []
        for position in range(len(unique_labels)):
            mask = label_positions == position
            index_same.append(torch.where(mask)[0])
            index_diff.append(torch.where(~mask)[0])

        partition = cls(
            unique_labels=unique_labels,
            label_positions=label_positions,
            index_same=index_same,
            index_diff=index_diff,
        )
        partition._log_statistics()
        return partition

    @property
    def n_points(self) -> int:
        return len(self.label_positions)

    @property
    def n_classes(self) -> int:
        return len(self.unique_labels)

    @property
    def class_sizes(self) -> List[int]:
        return [len(indices) for indices in self.index_same]

    def label_of(self, position: int):
        """Label value stored at a dense class position."""
        return self.unique_labels[position].item()

    def _log_statistics(self):
        sizes = self.class_sizes
        LOGGER.info(
            f"Built label partition: {self.n_points} points, {self.n_classes} classes, "
            f"class sizes min={min(sizes)}, max={max(sizes)}, mean={np.mean(sizes):.1f}"
        )

        singletons = [self.label_of(pos) for pos, size in enumerate(sizes) if size == 1]
        if singletons:
            LOGGER.warning(
                f"{len(singletons)} classes have a single point and can never have "
                f"target neighbors: {singletons[:5]}{'...' if len(singletons) > 5 else ''}"
            )
        if self.n_classes < 2:
            LOGGER.warning("Only one distinct label found, impostor queries will fail")


class LabelPartitioner:
    """Own and lazily build the label partition of a constraint generator.

    The cache holds at most one partition. ``ensure`` builds it on first
    use, ``precalculate`` always rebuilds it, and ``invalidate`` drops it so
    the next query rebuilds from the labels it is given.
    """

    def __init__(self):
        self._partition = None

    @property
    def partition(self):
        return self._partition

    @property
    def precalculated(self) -> bool:
        return self._partition is not None

    def precalculate(self, labels: torch.Tensor) -> LabelPartition:
        """Rebuild the partition from ``labels``, replacing any previous one."""
        self._partition = LabelPartition.from_labels(labels)
        return self._partition

    def ensure(self, labels: torch.Tensor) -> LabelPartition:
        """Return the cached partition, building it from ``labels`` if missing."""
        if self._partition is None:
            return self.precalculate(labels)
        return self._partition

    def invalidate(self) -> None:
        if self._partition is not None:
            LOGGER.debug("Invalidated label partition")
        self._partition = None
