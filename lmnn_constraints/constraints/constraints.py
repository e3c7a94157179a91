"""
Distance based constraints for large margin nearest neighbor training.

This module computes, for every point of a labeled dataset:
- Target neighbors: k nearest points sharing its label (itself excluded)
- Impostors: k nearest points with a different label
- Triplets: (anchor, target neighbor, impostor) columns paired by rank

Key Features:
- Label partition computed once and reused across calls
- Full dataset, contiguous batch, or explicit point subset queries
- Optional distances returned alongside indices without a second search
- Deterministic tie-breaking (lowest index first)
- Substitutable distance metric
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

import torch
from tqdm import tqdm

from lmnn_constraints.DEFAULT_CONSTS import (
    DEFAULT_CHUNK_SIZE,
    DEFAULT_CONSTRAINT_KEYS,
    DEFAULT_K,
    ConstraintKeys,
)
from lmnn_constraints.constraints.batching import resolve_query_indices
from lmnn_constraints.constraints.config import ConstraintsConfig
from lmnn_constraints.constraints.label_partition import LabelPartition, LabelPartitioner
from lmnn_constraints.constraints.metrics import DistanceMetric
from lmnn_constraints.constraints.neighbor_search import NeighborSearch
from lmnn_constraints.data_validation import (
    validate_dataset,
    validate_k,
    validate_labels,
    validate_length_consistency,
)
from lmnn_constraints.errors import (
    DegenerateLabelingError,
    DimensionMismatchError,
    InsufficientNeighborsError,
)

LOGGER = logging.getLogger(__name__)

NeighborResult = Union[torch.Tensor, Tuple[torch.Tensor, torch.Tensor]]


class Constraints:
    """Generate target neighbors, impostors and triplets for a labeled dataset.

    All index outputs have one column per queried point: column ``j`` holds
    the neighbors of the ``j``-th queried point, nearest first.

    The label partition is built on first use and cached. It is not
    rebuilt when different labels are passed later; call
    :meth:`precalculate` or :meth:`invalidate` (or set
    ``precalculated = False``) after changing labels.

    Disjoint batches may be queried from several threads once
    :meth:`precalculate` has run. ``precalculate``, ``invalidate`` and the
    ``k`` / ``precalculated`` setters must not overlap with any query.

    Parameters
    ----------
    k : int, optional
        Number of target neighbors and impostors per point (default: 1)
    metric : str, DistanceMetric or callable, optional
        Distance metric (default: squared Euclidean)
    chunk_size : int, optional
        Query rows per distance block in the neighbor search (default: 1024)
    show_progress : bool, optional
        Show progress bars over label classes (default: False)
    search : NeighborSearch, optional
        Preconfigured neighbor search; overrides metric and chunk_size

    Attributes
    ----------
    search : NeighborSearch
        Neighbor search used for every query
    show_progress : bool
        Progress bar visibility

    Examples
    --------
    >>> dataset = torch.tensor([[0.0], [1.0], [2.0], [10.0], [11.0], [12.0]])
    >>> labels = torch.tensor([0, 0, 0, 1, 1, 1])
    >>> constraints = Constraints(k=1)
    >>> constraints.target_neighbors(dataset, labels)
    tensor([[1, 0, 1, 4, 3, 4]])
    >>> constraints.impostors(dataset, labels)
    tensor([[3, 3, 3, 2, 2, 2]])
    >>> constraints.triplets(dataset, labels).shape
    torch.Size([3, 6])
    """

    def __init__(
        self,
        k: int = DEFAULT_K,
        metric: Union[str, DistanceMetric, None] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        show_progress: bool = False,
        search: Optional[NeighborSearch] = None,
    ):
        validate_k(k)
        self._k = k
        self.search = search if search is not None else NeighborSearch(metric, chunk_size)
        self.show_progress = show_progress
        self._partitioner = LabelPartitioner()

        LOGGER.debug(f"Initialized Constraints: k={k}, metric={self.search.metric!r}")

    @classmethod
    def from_config(cls, config: ConstraintsConfig) -> "Constraints":
        """Create an instance from a :class:`ConstraintsConfig`."""
        return cls(
            k=config.k,
            metric=config.metric,
            chunk_size=config.chunk_size,
            show_progress=config.show_progress,
        )

    @property
    def k(self) -> int:
        """Number of target neighbors and impostors per point."""
        return self._k

    @k.setter
    def k(self, value: int):
        validate_k(value)
        self._k = value

    @property
    def metric(self) -> DistanceMetric:
        return self.search.metric

    @property
    def partition(self) -> Optional[LabelPartition]:
        """Cached label partition, None until first precalculation."""
        return self._partitioner.partition

    @property
    def precalculated(self) -> bool:
        """Whether a label partition is cached."""
        return self._partitioner.precalculated

    @precalculated.setter
    def precalculated(self, value: bool):
        if value:
            if not self._partitioner.precalculated:
                raise ValueError(
                    "Cannot mark constraints as precalculated before a partition exists, "
                    "call precalculate(labels) instead"
                )
        else:
            self.invalidate()

    def precalculate(self, labels: torch.Tensor) -> LabelPartition:
        """
        Build the label partition, replacing any cached one.

        Never fails on a single-class labeling; impostor queries report that
        later.

        Parameters
        ----------
        labels : torch.Tensor
            Integer labels [n_points]

        Returns
        -------
        LabelPartition
            The new partition
        """
        return self._partitioner.precalculate(labels)

    def invalidate(self) -> None:
        """Drop the cached partition so the next query rebuilds it."""
        self._partitioner.invalidate()

    def target_neighbors(
        self,
        dataset: torch.Tensor,
        labels: torch.Tensor,
        begin: Optional[int] = None,
        batch_size: Optional[int] = None,
        points: Optional[torch.Tensor] = None,
        return_distances: bool = False,
    ) -> NeighborResult:
        """
        Find the k nearest same-labeled neighbors of the queried points.

        A point is never its own target neighbor. Batches and subsets search
        the full same-label pool of each point, not only the batch.

        Parameters
        ----------
        dataset : torch.Tensor
            Points [n_points, dim]
        labels : torch.Tensor
            Integer labels [n_points]
        begin : int, optional
            First point of a contiguous batch
        batch_size : int, optional
            Number of points in a contiguous batch
        points : torch.Tensor, optional
            Explicit point indices; output columns follow their order
        return_distances : bool, optional
            Also return the neighbor distances (default: False)

        Returns
        -------
        torch.Tensor or Tuple[torch.Tensor, torch.Tensor]
            Indices [k, n_queries], plus distances [k, n_queries] when
            ``return_distances`` is True

        Raises
        ------
        InsufficientNeighborsError
            If a queried class has k or fewer members
        DimensionMismatchError
            If labels and dataset disagree, or the query is out of range
        """
        partition = self._prepare(dataset, labels)
        query_indices = resolve_query_indices(dataset.shape[0], begin, batch_size, points)

        indices, distances = self._query(
            dataset,
            partition,
            query_indices,
            pools=partition.index_same,
            exclude_self=True,
            desc="Target neighbors",
        )
        return (indices, distances) if return_distances else indices

    def impostors(
        self,
        dataset: torch.Tensor,
        labels: torch.Tensor,
        begin: Optional[int] = None,
        batch_size: Optional[int] = None,
        points: Optional[torch.Tensor] = None,
        return_distances: bool = False,
    ) -> NeighborResult:
        """
        Find the k nearest differently-labeled points of the queried points.

        Parameters
        ----------
        dataset : torch.Tensor
            Points [n_points, dim]
        labels : torch.Tensor
            Integer labels [n_points]
        begin : int, optional
            First point of a contiguous batch
        batch_size : int, optional
            Number of points in a contiguous batch
        points : torch.Tensor, optional
            Explicit point indices; output columns follow their order
        return_distances : bool, optional
            Also return the impostor distances (default: False)

        Returns
        -------
        torch.Tensor or Tuple[torch.Tensor, torch.Tensor]
            Indices [k, n_queries], plus distances [k, n_queries] when
            ``return_distances`` is True

        Raises
        ------
        DegenerateLabelingError
            If fewer than two distinct labels exist
        InsufficientNeighborsError
            If fewer than k differently-labeled points exist for a queried class
        DimensionMismatchError
            If labels and dataset disagree, or the query is out of range
        """
        partition = self._prepare(dataset, labels)
        self._check_not_degenerate(partition)
        query_indices = resolve_query_indices(dataset.shape[0], begin, batch_size, points)

        indices, distances = self._query(
            dataset,
            partition,
            query_indices,
            pools=partition.index_diff,
            exclude_self=False,
            desc="Impostors",
        )
        return (indices, distances) if return_distances else indices

    def triplets(self, dataset: torch.Tensor, labels: torch.Tensor) -> torch.Tensor:
        """
        Generate (anchor, target neighbor, impostor) triplets.

        The r-th target neighbor of each point is paired with its r-th
        impostor, giving exactly ``n_points * k`` triplets.

        Parameters
        ----------
        dataset : torch.Tensor
            Points [n_points, dim]
        labels : torch.Tensor
            Integer labels [n_points]

        Returns
        -------
        torch.Tensor
            Triplets [3, n_points * k]; rows are anchor, target, impostor.
            Columns are grouped by anchor, rank order within each group.

        Raises
        ------
        DegenerateLabelingError
            If fewer than two distinct labels exist
        InsufficientNeighborsError
            If a class is too small for k target neighbors or impostors
        """
        partition = self._prepare(dataset, labels)
        self._check_not_degenerate(partition)

        targets = self.target_neighbors(dataset, labels)
        impostors = self.impostors(dataset, labels)

        triplets = assemble_triplets(targets, impostors)
        LOGGER.info(f"Generated {triplets.shape[1]} triplets for {dataset.shape[0]} points, k={self.k}")
        return triplets

    def _prepare(self, dataset: torch.Tensor, labels: torch.Tensor) -> LabelPartition:
        """Validate inputs and return the cached (or freshly built) partition."""
        validate_dataset(dataset)
        validate_labels(labels)
        validate_length_consistency((labels, "labels", dataset.shape[0]))

        partition = self._partitioner.ensure(labels)
        if partition.n_points != dataset.shape[0]:
            raise DimensionMismatchError(
                f"Cached label partition covers {partition.n_points} points but dataset has "
                f"{dataset.shape[0]}; call precalculate(labels) after changing labels"
            )
        return partition

    @staticmethod
    def _check_not_degenerate(partition: LabelPartition) -> None:
        if partition.n_classes < 2:
            raise DegenerateLabelingError(
                f"Impostors need at least 2 distinct labels, got {partition.n_classes}",
                available=0,
                label=partition.label_of(0),
            )

    def _query(
        self,
        dataset: torch.Tensor,
        partition: LabelPartition,
        query_indices: torch.Tensor,
        pools: List[torch.Tensor],
        exclude_self: bool,
        desc: str,
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """Run one neighbor search per queried class against that class's pool."""
        k = self.k
        query_indices = query_indices.cpu()
        positions = partition.label_positions.cpu()[query_indices]
        classes = torch.unique(positions).tolist()

        # Every class is checked before any column is written
        for position in classes:
            available = len(pools[position]) - (1 if exclude_self else 0)
            if available < k:
                label = partition.label_of(position)
                raise InsufficientNeighborsError(
                    f"{desc}: requested k={k} but label {label} has only "
                    f"{available} candidates",
                    k=k,
                    available=available,
                    label=label,
                )

        n_queries = len(query_indices)
        indices = torch.empty((k, n_queries), dtype=torch.long)
        distances = torch.empty((k, n_queries), dtype=dataset.dtype)

        LOGGER.debug(f"{desc}: {n_queries} queries across {len(classes)} classes, k={k}")

        iterator = tqdm(classes, desc=desc) if self.show_progress else classes
        for position in iterator:
            columns = torch.where(positions == position)[0]
            class_indices, class_distances = self.search.search(
                dataset,
                pools[position],
                query_indices[columns],
                k,
                exclude_self=exclude_self,
            )
            indices[:, columns] = class_indices
            distances[:, columns] = class_distances

        return indices, distances


def assemble_triplets(targets: torch.Tensor, impostors: torch.Tensor) -> torch.Tensor:
    """
    Pair target neighbors and impostors by rank into triplet columns.

    Parameters
    ----------
    targets : torch.Tensor
        Target neighbor indices [k, n_points]
    impostors : torch.Tensor
        Impostor indices [k, n_points]

    Returns
    -------
    torch.Tensor
        Triplets [3, n_points * k]

    Examples
    --------
    >>> assemble_triplets(torch.tensor([[1, 0]]), torch.tensor([[5, 4]]))
    tensor([[0, 1],
            [1, 0],
            [5, 4]])
    """
    if targets.shape != impostors.shape:
        raise DimensionMismatchError(
            f"targets shape {tuple(targets.shape)} must equal impostors shape "
            f"{tuple(impostors.shape)}"
        )

    k, n_points = targets.shape
    anchors = torch.arange(n_points, dtype=torch.long).repeat_interleave(k)
    return torch.stack(
        [anchors, targets.T.reshape(-1), impostors.T.reshape(-1)],
        dim=0,
    )


def generate_constraints(
    dataset: torch.Tensor,
    labels: torch.Tensor,
    k: int = DEFAULT_K,
    metric: Union[str, DistanceMetric, None] = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    show_progress: bool = False,
    keys: ConstraintKeys = DEFAULT_CONSTRAINT_KEYS,
) -> Dict[str, torch.Tensor]:
    """Compute every constraint for a labeled dataset in one pass.

    Targets and impostors are searched once each; the triplets are
    assembled from those results.

    Parameters
    ----------
    dataset : torch.Tensor
        Points [n_points, dim]
    labels : torch.Tensor
        Integer labels [n_points]
    k : int, optional
        Number of target neighbors and impostors per point (default: 1)
    metric : str, DistanceMetric or callable, optional
        Distance metric (default: squared Euclidean)
    chunk_size : int, optional
        Query rows per distance block (default: 1024)
    show_progress : bool, optional
        Show progress bars (default: False)
    keys : ConstraintKeys, optional
        Result key names

    Returns
    -------
    Dict[str, torch.Tensor]
        Target neighbors, target distances, impostors, impostor distances
        and triplets, keyed by ``keys``

    Examples
    --------
    >>> from lmnn_constraints.constraints import generate_constraints
    >>>
    >>> results = generate_constraints(dataset, labels, k=3)
    >>> print(results["triplets"].shape)  # [3, n_points * 3]
    """
    constraints = Constraints(
        k=k,
        metric=metric,
        chunk_size=chunk_size,
        show_progress=show_progress,
    )
    constraints.precalculate(labels)

    targets, target_distances = constraints.target_neighbors(dataset, labels, return_distances=True)
    impostors, impostor_distances = constraints.impostors(dataset, labels, return_distances=True)
    triplets = assemble_triplets(targets, impostors)

    LOGGER.info(
        f"Generated constraints for {dataset.shape[0]} points: k={k}, "
        f"{triplets.shape[1]} triplets"
    )

    return {
        keys.target_neighbors: targets,
        keys.target_distances: target_distances,
        keys.impostors: impostors,
        keys.impostor_distances: impostor_distances,
        keys.triplets: triplets,
    }
