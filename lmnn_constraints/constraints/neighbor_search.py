"""
Brute-force k-nearest-neighbor search over index subsets of a dataset.

The search never copies the dataset wholesale: only the rows selected by
``reference_indices`` are gathered, and distances are evaluated in chunks
of ``chunk_size`` query rows to keep memory bounded.

Ordering is deterministic: results are sorted ascending by distance and
equal distances are resolved in favour of the lower reference index.
"""

import logging
from typing import Optional, Tuple, Union

import torch

from lmnn_constraints.constraints.metrics import DistanceMetric, get_metric
from lmnn_constraints.data_validation import (
    validate_dataset,
    validate_k,
    validate_point_indices_bounds,
    validate_tensor_2d,
)
from lmnn_constraints.errors import InsufficientNeighborsError

LOGGER = logging.getLogger(__name__)


class NeighborSearch:
    """k-nearest-neighbor search restricted to a reference index subset.

    Parameters
    ----------
    metric : str, DistanceMetric or callable, optional
        Distance metric (default: squared Euclidean)
    chunk_size : int, optional
        Number of query rows evaluated per distance block (default: 1024)

    Examples
    --------
    >>> search = NeighborSearch(metric="euclidean")
    >>> dataset = torch.tensor([[0.0], [1.0], [2.0], [10.0]])
    >>> indices, distances = search.search(
    ...     dataset,
    ...     reference_indices=torch.tensor([0, 1, 2]),
    ...     query_indices=torch.tensor([3]),
    ...     k=2,
    ... )
    >>> indices
    tensor([[2],
            [1]])
    """

    def __init__(
        self,
        metric: Union[str, DistanceMetric, None] = None,
        chunk_size: int = 1024,
    ):
        if isinstance(chunk_size, bool) or not isinstance(chunk_size, int) or chunk_size < 1:
            raise ValueError(f"chunk_size must be a positive integer, got {chunk_size}")

        self.metric = get_metric(metric)
        self.chunk_size = chunk_size

    def search(
        self,
        dataset: torch.Tensor,
        reference_indices: torch.Tensor,
        query_indices: torch.Tensor,
        k: int,
        exclude_self: bool = False,
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Find the k nearest reference points of dataset points given by index.

        Parameters
        ----------
        dataset : torch.Tensor
            Points [n_points, dim]
        reference_indices : torch.Tensor
            Dataset rows forming the searchable set
        query_indices : torch.Tensor
            Dataset rows to query
        k : int
            Number of neighbors per query
        exclude_self : bool, optional
            Never return a query point as its own neighbor (default: False)

        Returns
        -------
        Tuple[torch.Tensor, torch.Tensor]
            (indices, distances), both [k, n_queries]; column j belongs to
            ``query_indices[j]``, rank 0 is the nearest

        Raises
        ------
        InsufficientNeighborsError
            If some query has fewer than k candidates
        """
        validate_dataset(dataset)
        validate_k(k)
        reference_indices = self._prepare_reference(dataset, reference_indices, k)
        validate_point_indices_bounds(query_indices, dataset.shape[0], name="query_indices")
        query_indices = query_indices.to(device=dataset.device, dtype=torch.long)

        available = torch.full_like(query_indices, len(reference_indices))
        if exclude_self:
            available -= torch.isin(query_indices, reference_indices).to(torch.long)
        self._check_available(available, k)

        return self._search_rows(
            dataset,
            reference_indices,
            dataset.index_select(0, query_indices),
            k,
            query_indices if exclude_self else None,
        )

    def search_points(
        self,
        dataset: torch.Tensor,
        reference_indices: torch.Tensor,
        queries: torch.Tensor,
        k: int,
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        """
        Find the k nearest reference points of arbitrary query coordinates.

        Parameters
        ----------
        dataset : torch.Tensor
            Points [n_points, dim]
        reference_indices : torch.Tensor
            Dataset rows forming the searchable set
        queries : torch.Tensor
            Query coordinates [n_queries, dim]
        k : int
            Number of neighbors per query

        Returns
        -------
        Tuple[torch.Tensor, torch.Tensor]
            (indices, distances), both [k, n_queries]
        """
        validate_dataset(dataset)
        validate_k(k)
        validate_tensor_2d(queries, "queries", expected_cols=dataset.shape[1])
        reference_indices = self._prepare_reference(dataset, reference_indices, k)

        queries = queries.to(device=dataset.device, dtype=dataset.dtype)
        return self._search_rows(dataset, reference_indices, queries, k, None)

    def _prepare_reference(
        self, dataset: torch.Tensor, reference_indices: torch.Tensor, k: int
    ) -> torch.Tensor:
        """Validate reference indices and return them sorted on the dataset device."""
        validate_point_indices_bounds(reference_indices, dataset.shape[0], name="reference_indices")

        # Sorted and deduplicated: every candidate appears once
        reference_indices = torch.unique(reference_indices.to(device=dataset.device, dtype=torch.long))
        self._check_available(torch.tensor([len(reference_indices)]), k)
        return reference_indices

    @staticmethod
    def _check_available(available: torch.Tensor, k: int) -> None:
        if available.numel() == 0:
            return
        fewest = available.min().item()
        if fewest < k:
            raise InsufficientNeighborsError(
                f"Requested k={k} neighbors but only {fewest} candidates are available",
                k=k,
                available=fewest,
            )

    def _search_rows(
        self,
        dataset: torch.Tensor,
        reference_indices: torch.Tensor,
        query_rows: torch.Tensor,
        k: int,
        exclude_indices: Optional[torch.Tensor],
    ) -> Tuple[torch.Tensor, torch.Tensor]:
        reference = dataset.index_select(0, reference_indices)
        n_queries = query_rows.shape[0]

        neighbor_indices = torch.empty((k, n_queries), dtype=torch.long)
        neighbor_distances = torch.empty((k, n_queries), dtype=dataset.dtype)

        LOGGER.debug(
            f"Searching {n_queries} queries against {len(reference_indices)} references "
            f"with {self.metric!r}, k={k}, chunk_size={self.chunk_size}"
        )

        for start in range(0, n_queries, self.chunk_size):
            stop = min(start + self.chunk_size, n_queries)
            distances = self.metric.pairwise(query_rows[start:stop], reference)

            # Stable sort over ascending reference indices: ties go to the lower index
            sorted_distances, order = torch.sort(distances, dim=1, stable=True)
            sorted_indices = reference_indices[order]

            if exclude_indices is not None:
                # Push each query's own index behind every other candidate
                is_self = sorted_indices == exclude_indices[start:stop].unsqueeze(1)
                keep = torch.sort(is_self.to(torch.long), dim=1, stable=True).indices
                sorted_indices = sorted_indices.gather(1, keep)
                sorted_distances = sorted_distances.gather(1, keep)

            neighbor_indices[:, start:stop] = sorted_indices[:, :k].T.cpu()
            neighbor_distances[:, start:stop] = sorted_distances[:, :k].T.cpu()

        return neighbor_indices, neighbor_distances
