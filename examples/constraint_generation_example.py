"""
Example: LMNN Constraint Generation

This example demonstrates how to:
1. Compute target neighbors, impostors and triplets for a labeled dataset
2. Query contiguous batches from a thread pool after precalculation
3. Rebuild the label partition after the labels change
4. Save and reuse a constraint configuration
"""

import logging
import sys
import tempfile
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import torch

# Allow running from repo root without installing the package
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lmnn_constraints.constraints import (
    Constraints,
    ConstraintsConfig,
    generate_constraints,
    iter_batches,
)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
LOGGER = logging.getLogger("constraint_generation_example")


def make_blobs(n_per_class: int = 50, n_classes: int = 3, dim: int = 2, seed: int = 0):
    """Gaussian blobs, one per class."""
    generator = torch.Generator().manual_seed(seed)
    centers = torch.randn(n_classes, dim, generator=generator) * 5
    dataset = torch.cat(
        [center + torch.randn(n_per_class, dim, generator=generator) for center in centers]
    )
    labels = torch.arange(n_classes).repeat_interleave(n_per_class)
    return dataset, labels


def example_1_full_dataset():
    """Example 1: All constraints in one pass"""
    print("\n" + "=" * 60)
    print("Example 1: Full Dataset")
    print("=" * 60)

    dataset, labels = make_blobs()
    results = generate_constraints(dataset, labels, k=3)

    print(f"Target neighbors: {tuple(results['target_neighbors'].shape)}")
    print(f"Impostors: {tuple(results['impostors'].shape)}")
    print(f"Triplets: {tuple(results['triplets'].shape)}")
    print(f"First triplets (anchor, target, impostor):\n{results['triplets'][:, :3]}")


def example_2_parallel_batches():
    """Example 2: Disjoint batches from worker threads"""
    print("\n" + "=" * 60)
    print("Example 2: Parallel Batches")
    print("=" * 60)

    dataset, labels = make_blobs(n_per_class=200)
    constraints = Constraints(k=5)

    # Build the partition before any worker starts
    constraints.precalculate(labels)

    def impostor_batch(batch):
        begin, size = batch
        indices, distances = constraints.impostors(
            dataset, labels, begin=begin, batch_size=size, return_distances=True
        )
        return begin, indices, distances

    with ThreadPoolExecutor(max_workers=4) as executor:
        results = list(executor.map(impostor_batch, iter_batches(dataset.shape[0], 128)))

    indices = torch.cat([batch_indices for _, batch_indices, _ in results], dim=1)
    print(f"Assembled impostors from {len(results)} batches: {tuple(indices.shape)}")
    print(f"Matches full query: {torch.equal(indices, constraints.impostors(dataset, labels))}")


def example_3_relabel():
    """Example 3: Labels changed, partition rebuilt explicitly"""
    print("\n" + "=" * 60)
    print("Example 3: Relabeling")
    print("=" * 60)

    dataset, labels = make_blobs(n_per_class=20)
    constraints = Constraints(k=2)
    before = constraints.target_neighbors(dataset, labels)

    new_labels = labels.flip(0)
    constraints.precalculate(new_labels)
    after = constraints.target_neighbors(dataset, new_labels)

    changed = (before != after).any(dim=0).sum().item()
    print(f"Points whose target neighbors changed: {changed}")


def example_4_config():
    """Example 4: Save and load configuration"""
    print("\n" + "=" * 60)
    print("Example 4: Configuration")
    print("=" * 60)

    with tempfile.TemporaryDirectory() as tmpdir:
        config_path = Path(tmpdir) / "constraints.json"
        ConstraintsConfig(k=4, metric="euclidean", chunk_size=256).save(config_path)

        constraints = Constraints.from_config(ConstraintsConfig.load(config_path))
        print(f"Loaded constraints: k={constraints.k}, metric={constraints.metric!r}")

    dataset, labels = make_blobs()
    _, distances = constraints.impostors(dataset, labels, points=torch.tensor([0, 75, 149]),
                                         return_distances=True)
    print(f"Nearest impostor distances for points 0, 75, 149: {distances[0].tolist()}")


if __name__ == "__main__":
    example_1_full_dataset()
    example_2_parallel_batches()
    example_3_relabel()
    example_4_config()
