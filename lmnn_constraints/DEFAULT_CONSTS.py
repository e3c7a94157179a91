"""Shared key constants and defaults for constraint generation.

* :data:`DEFAULT_CONSTRAINT_KEYS`: keys of the dict returned by
  :func:`~lmnn_constraints.constraints.generate_constraints`.

Overriding defaults
-------------------
The singleton is an instance of a ``frozen=True`` dataclass, so it cannot be
mutated. To use other key names, create a modified copy with
:func:`dataclasses.replace`::

    import dataclasses
    from lmnn_constraints.DEFAULT_CONSTS import DEFAULT_CONSTRAINT_KEYS

    keys = dataclasses.replace(DEFAULT_CONSTRAINT_KEYS, triplets="lmnn_triplets")
"""

from dataclasses import dataclass

__all__ = [
    "ConstraintKeys",
    "DEFAULT_CONSTRAINT_KEYS",
    "DEFAULT_K",
    "DEFAULT_METRIC",
    "DEFAULT_CHUNK_SIZE",
]


# ---------------------------------------------------------------------------
# Result key schema
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ConstraintKeys:
    """Keys of the constraint dict produced by ``generate_constraints``.

    Attributes
    ----------
    target_neighbors : str
        Target neighbor indices [k, n_points].
    target_distances : str
        Distances to target neighbors [k, n_points].
    impostors : str
        Impostor indices [k, n_points].
    impostor_distances : str
        Distances to impostors [k, n_points].
    triplets : str
        (anchor, target, impostor) columns [3, n_points * k].
    """

    target_neighbors: str = "target_neighbors"
    target_distances: str = "target_distances"
    impostors: str = "impostors"
    impostor_distances: str = "impostor_distances"
    triplets: str = "triplets"


DEFAULT_CONSTRAINT_KEYS = ConstraintKeys()


# ---------------------------------------------------------------------------
# Numeric defaults
# ---------------------------------------------------------------------------

DEFAULT_K = 1
DEFAULT_METRIC = "squared_euclidean"
DEFAULT_CHUNK_SIZE = 1024
