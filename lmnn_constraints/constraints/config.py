"""
Configuration dataclass for constraint generation.

This module provides the constraint configuration with JSON serialization
support so an optimization run can record how its constraints were built.
"""

import json
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Union

from lmnn_constraints.DEFAULT_CONSTS import DEFAULT_CHUNK_SIZE, DEFAULT_K, DEFAULT_METRIC
from lmnn_constraints.constraints.metrics import MetricName


@dataclass
class ConstraintsConfig:
    """Configuration for a :class:`~lmnn_constraints.constraints.Constraints` instance.

    Parameters
    ----------
    k : int
        Number of target neighbors and impostors per point
    metric : str
        Built-in metric name: "squared_euclidean", "euclidean", "manhattan",
        "chebyshev" or "cosine"
    chunk_size : int
        Query rows evaluated per distance block by the neighbor search
    show_progress : bool
        Show tqdm progress bars over label classes

    Examples
    --------
    >>> config = ConstraintsConfig(k=3, metric="euclidean")
    >>> config.save("output/constraints.json")
    >>> loaded = ConstraintsConfig.load("output/constraints.json")
    """

    k: int = DEFAULT_K
    metric: str = DEFAULT_METRIC
    chunk_size: int = DEFAULT_CHUNK_SIZE
    show_progress: bool = False

    def __post_init__(self):
        """Validate configuration values."""
        if isinstance(self.k, bool) or not isinstance(self.k, int) or self.k < 1:
            raise ValueError(f"k must be a positive integer, got {self.k}")

        valid_metrics = {m.value for m in MetricName}
        if self.metric not in valid_metrics:
            raise ValueError(
                f"metric must be one of {sorted(valid_metrics)}, got {self.metric}"
            )

        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size < 1:
            raise ValueError(f"chunk_size must be a positive integer, got {self.chunk_size}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to a plain dict."""
        return asdict(self)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file.

        Parameters
        ----------
        path : str or Path
            Output path, parent directories are created
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ConstraintsConfig":
        """Load configuration from JSON file.

        Raises
        ------
        FileNotFoundError
            If the file does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)

        return cls(**data)
