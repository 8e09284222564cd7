"""Fitness-weighted discrete sampling.

A DiscreteSampler is built once from a weight vector and then answers
repeated draws of an index with probability proportional to its weight.
Samplers are never updated in place: when weights change, build a new one
and drop the old.
"""

from __future__ import annotations

from typing import Optional

import numpy as np


class ExtinctionError(RuntimeError):
    """Raised when drawing from a sampler whose weights are all zero."""


class DiscreteSampler:
    """Proportional sampler over indices 0 .. n-1.

    Weights must be finite and ≥ 0. A weight of exactly 0 is legal: that
    index is never drawn. Draws are delegated to ``Generator.choice``.

    Args:
        weights: (n,) non-negative weights, n ≥ 1.
        offset: Added to every drawn index (e.g. first male index, so that
            male draws come back as absolute individual indices).
    """

    __slots__ = ('weights', 'offset', 'total', '_prob')

    def __init__(self, weights, offset: int = 0):
        w = np.array(weights, dtype=np.float64)
        if w.ndim != 1 or w.size == 0:
            raise ValueError(
                f"sampler needs a non-empty 1-D weight vector, got shape {w.shape}"
            )
        if not np.all(np.isfinite(w)):
            raise ValueError("sampler weights must be finite")
        if np.any(w < 0.0):
            raise ValueError(
                f"sampler weights must be >= 0, got minimum {w.min()}"
            )

        self.weights = w
        self.offset = int(offset)
        self.total = float(w.sum())
        self._prob: Optional[np.ndarray] = w / self.total if self.total > 0.0 else None

    def __len__(self) -> int:
        return self.weights.size

    def __repr__(self) -> str:
        return (f"DiscreteSampler(n={self.weights.size}, offset={self.offset}, "
                f"total={self.total:.6g})")

    @classmethod
    def uniform(cls, n: int, offset: int = 0) -> 'DiscreteSampler':
        """Sampler with equal weight 1.0 on every index."""
        return cls(np.ones(n, dtype=np.float64), offset=offset)

    @property
    def probabilities(self) -> np.ndarray:
        """Normalized selection probabilities (all zero if total weight is 0)."""
        if self._prob is None:
            return np.zeros_like(self.weights)
        return self._prob.copy()

    def draw(self, rng: np.random.Generator) -> int:
        """Draw one index (with offset applied).

        Raises:
            ExtinctionError: If every weight is zero.
        """
        if self._prob is None:
            raise ExtinctionError(
                f"cannot draw from {self.weights.size} individuals with zero total fitness"
            )
        return self.offset + int(rng.choice(self.weights.size, p=self._prob))

    def draw_many(self, rng: np.random.Generator, size: int) -> np.ndarray:
        """Draw ``size`` indices with replacement (with offset applied).

        Raises:
            ExtinctionError: If every weight is zero.
        """
        if self._prob is None:
            raise ExtinctionError(
                f"cannot draw from {self.weights.size} individuals with zero total fitness"
            )
        idx = rng.choice(self.weights.size, size=size, p=self._prob)
        return idx.astype(np.int64) + self.offset
