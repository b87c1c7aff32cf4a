"""Sparse feature vectors and sparse weight storage."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Mapping, Tuple

import numpy as np


@dataclass(frozen=True)
class SparseVector:
    """Aligned ``(feature id, weight)`` arrays with zero weights omitted."""

    ids: np.ndarray
    values: np.ndarray

    def __post_init__(self) -> None:
        if self.ids.ndim != 1 or self.values.ndim != 1:
            raise ValueError("sparse vector arrays must be 1-D")
        if self.ids.size != self.values.size:
            raise ValueError("ids and values must have the same length")
        if self.ids.size and int(self.ids.min()) < 0:
            raise ValueError("feature ids must be non-negative")

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, float]]) -> "SparseVector":
        kept = [(int(i), float(v)) for i, v in pairs if v != 0]
        if not kept:
            return cls.empty()
        ids, values = zip(*kept)
        return cls(
            np.asarray(ids, dtype=np.int64),
            np.asarray(values, dtype=float),
        )

    @classmethod
    def from_mapping(cls, features: Mapping[int, float]) -> "SparseVector":
        return cls.from_pairs(features.items())

    @classmethod
    def empty(cls) -> "SparseVector":
        return cls(np.zeros(0, dtype=np.int64), np.zeros(0, dtype=float))

    @property
    def max_id(self) -> int:
        return int(self.ids.max()) if self.ids.size else -1

    def pairs(self) -> Iterator[Tuple[int, float]]:
        for i, v in zip(self.ids.tolist(), self.values.tolist()):
            yield i, v

    def __len__(self) -> int:
        return int(self.ids.size)


class SparseWeights:
    """Weight vector keyed by feature id.

    Ids are kept sorted in ``ids`` with their weights in ``values``; lookups
    go through ``np.searchsorted`` so memory follows the number of features
    seen, not the largest id. Missing ids have weight zero.
    """

    def __init__(self) -> None:
        self.ids = np.zeros(0, dtype=np.int64)
        self.values = np.zeros(0, dtype=float)

    def __len__(self) -> int:
        return int(self.ids.size)

    def __contains__(self, feature_id: int) -> bool:
        pos = int(np.searchsorted(self.ids, feature_id))
        return pos < self.ids.size and int(self.ids[pos]) == feature_id

    def __getitem__(self, feature_id: int) -> float:
        pos = int(np.searchsorted(self.ids, feature_id))
        if pos < self.ids.size and int(self.ids[pos]) == feature_id:
            return float(self.values[pos])
        return 0.0

    def _locate(self, ids: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        if not self.ids.size:
            return np.zeros(ids.size, dtype=np.int64), np.zeros(ids.size, dtype=bool)
        pos = np.minimum(np.searchsorted(self.ids, ids), self.ids.size - 1)
        return pos, self.ids[pos] == ids

    def add(self, vector: SparseVector, scale: float) -> None:
        """``weights[i] += scale * x_i`` for every ``(i, x_i)`` in ``vector``."""
        if not len(vector):
            return
        _, hit = self._locate(vector.ids)
        if not hit.all():
            fresh = vector.ids[~hit]
            ids = np.concatenate([self.ids, fresh])
            order = np.argsort(ids, kind="stable")
            self.ids = ids[order]
            self.values = np.concatenate([self.values, np.zeros(fresh.size)])[order]
        pos = np.searchsorted(self.ids, vector.ids)
        self.values[pos] += scale * vector.values

    def dot(self, vector: SparseVector) -> float:
        if not len(vector) or not self.ids.size:
            return 0.0
        pos, hit = self._locate(vector.ids)
        return float(self.values[pos[hit]] @ vector.values[hit])

    def scale(self, factor: float) -> None:
        self.values *= factor

    def to_dict(self, factor: float = 1.0) -> dict[int, float]:
        return {i: factor * v for i, v in zip(self.ids.tolist(), self.values.tolist())}
