"""Synthetic corpora for experimentation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Hashable, Optional

import numpy as np

from .memory import InMemoryDocumentSource


@dataclass
class SyntheticLinearCorpus(InMemoryDocumentSource):
    """Sparse documents labelled by a hidden linear separator.

    Each document draws ``nnz`` distinct features out of ``n_features`` with
    term-count style weights in ``[1, max_count]``. A document is ``positive``
    when its score under the hidden weights plus ``offset`` is positive, with
    labels flipped at rate ``label_noise``.
    """

    n_docs: int
    n_features: int
    nnz: int = 8
    max_count: int = 3
    offset: float = 0.0
    label_noise: float = 0.0
    positive: Hashable = "pos"
    negative: Hashable = "neg"
    rng: Optional[np.random.Generator] = None
    hidden: np.ndarray = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        InMemoryDocumentSource.__init__(self)
        if self.nnz > self.n_features:
            raise ValueError("nnz must not exceed n_features")
        if not 0.0 <= self.label_noise <= 1.0:
            raise ValueError("label_noise must lie in [0, 1]")
        if self.rng is None:
            self.rng = np.random.default_rng()
        self.hidden = self.rng.standard_normal(self.n_features)
        for doc_id in range(self.n_docs):
            ids = np.sort(self.rng.choice(self.n_features, size=self.nnz, replace=False))
            counts = self.rng.integers(1, self.max_count + 1, size=self.nnz).astype(float)
            score = float(self.hidden[ids] @ counts) + self.offset
            is_positive = score > 0
            if self.label_noise > 0 and self.rng.random() < self.label_noise:
                is_positive = not is_positive
            label = self.positive if is_positive else self.negative
            self.add(doc_id, zip(ids.tolist(), counts.tolist()), label)
