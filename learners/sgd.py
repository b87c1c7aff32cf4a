"""Stochastic gradient descent for binary linear classifiers.

The weight vector is a feature-id keyed ``SparseWeights`` read as
``coeff_ * weights_``, so that L2 shrinkage is a single scalar multiply per
step instead of a pass over every weight. The coefficient is folded back
into the stored weights whenever it falls below ``COEFF_FLOOR``.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Union

from loguru import logger

from corpus.base import DocumentSource
from learners.loss import LossFunction
from utils.sparse import SparseVector, SparseWeights

DEFAULT_ALPHA = 0.001
DEFAULT_GAMMA = 1e-6
DEFAULT_BIAS = 1.0
DEFAULT_LAMBDA = 0.0001
DEFAULT_MAX_ITER = 50
DEFAULT_BIAS_WEIGHT = 1.0

COEFF_FLOOR = 1e-9
CONVERGENCE_METRICS = ("loss", "update")

Document = Union[Hashable, SparseVector]


@dataclass
class EpochRecord:
    epoch: int
    metric: float
    coeff: float
    bias_weight: float
    n_docs: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "epoch": self.epoch,
            "metric": self.metric,
            "coeff": self.coeff,
            "bias_weight": self.bias_weight,
            "n_docs": self.n_docs,
        }


class SGD:
    """Online L2-regularised linear classifier trained by SGD.

    Documents whose label equals ``positive`` are trained towards ``+1`` and
    all others towards ``-1``. ``predict`` returns the raw margin, which the
    multiclass adapters compare across classifiers; ``classify`` thresholds
    it into a label.

    ``convergence`` selects the per-epoch metric compared against ``gamma``:
    ``"loss"`` is the mean loss of the epoch (measured on each document's
    margin before its update), ``"update"`` the mean step size
    ``|alpha * derivative|``.
    """

    id = "sgd"

    def __init__(
        self,
        source: DocumentSource,
        positive: Hashable,
        negative: Hashable,
        loss: LossFunction,
        alpha: float = DEFAULT_ALPHA,
        gamma: float = DEFAULT_GAMMA,
        bias: float = DEFAULT_BIAS,
        lam: float = DEFAULT_LAMBDA,
        max_iter: int = DEFAULT_MAX_ITER,
        *,
        convergence: str = "loss",
    ) -> None:
        if loss is None:
            raise ValueError("sgd requires a loss function")
        max_iter = int(max_iter)
        if max_iter <= 0:
            raise ValueError(f"max_iter must be a positive integer, got {max_iter}")
        if alpha * lam >= 1.0:
            raise ValueError("alpha * lambda must be below 1 for the shrinkage to stay positive")
        if convergence not in CONVERGENCE_METRICS:
            raise ValueError(
                f"unknown convergence metric {convergence!r}; "
                f"expected one of {', '.join(CONVERGENCE_METRICS)}"
            )
        self._source = source
        self.positive = positive
        self.negative = negative
        self.loss = loss
        self.alpha = float(alpha)
        self.gamma = float(gamma)
        self.bias = float(bias)
        self.lam = float(lam)
        self.max_iter = max_iter
        self.convergence = convergence
        self.reset()

    def reset(self) -> None:
        """Forget everything learned; hyperparameters are kept."""
        self.weights_ = SparseWeights()
        self.coeff_ = 1.0
        self.bias_weight_ = DEFAULT_BIAS_WEIGHT
        self.history_: list[EpochRecord] = []

    @property
    def weights(self) -> dict[int, float]:
        """Logical weights by feature id, ``coeff_ * weights_``."""
        return self.weights_.to_dict(self.coeff_)

    def train(self, doc_ids: Iterable[Hashable]) -> "SGD":
        """Run up to ``max_iter`` epochs over ``doc_ids`` in the given order.

        Training stops early once the epoch metric changes by less than
        ``gamma``. Weights carry over between calls until ``reset``.
        """
        docs = list(doc_ids)
        if not docs:
            logger.debug("sgd: empty training set, nothing to do")
            return self

        prev_metric = math.inf
        for epoch in range(self.max_iter):
            total = 0.0
            for doc_id in docs:
                vec = self._source.vector(doc_id)
                label = 1 if self._source.label(doc_id) == self.positive else -1
                total += self._step(vec, label)
            metric = total / len(docs)
            self.history_.append(
                EpochRecord(
                    epoch=len(self.history_),
                    metric=metric,
                    coeff=self.coeff_,
                    bias_weight=self.bias_weight_,
                    n_docs=len(docs),
                )
            )
            logger.debug(
                "sgd[{}] epoch {}: {}={:.6g} coeff={:.6g}",
                self.positive,
                epoch,
                self.convergence,
                metric,
                self.coeff_,
            )
            if abs(prev_metric - metric) < self.gamma:
                logger.info(
                    "sgd[{}] converged after {} epoch(s)", self.positive, epoch + 1
                )
                break
            prev_metric = metric
        return self

    def _step(self, vec: SparseVector, label: int) -> float:
        margin = self._score(vec)
        d = self.loss.derivative(margin, label)

        if len(vec):
            # stored weights are unscaled, so undo the pending coefficient
            self.weights_.add(vec, (self.alpha / self.coeff_) * d)
        self.bias_weight_ += self.alpha * d * self.bias

        self.coeff_ *= 1.0 - self.alpha * self.lam
        if self.coeff_ < COEFF_FLOOR:
            self.rescale()

        if self.convergence == "loss":
            return float(self.loss.loss(margin, label))
        return abs(self.alpha * d)

    def rescale(self) -> None:
        """Fold ``coeff_`` into the stored weights; logical weights are unchanged."""
        logger.debug("sgd[{}]: rescaling weights, coeff={:.3g}", self.positive, self.coeff_)
        self.weights_.scale(self.coeff_)
        self.coeff_ = 1.0

    def _score(self, vec: SparseVector) -> float:
        return self.coeff_ * self.weights_.dot(vec) + self.bias * self.bias_weight_

    def predict(self, doc: Document) -> float:
        """Raw margin of a document id or an already resolved vector."""
        vec = doc if isinstance(doc, SparseVector) else self._source.vector(doc)
        return self._score(vec)

    def classify(self, doc: Document, threshold: float = 0.0) -> Hashable:
        return self.positive if self.predict(doc) > threshold else self.negative
