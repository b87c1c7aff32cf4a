"""Margin-based loss functions for binary linear classifiers.

Every loss takes the raw margin (score) of a document and its true label in
``{+1, -1}``. ``derivative`` returns the step direction the trainer adds to
the weights, i.e. the *negative* derivative of the loss with respect to the
margin.
"""

from __future__ import annotations

import math
from typing import Callable, Dict, Protocol


class LossFunction(Protocol):
    id: str

    def loss(self, margin: float, label: int) -> float:
        ...

    def derivative(self, margin: float, label: int) -> float:
        ...


class Hinge:
    id = "hinge"

    def loss(self, margin: float, label: int) -> float:
        return max(0.0, 1.0 - label * margin)

    def derivative(self, margin: float, label: int) -> float:
        return float(label) if label * margin < 1.0 else 0.0


class Perceptron:
    id = "perceptron"

    def loss(self, margin: float, label: int) -> float:
        return max(0.0, -label * margin)

    def derivative(self, margin: float, label: int) -> float:
        return float(label) if label * margin <= 0.0 else 0.0


class SmoothHinge:
    """Hinge with a quadratic segment on ``0 < z < 1``."""

    id = "smooth-hinge"

    def loss(self, margin: float, label: int) -> float:
        z = label * margin
        if z <= 0.0:
            return 0.5 - z
        if z < 1.0:
            return 0.5 * (1.0 - z) ** 2
        return 0.0

    def derivative(self, margin: float, label: int) -> float:
        z = label * margin
        if z <= 0.0:
            return float(label)
        if z < 1.0:
            return label * (1.0 - z)
        return 0.0


class SquaredHinge:
    id = "squared-hinge"

    def loss(self, margin: float, label: int) -> float:
        z = label * margin
        return 0.5 * (1.0 - z) ** 2 if z < 1.0 else 0.0

    def derivative(self, margin: float, label: int) -> float:
        z = label * margin
        return label * (1.0 - z) if z < 1.0 else 0.0


class Huber:
    id = "huber"

    def loss(self, margin: float, label: int) -> float:
        abs_diff = abs(margin - label)
        if abs_diff <= 1.0:
            return abs_diff * abs_diff
        return 2.0 * abs_diff - 1.0

    def derivative(self, margin: float, label: int) -> float:
        diff = margin - label
        if abs(diff) <= 1.0:
            return -2.0 * diff
        return -2.0 if diff > 0 else 2.0


class LeastSquares:
    id = "least-squares"

    def loss(self, margin: float, label: int) -> float:
        return 0.5 * (margin - label) ** 2

    def derivative(self, margin: float, label: int) -> float:
        return label - margin


class Logistic:
    id = "logistic"

    def loss(self, margin: float, label: int) -> float:
        z = label * margin
        # log(1 + exp(-z)) without overflow for large |z|
        if z >= 0:
            return math.log1p(math.exp(-z))
        return -z + math.log1p(math.exp(z))

    def derivative(self, margin: float, label: int) -> float:
        z = label * margin
        if z >= 0:
            ez = math.exp(-z)
            return label * ez / (1.0 + ez)
        return label / (1.0 + math.exp(z))


class ModifiedHuber:
    id = "modified-huber"

    def loss(self, margin: float, label: int) -> float:
        z = label * margin
        if z < -1.0:
            return -4.0 * z
        if z < 1.0:
            return (1.0 - z) ** 2
        return 0.0

    def derivative(self, margin: float, label: int) -> float:
        z = label * margin
        if z < -1.0:
            return 4.0 * label
        if z < 1.0:
            return 2.0 * label * (1.0 - z)
        return 0.0


_LOSS_REGISTRY: Dict[str, Callable[[], LossFunction]] = {
    cls.id: cls
    for cls in (
        Hinge,
        Huber,
        LeastSquares,
        Logistic,
        ModifiedHuber,
        Perceptron,
        SmoothHinge,
        SquaredHinge,
    )
}


def make_loss_function(name: str) -> LossFunction:
    """Instantiate the loss registered under ``name`` (underscores allowed)."""
    key = name.strip().lower().replace("_", "-")
    if key not in _LOSS_REGISTRY:
        available = ", ".join(sorted(_LOSS_REGISTRY))
        raise ValueError(f"unknown loss function {name!r}. Available: {available}")
    return _LOSS_REGISTRY[key]()


def available_losses() -> list[str]:
    return sorted(_LOSS_REGISTRY)
