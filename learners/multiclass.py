"""Multiclass adapters built from independent binary classifiers."""

from __future__ import annotations

from collections import Counter
from itertools import combinations
from typing import Callable, Hashable, Iterable, Protocol

from loguru import logger

from corpus.base import DocumentSource
from learners.sgd import Document


class BinaryClassifier(Protocol):
    positive: Hashable
    negative: Hashable

    def train(self, doc_ids: Iterable[Hashable]) -> object:
        ...

    def predict(self, doc: Document) -> float:
        ...

    def classify(self, doc: Document, threshold: float = 0.0) -> Hashable:
        ...


BinaryFactory = Callable[[Hashable, Hashable], BinaryClassifier]

REST = "__rest__"


def _discover_labels(source: DocumentSource, docs: list) -> list:
    return sorted({source.label(doc_id) for doc_id in docs}, key=str)


class OneVsAll:
    """One classifier per label, trained with that label against the rest."""

    def __init__(self, source: DocumentSource, make_binary: BinaryFactory) -> None:
        self._source = source
        self._make_binary = make_binary
        self.classifiers: dict[Hashable, BinaryClassifier] = {}

    def train(self, doc_ids: Iterable[Hashable]) -> "OneVsAll":
        docs = list(doc_ids)
        labels = _discover_labels(self._source, docs)
        logger.debug("one-vs-all: training {} classifiers", len(labels))
        for label in labels:
            if label not in self.classifiers:
                self.classifiers[label] = self._make_binary(label, REST)
            self.classifiers[label].train(docs)
        return self

    def scores(self, doc: Document) -> dict[Hashable, float]:
        return {label: clf.predict(doc) for label, clf in self.classifiers.items()}

    def classify(self, doc: Document) -> Hashable:
        if not self.classifiers:
            raise RuntimeError("one-vs-all classifier has not been trained")
        scores = self.scores(doc)
        return max(scores, key=scores.__getitem__)

    def reset(self) -> None:
        self.classifiers.clear()


class AllVsAll:
    """One classifier per label pair; the label winning most duels is chosen."""

    def __init__(self, source: DocumentSource, make_binary: BinaryFactory) -> None:
        self._source = source
        self._make_binary = make_binary
        self.classifiers: dict[tuple, BinaryClassifier] = {}
        self._labels: list = []

    def train(self, doc_ids: Iterable[Hashable]) -> "AllVsAll":
        docs = list(doc_ids)
        labels = _discover_labels(self._source, docs)
        if len(labels) < 2:
            raise ValueError(
                f"all-vs-all needs documents of at least two labels, got {labels!r}"
            )
        self._labels = sorted(set(self._labels) | set(labels), key=str)
        for pos, neg in combinations(labels, 2):
            pair_docs = [
                doc_id for doc_id in docs if self._source.label(doc_id) in (pos, neg)
            ]
            if (pos, neg) not in self.classifiers:
                self.classifiers[(pos, neg)] = self._make_binary(pos, neg)
            self.classifiers[(pos, neg)].train(pair_docs)
        logger.debug(
            "all-vs-all: {} labels, {} pairwise classifiers",
            len(self._labels),
            len(self.classifiers),
        )
        return self

    def classify(self, doc: Document) -> Hashable:
        if not self.classifiers:
            raise RuntimeError("all-vs-all classifier has not been trained")
        votes: Counter = Counter()
        for clf in self.classifiers.values():
            votes[clf.classify(doc)] += 1
        best = max(votes.values())
        # ties go to the label sorting first
        return next(label for label in self._labels if votes[label] == best)

    def reset(self) -> None:
        self.classifiers.clear()
        self._labels = []
