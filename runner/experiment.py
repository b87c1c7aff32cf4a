"""Train/evaluate orchestration for a configured classifier."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Hashable, Optional, Sequence, Tuple

import numpy as np
from loguru import logger

from config import Config, make_classifier
from corpus.base import DocumentSource
from learners.multiclass import AllVsAll, OneVsAll
from learners.sgd import SGD, EpochRecord


@dataclass
class ExperimentResult:
    history: dict[str, list[EpochRecord]]
    train_ids: list
    test_ids: list
    predictions: dict[Hashable, Hashable] = field(default_factory=dict)
    accuracy: Optional[float] = None

    def records(self) -> list[dict[str, Any]]:
        """Flat per-epoch records tagged with the classifier they belong to."""
        rows = []
        for name, records in self.history.items():
            for rec in records:
                rows.append({"classifier": name, **rec.to_dict()})
        return rows

    def summary(self) -> dict[str, Any]:
        return {
            "n_train": len(self.train_ids),
            "n_test": len(self.test_ids),
            "accuracy": self.accuracy,
            "epochs": {name: len(records) for name, records in self.history.items()},
        }


def split_documents(
    doc_ids: Sequence[Hashable],
    test_fraction: float,
    rng: np.random.Generator,
) -> Tuple[list, list]:
    """Seeded train/test split; both halves keep the corpus order."""
    n_test = int(round(len(doc_ids) * test_fraction))
    test_idx = set(rng.permutation(len(doc_ids))[:n_test].tolist())
    train = [d for i, d in enumerate(doc_ids) if i not in test_idx]
    test = [d for i, d in enumerate(doc_ids) if i in test_idx]
    return train, test


def run_experiment(cfg: Config, source: DocumentSource) -> ExperimentResult:
    rng = np.random.default_rng(cfg.run.seed)
    train_ids, test_ids = split_documents(source.doc_ids(), cfg.run.test_fraction, rng)
    if cfg.run.shuffle:
        train_ids = [train_ids[i] for i in rng.permutation(len(train_ids))]

    options = cfg.classifier.options()
    if cfg.run.mode == "binary":
        model = make_classifier(options, source, cfg.run.positive, cfg.run.negative)
        model.train(train_ids)
        history = {str(model.positive): list(model.history_)}

        def predict(doc_id: Hashable) -> Hashable:
            return model.classify(doc_id, cfg.run.threshold)

        def truth(doc_id: Hashable) -> Hashable:
            return cfg.run.positive if source.label(doc_id) == cfg.run.positive else cfg.run.negative

    elif cfg.run.mode in ("one-vs-all", "all-vs-all"):
        adapter = OneVsAll if cfg.run.mode == "one-vs-all" else AllVsAll
        multi = adapter(
            source, lambda pos, neg: make_classifier(options, source, pos, neg)
        )
        multi.train(train_ids)
        history = {
            _classifier_name(key): list(clf.history_)
            for key, clf in multi.classifiers.items()
            if isinstance(clf, SGD)
        }
        predict = multi.classify
        truth = source.label
    else:
        raise ValueError(f"unsupported run mode: {cfg.run.mode}")

    predictions = {doc_id: predict(doc_id) for doc_id in test_ids}
    accuracy = None
    if test_ids:
        hits = sum(1 for doc_id in test_ids if predictions[doc_id] == truth(doc_id))
        accuracy = hits / len(test_ids)
    logger.info(
        "{} run: {} train / {} test documents, accuracy={}",
        cfg.run.mode,
        len(train_ids),
        len(test_ids),
        "n/a" if accuracy is None else f"{accuracy:.4f}",
    )
    return ExperimentResult(
        history=history,
        train_ids=train_ids,
        test_ids=test_ids,
        predictions=predictions,
        accuracy=accuracy,
    )


def _classifier_name(key: Any) -> str:
    if isinstance(key, tuple):
        return "-vs-".join(str(k) for k in key)
    return str(key)
