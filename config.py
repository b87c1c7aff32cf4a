"""Configuration loading and classifier construction."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Hashable, Literal, Mapping, Optional

import yaml

from corpus.base import DocumentSource
from learners.loss import make_loss_function
from learners.sgd import (
    DEFAULT_ALPHA,
    DEFAULT_BIAS,
    DEFAULT_GAMMA,
    DEFAULT_LAMBDA,
    DEFAULT_MAX_ITER,
    SGD,
)


def make_classifier(
    options: Mapping[str, Any],
    source: DocumentSource,
    positive: Hashable,
    negative: Hashable,
) -> SGD:
    """Build an :class:`SGD` from key-value options.

    Recognised keys are ``loss`` (required), ``alpha``, ``gamma``, ``bias``,
    ``lambda``, ``max-iter`` and ``convergence``; anything missing falls back
    to the library defaults.
    """
    loss_name = options.get("loss")
    if not loss_name:
        raise ValueError("sgd requires a loss function (set 'loss')")
    max_iter = options.get("max-iter", options.get("max_iter", DEFAULT_MAX_ITER))
    return SGD(
        source,
        positive,
        negative,
        make_loss_function(str(loss_name)),
        alpha=float(options.get("alpha", DEFAULT_ALPHA)),
        gamma=float(options.get("gamma", DEFAULT_GAMMA)),
        bias=float(options.get("bias", DEFAULT_BIAS)),
        lam=float(options.get("lambda", options.get("lam", DEFAULT_LAMBDA))),
        max_iter=int(max_iter),
        convergence=str(options.get("convergence", "loss")),
    )


@dataclass
class ClassifierConfig:
    loss: str = "hinge"
    alpha: float = DEFAULT_ALPHA
    gamma: float = DEFAULT_GAMMA
    bias: float = DEFAULT_BIAS
    lam: float = DEFAULT_LAMBDA
    max_iter: int = DEFAULT_MAX_ITER
    convergence: Literal["loss", "update"] = "loss"

    def options(self) -> dict[str, Any]:
        return {
            "loss": self.loss,
            "alpha": self.alpha,
            "gamma": self.gamma,
            "bias": self.bias,
            "lambda": self.lam,
            "max-iter": self.max_iter,
            "convergence": self.convergence,
        }


@dataclass
class CorpusConfig:
    type: Literal["synthetic", "jsonl"] = "synthetic"
    path: Optional[Path] = None
    n_docs: int = 200
    n_features: int = 50
    nnz: int = 8
    max_count: int = 3
    offset: float = 0.0
    label_noise: float = 0.0
    seed: int = 0


@dataclass
class RunConfig:
    mode: Literal["binary", "one-vs-all", "all-vs-all"] = "binary"
    positive: Any = "pos"
    negative: Any = "neg"
    test_fraction: float = 0.2
    shuffle: bool = True
    threshold: float = 0.0
    seed: int = 0


@dataclass
class Config:
    classifier: ClassifierConfig
    corpus: CorpusConfig
    run: RunConfig
    base_path: Path


def load_config(path: str | Path) -> Config:
    cfg_path = Path(path).expanduser().resolve()
    if not cfg_path.exists():
        raise FileNotFoundError(cfg_path)
    with cfg_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}

    base = cfg_path.parent
    clf_raw = raw.get("classifier") or {}
    corpus_raw = raw.get("corpus") or {}
    run_raw = raw.get("run") or {}

    classifier = ClassifierConfig(
        loss=str(clf_raw.get("loss", "hinge")),
        alpha=float(clf_raw.get("alpha", DEFAULT_ALPHA)),
        gamma=float(clf_raw.get("gamma", DEFAULT_GAMMA)),
        bias=float(clf_raw.get("bias", DEFAULT_BIAS)),
        lam=float(clf_raw.get("lambda", clf_raw.get("lam", DEFAULT_LAMBDA))),
        max_iter=int(clf_raw.get("max-iter", clf_raw.get("max_iter", DEFAULT_MAX_ITER))),
        convergence=str(clf_raw.get("convergence", "loss")),
    )
    if classifier.max_iter <= 0:
        raise ValueError(f"classifier.max-iter must be positive, got {classifier.max_iter}")
    make_loss_function(classifier.loss)  # unknown loss names fail here

    corpus_type = str(corpus_raw.get("type", "synthetic"))
    corpus_path = corpus_raw.get("path")
    if corpus_type == "jsonl" and not corpus_path:
        raise ValueError("corpus.path is required for jsonl corpora")
    if corpus_type not in ("synthetic", "jsonl"):
        raise ValueError(f"unknown corpus type: {corpus_type}")
    corpus = CorpusConfig(
        type=corpus_type,
        path=(base / corpus_path).expanduser().resolve() if corpus_path else None,
        n_docs=int(corpus_raw.get("n_docs", 200)),
        n_features=int(corpus_raw.get("n_features", 50)),
        nnz=int(corpus_raw.get("nnz", 8)),
        max_count=int(corpus_raw.get("max_count", 3)),
        offset=float(corpus_raw.get("offset", 0.0)),
        label_noise=float(corpus_raw.get("label_noise", 0.0)),
        seed=int(corpus_raw.get("seed", 0)),
    )

    run = RunConfig(
        mode=str(run_raw.get("mode", "binary")),
        positive=run_raw.get("positive", "pos"),
        negative=run_raw.get("negative", "neg"),
        test_fraction=float(run_raw.get("test_fraction", 0.2)),
        shuffle=bool(run_raw.get("shuffle", True)),
        threshold=float(run_raw.get("threshold", 0.0)),
        seed=int(run_raw.get("seed", 0)),
    )
    if run.mode not in ("binary", "one-vs-all", "all-vs-all"):
        raise ValueError(f"unknown run mode: {run.mode}")
    if not 0.0 <= run.test_fraction < 1.0:
        raise ValueError("run.test_fraction must lie in [0, 1)")

    return Config(classifier=classifier, corpus=corpus, run=run, base_path=base)
