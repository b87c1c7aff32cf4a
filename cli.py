"""Command-line interface for SGD classification experiments."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

import matplotlib
import numpy as np
from loguru import logger

from config import Config, load_config
from corpus import InMemoryDocumentSource, SyntheticLinearCorpus
from plots.metrics import generate_plots
from runner.experiment import run_experiment
from telemetry.writer import write_history, write_summary


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Online SGD linear classifier")
    parser.add_argument(
        "--config",
        required=True,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "--out",
        required=True,
        help="Output directory for history, summary and plots.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="loguru level for stderr output (default: INFO).",
    )
    parser.add_argument(
        "--no-plots",
        action="store_true",
        help="Skip writing plots.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    logger.remove()
    logger.add(sys.stderr, level=args.log_level.upper())

    cfg = load_config(args.config)
    source = _make_corpus(cfg)
    result = run_experiment(cfg, source)

    out_dir = Path(args.out)
    write_history(out_dir / "history.jsonl", result.records())
    write_summary(out_dir / "summary.json", result.summary())
    if not args.no_plots:
        matplotlib.use("Agg")
        generate_plots(result.history, out_dir / "plots")
    logger.info("wrote results to {}", out_dir)


def _make_corpus(cfg: Config) -> InMemoryDocumentSource:
    corpus = cfg.corpus
    if corpus.type == "jsonl":
        source = InMemoryDocumentSource.load_jsonl(corpus.path)
    elif corpus.type == "synthetic":
        source = SyntheticLinearCorpus(
            n_docs=corpus.n_docs,
            n_features=corpus.n_features,
            nnz=corpus.nnz,
            max_count=corpus.max_count,
            offset=corpus.offset,
            label_noise=corpus.label_noise,
            positive=cfg.run.positive,
            negative=cfg.run.negative,
            rng=np.random.default_rng(corpus.seed),
        )
    else:
        raise ValueError(f"unknown corpus type: {corpus.type}")
    logger.info("loaded {} documents ({} corpus)", len(source), corpus.type)
    return source


if __name__ == "__main__":
    main()
