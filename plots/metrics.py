"""Plotting utilities for training curves."""

from __future__ import annotations

from pathlib import Path
from typing import Mapping, Sequence

import matplotlib.pyplot as plt
import numpy as np

from learners.sgd import EpochRecord


def generate_plots(
    history: Mapping[str, Sequence[EpochRecord]], out_dir: str | Path
) -> list[Path]:
    """Draw the epoch metric and coefficient traces of every classifier."""
    curves = {name: list(records) for name, records in history.items() if records}
    if not curves:
        return []
    out_path = Path(out_dir)
    out_path.mkdir(parents=True, exist_ok=True)
    written = []

    plt.figure(figsize=(6, 4))
    for name, records in curves.items():
        epochs = np.array([rec.epoch for rec in records], dtype=float)
        metric = np.array([rec.metric for rec in records], dtype=float)
        plt.plot(epochs, metric, marker="o", markersize=3, label=name)
    plt.xlabel("epoch")
    plt.ylabel("epoch metric")
    if len(curves) > 1:
        plt.legend()
    plt.tight_layout()
    written.append(out_path / "epoch_metric.png")
    plt.savefig(written[-1], dpi=150)
    plt.close()

    plt.figure(figsize=(6, 4))
    for name, records in curves.items():
        epochs = np.array([rec.epoch for rec in records], dtype=float)
        coeff = np.array([rec.coeff for rec in records], dtype=float)
        plt.semilogy(epochs, coeff, label=name)
    plt.xlabel("epoch")
    plt.ylabel("weight coefficient")
    plt.tight_layout()
    written.append(out_path / "coefficient.png")
    plt.savefig(written[-1], dpi=150)
    plt.close()

    return written
