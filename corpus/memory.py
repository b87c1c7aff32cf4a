"""Dictionary-backed document source."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Hashable, Iterable, Mapping, Tuple, Union

from utils.sparse import SparseVector

from .base import DocumentNotFoundError, DocumentSource

Features = Union[SparseVector, Mapping[int, float], Iterable[Tuple[int, float]]]


class InMemoryDocumentSource(DocumentSource):
    def __init__(self) -> None:
        self._vectors: dict[Hashable, SparseVector] = {}
        self._labels: dict[Hashable, Hashable] = {}

    def add(self, doc_id: Hashable, features: Features, label: Hashable) -> None:
        if isinstance(features, SparseVector):
            vec = features
        elif isinstance(features, Mapping):
            vec = SparseVector.from_mapping(features)
        else:
            vec = SparseVector.from_pairs(features)
        self._vectors[doc_id] = vec
        self._labels[doc_id] = label

    def vector(self, doc_id: Hashable) -> SparseVector:
        try:
            return self._vectors[doc_id]
        except KeyError:
            raise DocumentNotFoundError(doc_id) from None

    def label(self, doc_id: Hashable) -> Hashable:
        try:
            return self._labels[doc_id]
        except KeyError:
            raise DocumentNotFoundError(doc_id) from None

    def doc_ids(self) -> list:
        return list(self._vectors)

    def labels(self) -> list:
        """Distinct labels, sorted by their string form."""
        return sorted(set(self._labels.values()), key=str)

    def __len__(self) -> int:
        return len(self._vectors)

    @classmethod
    def load_jsonl(cls, path: str | Path) -> "InMemoryDocumentSource":
        """Read a corpus with one ``{"id", "label", "features"}`` object per line."""
        target = Path(path)
        if not target.exists():
            raise FileNotFoundError(target)
        source = cls()
        with target.open("r", encoding="utf-8") as handle:
            for lineno, line in enumerate(handle, start=1):
                line = line.strip()
                if not line:
                    continue
                record = json.loads(line)
                try:
                    doc_id = record["id"]
                    label = record["label"]
                    raw = record.get("features") or {}
                except KeyError as exc:
                    raise ValueError(f"{target}:{lineno}: missing field {exc}") from exc
                source.add(doc_id, _parse_features(raw), label)
        return source


def _parse_features(raw: Any) -> dict[int, float]:
    if isinstance(raw, Mapping):
        return {int(k): float(v) for k, v in raw.items()}
    return {int(k): float(v) for k, v in raw}
