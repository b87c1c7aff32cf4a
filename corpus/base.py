"""Base types for document sources."""

from __future__ import annotations

from typing import Hashable, Protocol

from utils.sparse import SparseVector


class DocumentNotFoundError(KeyError):
    """Raised when a document id cannot be resolved."""


class DocumentSource(Protocol):
    """Read-only store mapping document ids to vectors and labels."""

    def vector(self, doc_id: Hashable) -> SparseVector:
        """Return the sparse feature vector of ``doc_id``."""

    def label(self, doc_id: Hashable) -> Hashable:
        """Return the ground-truth class label of ``doc_id``."""

    def doc_ids(self) -> list:
        """Return every document id, in insertion order."""
