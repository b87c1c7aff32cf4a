"""Document sources and built-in corpora."""

from .base import DocumentNotFoundError, DocumentSource
from .memory import InMemoryDocumentSource
from .synthetic import SyntheticLinearCorpus

__all__ = [
    "DocumentNotFoundError",
    "DocumentSource",
    "InMemoryDocumentSource",
    "SyntheticLinearCorpus",
]
