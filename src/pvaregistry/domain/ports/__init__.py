"""Domain port definitions for adapters."""

from __future__ import annotations

from .extraction import TextExtractor
from .persistence import ConnectionStatus, ProductCache, RemoteProductStore, SubmissionCounter

__all__ = [
    "ConnectionStatus",
    "ProductCache",
    "RemoteProductStore",
    "SubmissionCounter",
    "TextExtractor",
]
