"""Reconciliation of the offline cache and the remote store."""

from __future__ import annotations

from .engine import DataReconciler
from .updates import RecordUpdater, UpdateOutcome
from .view import ReconciledView, ViewerContext
from .visibility import (
    approved_only,
    drop_shadowed,
    filter_by_region,
    merge_sources,
    pending_only,
)

__all__ = [
    "DataReconciler",
    "ReconciledView",
    "RecordUpdater",
    "UpdateOutcome",
    "ViewerContext",
    "approved_only",
    "drop_shadowed",
    "filter_by_region",
    "merge_sources",
    "pending_only",
]
