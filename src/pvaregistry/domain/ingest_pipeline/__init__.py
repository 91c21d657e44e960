"""Bulk ingestion pipeline for tabular product uploads."""

from __future__ import annotations

from .orchestrator import BulkIngestionPipeline, BulkIngestResult, RejectedRow, Submitter
from .parsing import BULK_HEADER, BulkRow, parse_bulk_csv, template_csv

__all__ = [
    "BULK_HEADER",
    "BulkIngestResult",
    "BulkIngestionPipeline",
    "BulkRow",
    "RejectedRow",
    "Submitter",
    "parse_bulk_csv",
    "template_csv",
]
