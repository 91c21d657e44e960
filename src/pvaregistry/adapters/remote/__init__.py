"""Public interface for the remote product store adapter."""

from __future__ import annotations

from .client import RestProductStore
from .schema import RemoteProductRow
from .translator import changes_to_row, record_to_row, row_to_record

__all__ = [
    "RemoteProductRow",
    "RestProductStore",
    "changes_to_row",
    "record_to_row",
    "row_to_record",
]
