"""Viewer context and the reconciled, display-ready view."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pvaregistry.domain.model import ProductRecord, utcnow
from pvaregistry.domain.regions import GLOBAL_REGION


@dataclass(frozen=True, slots=True)
class ViewerContext:
    """Who is looking and through which lens.

    ``is_admin_view`` only takes effect for administrators; a non-admin asking
    for the admin view still gets the public one.
    """

    is_admin: bool = False
    is_admin_view: bool = False
    selected_country: str = GLOBAL_REGION
    user_id: str | None = None

    @property
    def admin_view(self) -> bool:
        return self.is_admin and self.is_admin_view


@dataclass(frozen=True, slots=True)
class ReconciledView:
    records: tuple[ProductRecord, ...]
    context: ViewerContext
    pending: tuple[ProductRecord, ...] = ()
    own_pending: tuple[ProductRecord, ...] = ()
    remote_ok: bool = True
    errors: tuple[str, ...] = ()
    refreshed_at: datetime = field(default_factory=utcnow)

    def __len__(self) -> int:
        return len(self.records)
