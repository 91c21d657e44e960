"""Product records and their pre-persistence candidates."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, ClassVar
from uuid import uuid4

from pvaregistry.domain.errors import InvalidRecordError
from pvaregistry.domain.model.enums import ProductStatus

if TYPE_CHECKING:
    from collections.abc import Mapping

type NaturalKey = tuple[str, str]


def new_record_id() -> str:
    return uuid4().hex


def utcnow() -> datetime:
    return datetime.now(UTC)


def natural_key(brand: str, name: str) -> NaturalKey:
    """Case-folded ``(brand, name)`` identity used for duplicate detection."""

    return (brand.strip().casefold(), name.strip().casefold())


def percentage_problem(status: ProductStatus, percentage: float | None) -> str | None:
    """Return why ``percentage`` is inconsistent with ``status``, or ``None`` if it is fine."""

    if percentage is None:
        return None
    if not 0 <= percentage <= 100:
        return f"percentage must be between 0 and 100, got {percentage:g}"
    if status is ProductStatus.CONTAINS:
        if percentage == 0:
            return "a product that contains PVA cannot report 0%"
        return None
    if status is ProductStatus.VERIFIED_FREE:
        if percentage != 0:
            return f"a verified-free product cannot report {percentage:g}%"
        return None
    return f"status {status.value!r} does not carry a percentage"


def ensure_consistent(status: ProductStatus, percentage: float | None) -> None:
    problem = percentage_problem(status, percentage)
    if problem is not None:
        raise InvalidRecordError(problem)


@dataclass(eq=False, kw_only=True)
class CandidateRecord:
    """Classified, not yet persisted submission."""

    brand: str
    name: str
    type: str
    status: ProductStatus
    percentage: float | None = None
    countries: tuple[str, ...] = ()
    description: str = ""
    image_url: str | None = None
    video_url: str | None = None
    website_url: str | None = None

    @property
    def natural_key(self) -> NaturalKey:
        return natural_key(self.brand, self.name)

    def missing_fields(self) -> list[str]:
        return [
            label
            for label, value in (("brand", self.brand), ("name", self.name), ("type", self.type))
            if not value or not value.strip()
        ]

    def validate(self) -> None:
        missing = self.missing_fields()
        if missing:
            raise InvalidRecordError(f"Missing required fields: {', '.join(missing)}")
        ensure_consistent(self.status, self.percentage)


@dataclass(eq=False, kw_only=True)
class ProductRecord:
    """Canonical registry entry.

    ``countries`` is empty for the ``Global`` wildcard. The ``brand_*`` fields are
    local moderation state and are never written to the remote store.
    """

    id: str = field(default_factory=new_record_id)
    brand: str
    name: str
    type: str
    status: ProductStatus = ProductStatus.NEEDS_VERIFICATION
    percentage: float | None = None
    approved: bool = False
    countries: tuple[str, ...] = ()
    description: str = ""
    image_url: str | None = None
    video_url: str | None = None
    website_url: str | None = None
    owner_id: str | None = None
    brand_verified: bool = False
    brand_ownership_requested: bool = False
    brand_contact_email: str | None = None
    submitted_at: datetime = field(default_factory=utcnow)
    updated_at: datetime | None = None

    CACHE_ONLY_FIELDS: ClassVar[tuple[str, ...]] = (
        "brand_verified",
        "brand_ownership_requested",
        "brand_contact_email",
    )

    @classmethod
    def from_candidate(
        cls,
        candidate: CandidateRecord,
        *,
        approved: bool,
        owner_id: str | None = None,
        submitted_at: datetime | None = None,
    ) -> ProductRecord:
        return cls(
            brand=candidate.brand.strip(),
            name=candidate.name.strip(),
            type=candidate.type.strip(),
            status=candidate.status,
            percentage=candidate.percentage,
            approved=approved,
            countries=candidate.countries,
            description=candidate.description,
            image_url=candidate.image_url,
            video_url=candidate.video_url,
            website_url=candidate.website_url,
            owner_id=owner_id,
            submitted_at=submitted_at or utcnow(),
        )

    @property
    def natural_key(self) -> NaturalKey:
        return natural_key(self.brand, self.name)

    @property
    def is_pending(self) -> bool:
        return self.approved is not True

    def with_cache_state_from(self, other: ProductRecord) -> ProductRecord:
        """Return a copy carrying ``other``'s local-only brand fields."""

        return replace(self, **{name: getattr(other, name) for name in self.CACHE_ONLY_FIELDS})


EDITABLE_FIELDS: frozenset[str] = frozenset(
    {
        "brand",
        "name",
        "type",
        "status",
        "percentage",
        "approved",
        "countries",
        "description",
        "image_url",
        "video_url",
        "website_url",
    }
)


@dataclass(frozen=True, slots=True)
class ProductChanges:
    """Administrator edit of a persisted record, restricted to remote-backed fields."""

    values: Mapping[str, object]

    def __post_init__(self) -> None:
        unknown = set(self.values) - EDITABLE_FIELDS
        if unknown:
            raise InvalidRecordError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")
        if not self.values:
            raise InvalidRecordError("No changes supplied")
        status = self.values.get("status")
        if status is not None and not isinstance(status, ProductStatus):
            raise InvalidRecordError(f"status must be a ProductStatus, got {status!r}")

    @classmethod
    def of(cls, **values: object) -> ProductChanges:
        return cls(values=dict(values))

    def apply_to(self, record: ProductRecord, *, now: datetime | None = None) -> ProductRecord:
        values: dict[str, Any] = dict(self.values)
        updated = replace(record, **values, updated_at=now or utcnow())
        ensure_consistent(updated.status, updated.percentage)
        return updated

    def check(self) -> None:
        """Validate what can be validated without the current record."""

        if "status" in self.values and "percentage" in self.values:
            status = self.values["status"]
            percentage = self.values["percentage"]
            if isinstance(status, ProductStatus) and (
                percentage is None or isinstance(percentage, int | float)
            ):
                ensure_consistent(status, percentage)
