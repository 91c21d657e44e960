"""Bulk CSV parsing into row objects.

Parsing fails as a whole (``BulkParseError``) only for structural problems: no
recognisable delimiter, missing key headers, malformed quoting or oversized
fields, or no data rows. Everything about individual cells is left to row
validation so a single bad row never aborts the batch.
"""

from __future__ import annotations

import csv
import io
import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from pvaregistry.domain.errors import BulkParseError, InvalidRecordError
from pvaregistry.domain.model import CandidateRecord, ProductStatus
from pvaregistry.domain.regions import split_countries

if TYPE_CHECKING:
    from collections.abc import Mapping

BULK_HEADER: Final[tuple[str, ...]] = (
    "brand",
    "name",
    "type",
    "status",
    "percentage",
    "description",
    "imageUrl",
    "videoUrl",
    "websiteUrl",
)

TEMPLATE_EXAMPLE_ROW: Final[tuple[str, ...]] = (
    "EcoWash",
    "Laundry Pods Original",
    "Laundry Detergent",
    "contains",
    "12.5",
    "Water-soluble pod film",
    "https://example.com/pods.jpg",
    "",
    "https://example.com/pods",
)

_HEADER_ALIASES: Final[dict[str, str]] = {
    "brand": "brand",
    "brandname": "brand",
    "manufacturer": "brand",
    "name": "name",
    "productname": "name",
    "product": "name",
    "type": "type",
    "producttype": "type",
    "category": "type",
    "status": "status",
    "pvastatus": "status",
    "percentage": "percentage",
    "pvapercentage": "percentage",
    "pvapercentage(ifknown)": "percentage",
    "description": "description",
    "notes": "notes",
    "additionalnotes": "notes",
    "imageurl": "image_url",
    "videourl": "video_url",
    "websiteurl": "website_url",
    "haspva": "has_pva",
    "containspva": "has_pva",
    "country": "countries",
    "countries": "countries",
    "region": "countries",
}

_REQUIRED_HEADERS: Final[tuple[str, ...]] = ("brand", "name", "type")

_CONTAINS_PHRASES: Final[tuple[str, ...]] = (
    "contains polyvinyl alcohol",
    "contains pva",
    "pva listed in ingredients",
)
_FREE_PHRASES: Final[tuple[str, ...]] = ("pva-free", "no pva", "verified free")

_NUMERIC_NOISE: Final[re.Pattern[str]] = re.compile(r"[^0-9.,\-]")


def template_csv() -> str:
    """Header row plus one example row, ready to download."""

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(BULK_HEADER)
    writer.writerow(TEMPLATE_EXAMPLE_ROW)
    return buffer.getvalue()


def _canonical_header(raw: str) -> str | None:
    key = re.sub(r"\s+", "", raw.strip().lower().lstrip("\ufeff"))
    return _HEADER_ALIASES.get(key)


def _detect_delimiter(header_line: str) -> str:
    if ";" in header_line:
        return ";"
    if "," in header_line:
        return ","
    raise BulkParseError("Could not detect a delimiter; use commas or semicolons")


def _cell(values: Mapping[str, str], key: str) -> str:
    return values.get(key, "").strip()


def _optional(value: str) -> str | None:
    return value or None


def _status_from_has_pva(value: str) -> ProductStatus:
    answer = value.strip().lower()
    if answer in {"yes", "y", "true"}:
        return ProductStatus.CONTAINS
    if answer in {"no", "n", "false"}:
        return ProductStatus.VERIFIED_FREE
    return ProductStatus.INCONCLUSIVE


def _status_from_notes(notes: str) -> ProductStatus | None:
    lowered = notes.lower()
    if any(phrase in lowered for phrase in _CONTAINS_PHRASES):
        return ProductStatus.CONTAINS
    if any(phrase in lowered for phrase in _FREE_PHRASES):
        return ProductStatus.VERIFIED_FREE
    return None


def parse_percentage(raw: str) -> float | None:
    cleaned = _NUMERIC_NOISE.sub("", raw).replace(",", ".")
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError as exc:
        raise InvalidRecordError(f"Percentage {raw!r} is not a number") from exc


@dataclass(slots=True)
class BulkRow:
    """One data row of a bulk upload, cells already mapped to canonical names."""

    line: int
    values: dict[str, str] = field(default_factory=dict)

    @property
    def brand(self) -> str:
        return _cell(self.values, "brand")

    @property
    def name(self) -> str:
        return _cell(self.values, "name")

    @property
    def type(self) -> str:
        return _cell(self.values, "type")

    def label(self) -> str:
        return f"line {self.line} ({self.brand or '?'} / {self.name or '?'})"

    def resolve_status(self) -> ProductStatus | None:
        explicit = _cell(self.values, "status")
        if explicit:
            try:
                return ProductStatus.parse(explicit)
            except ValueError as exc:
                raise InvalidRecordError(str(exc)) from exc
        has_pva = _cell(self.values, "has_pva")
        if has_pva:
            return _status_from_has_pva(has_pva)
        notes = _cell(self.values, "notes")
        if notes:
            return _status_from_notes(notes)
        return None

    def missing_fields(self) -> list[str]:
        return self._missing(self.resolve_status())

    def _missing(self, status: ProductStatus | None) -> list[str]:
        missing = [key for key in ("brand", "name", "type") if not _cell(self.values, key)]
        if status is None:
            missing.append("status")
        return missing

    def to_candidate(self, *, countries: tuple[str, ...] | None = None) -> CandidateRecord:
        """Validate the row and build a candidate; raises ``InvalidRecordError``."""

        status = self.resolve_status()
        missing = self._missing(status)
        if missing or status is None:
            raise InvalidRecordError(f"Missing required fields: {', '.join(missing)}")
        description = _cell(self.values, "description") or _cell(self.values, "notes")
        candidate = CandidateRecord(
            brand=self.brand,
            name=self.name,
            type=self.type,
            status=status,
            percentage=parse_percentage(_cell(self.values, "percentage")),
            countries=(
                countries
                if countries is not None
                else split_countries(_cell(self.values, "countries"))
            ),
            description=description,
            image_url=_optional(_cell(self.values, "image_url")),
            video_url=_optional(_cell(self.values, "video_url")),
            website_url=_optional(_cell(self.values, "website_url")),
        )
        candidate.validate()
        return candidate


def parse_bulk_csv(text: str) -> list[BulkRow]:
    """Parse CSV text into rows; blank lines are skipped."""

    stripped = text.strip().lstrip("\ufeff")
    if not stripped:
        raise BulkParseError("The file is empty")
    header_line = stripped.splitlines()[0]
    delimiter = _detect_delimiter(header_line)

    reader = csv.reader(io.StringIO(stripped), delimiter=delimiter, skipinitialspace=True)
    rows: list[BulkRow] = []
    try:
        headers = [_canonical_header(header) for header in next(reader)]
        missing = [required for required in _REQUIRED_HEADERS if required not in headers]
        if missing:
            raise BulkParseError(
                f"Missing required headers: {', '.join(missing)}. Please use the template."
            )
        for cells in reader:
            if not any(cell.strip() for cell in cells):
                continue
            padded = [*cells, *([""] * (len(headers) - len(cells)))][: len(headers)]
            values = {
                header: cell
                for header, cell in zip(headers, padded, strict=True)
                if header is not None
            }
            rows.append(BulkRow(line=reader.line_num, values=values))
    except csv.Error as exc:
        raise BulkParseError(f"Malformed CSV near line {reader.line_num}: {exc}") from exc

    if not rows:
        raise BulkParseError("The file contains a header but no data rows")
    return rows
