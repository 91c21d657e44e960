"""Pydantic models describing rows of the remote product table."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class RemoteBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class RemoteProductRow(RemoteBaseModel):
    """One ``product_submissions`` row; column names are lower-case without separators."""

    id: str
    name: str
    brand: str
    type: str = ""
    description: str | None = None
    pvastatus: str | None = None
    pvapercentage: float | None = None
    approved: bool | None = None
    country: str | None = None
    websiteurl: str | None = None
    videourl: str | None = None
    imageurl: str | None = None
    owner_id: str | None = None
    createdat: datetime | None = None
    updatedat: datetime | None = None

    @field_validator("id", "owner_id", mode="before")
    @classmethod
    def _stringify_identifier(cls, value: object) -> object:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("type", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    _normalize_optional = field_validator(
        "description",
        "pvastatus",
        "country",
        "websiteurl",
        "videourl",
        "imageurl",
        "owner_id",
        mode="before",
    )(_blank_to_none)


class RemoteErrorPayload(RemoteBaseModel):
    message: str
    code: str | None = None
    details: str | None = None
    hint: str | None = None
