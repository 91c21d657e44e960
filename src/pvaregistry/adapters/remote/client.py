"""HTTP client for the PostgREST-style remote product table."""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, cast

import httpx
from pydantic import ValidationError

from pvaregistry.adapters.http_resilience import ResilientClient
from pvaregistry.config import RemoteStoreConfig, get_remote_store_config
from pvaregistry.domain.errors import RecordNotFoundError, RemoteStoreError
from pvaregistry.domain.ports import ConnectionStatus, RemoteProductStore

from .schema import RemoteErrorPayload, RemoteProductRow
from .translator import changes_to_row, record_to_row, row_to_record

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from pvaregistry.config import ResilienceConfig
    from pvaregistry.domain.model import ProductChanges, ProductRecord

log = getLogger(__name__)

_RETURN_REPRESENTATION = {"Prefer": "return=representation"}


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


def _error_message(response: httpx.Response) -> str:
    try:
        payload = RemoteErrorPayload.model_validate(response.json())
    except (ValueError, ValidationError):
        return response.text.strip() or response.reason_phrase
    return payload.message


@dataclass(slots=True)
class RestProductStore:
    """Remote store adapter speaking the PostgREST query dialect."""

    config: RemoteStoreConfig = field(default_factory=get_remote_store_config)
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )

    async def fetch_records(
        self,
        *,
        approved_only: bool = False,
        owner_id: str | None = None,
    ) -> list[ProductRecord]:
        params: dict[str, str] = {"select": "*", "order": "createdat.desc"}
        if approved_only:
            params["approved"] = "eq.true"
        if owner_id is not None:
            params["owner_id"] = f"eq.{owner_id}"
        rows = await self._rows("GET", params=params)
        return [row_to_record(row) for row in rows]

    async def insert(self, record: ProductRecord) -> ProductRecord:
        rows = await self._rows(
            "POST", json=record_to_row(record), headers=_RETURN_REPRESENTATION
        )
        if not rows:
            raise RemoteStoreError(f"Remote store did not return inserted product {record.id}")
        log.info("Inserted product %s into the remote store", record.id)
        return row_to_record(rows[0])

    async def update(self, record_id: str, changes: ProductChanges) -> ProductRecord:
        rows = await self._rows(
            "PATCH",
            params={"id": f"eq.{record_id}"},
            json=changes_to_row(changes),
            headers=_RETURN_REPRESENTATION,
        )
        if not rows:
            raise RecordNotFoundError(record_id)
        return row_to_record(rows[0])

    async def delete(self, record_id: str) -> None:
        rows = await self._rows(
            "DELETE", params={"id": f"eq.{record_id}"}, headers=_RETURN_REPRESENTATION
        )
        if not rows:
            raise RecordNotFoundError(record_id)
        log.info("Deleted product %s from the remote store", record_id)

    async def count_submissions(self, owner_id: str | None, *, approved: bool) -> int:
        params = {
            "select": "id",
            "owner_id": "is.null" if owner_id is None else f"eq.{owner_id}",
            "approved": "is.true" if approved else "not.is.true",
        }
        response = await self._send("GET", params=params)
        return len(self._decode(response))

    async def check_connection(self) -> ConnectionStatus:
        try:
            await self._send("GET", params={"select": "id", "limit": "1"})
        except RemoteStoreError as exc:
            return ConnectionStatus(connected=False, message=str(exc))
        return ConnectionStatus(connected=True, message=f"Connected to {self.config.base_url}")

    async def _rows(
        self,
        method: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> list[RemoteProductRow]:
        response = await self._send(method, params=params, json=json, headers=headers)
        try:
            return [RemoteProductRow.model_validate(item) for item in self._decode(response)]
        except ValidationError as exc:
            raise RemoteStoreError(f"Unexpected product payload: {exc}") from exc

    async def _send(
        self,
        method: str,
        *,
        params: Mapping[str, str] | None = None,
        json: object = None,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        try:
            async with self.client_factory(self.config.resilience) as client:
                response = await client.request(
                    method, self.config.table, params=params, json=json, headers=headers
                )
        except httpx.HTTPError as exc:
            log.error("Remote store %s %s failed: %s", method, self.config.table, exc)
            raise RemoteStoreError(f"Remote store request failed: {exc}") from exc
        if response.is_error:
            message = _error_message(response)
            log.error(
                "Remote store %s %s returned %s: %s",
                method,
                self.config.table,
                response.status_code,
                message,
            )
            raise RemoteStoreError(
                f"Remote store error {response.status_code}: {message}",
                status_code=response.status_code,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> list[object]:
        if not response.content:
            return []
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteStoreError("Remote store returned invalid JSON") from exc
        if isinstance(payload, dict):
            return [cast(object, payload)]
        if not isinstance(payload, list):
            raise RemoteStoreError("Remote store returned an unexpected payload")
        return cast(list[object], payload)


if TYPE_CHECKING:
    _store_check: RemoteProductStore = RestProductStore()
