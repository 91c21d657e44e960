from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003
from datetime import UTC, datetime

import httpx
import pytest

from pvaregistry.adapters.http_resilience import ResilientClient
from pvaregistry.adapters.remote import RestProductStore
from pvaregistry.config import ResilienceConfig, RetryPolicy, build_remote_store_config
from pvaregistry.domain.errors import RecordNotFoundError, RemoteStoreError
from pvaregistry.domain.model import ProductChanges, ProductStatus
from tests.support.records import make_record

BASE_URL = "https://registry.example.com"


def _make_store(handler: Callable[[httpx.Request], httpx.Response]) -> RestProductStore:
    def factory(resilience: ResilienceConfig) -> ResilientClient:
        return ResilientClient(resilience, transport=httpx.MockTransport(handler))

    config = build_remote_store_config(
        url=BASE_URL, api_key="anon-key", retry=RetryPolicy(total=0)
    )
    return RestProductStore(config=config, client_factory=factory)


@pytest.fixture
def row() -> dict[str, object]:
    return {
        "id": 42,
        "name": "Laundry Pods",
        "brand": "EcoWash",
        "type": "Laundry Detergent",
        "description": "",
        "pvastatus": "contains",
        "pvapercentage": 12.5,
        "approved": True,
        "country": "USA, Canada",
        "websiteurl": "https://ecowash.example",
        "videourl": None,
        "imageurl": " ",
        "owner_id": "user-1",
        "createdat": "2024-03-01T12:00:00+00:00",
        "updatedat": None,
        "unexpected_column": "ignored",
    }


def test_fetch_records_builds_query(row: dict[str, object]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[row])

    records = asyncio.run(
        _make_store(handler).fetch_records(approved_only=True, owner_id="user-1")
    )

    request = seen[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/product_submissions"
    assert request.url.params["approved"] == "eq.true"
    assert request.url.params["owner_id"] == "eq.user-1"
    assert request.url.params["order"] == "createdat.desc"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["Authorization"] == "Bearer anon-key"

    record = records[0]
    assert record.id == "42"
    assert record.status is ProductStatus.CONTAINS
    assert record.percentage == 12.5
    assert record.countries == ("United States", "Canada")
    assert record.image_url is None
    assert record.approved
    assert record.submitted_at == datetime(2024, 3, 1, 12, tzinfo=UTC)


def test_fetch_without_filters_requests_everything(row: dict[str, object]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[row, {**row, "id": "43", "approved": None}])

    records = asyncio.run(_make_store(handler).fetch_records())

    assert "approved" not in seen[0].url.params
    assert "owner_id" not in seen[0].url.params
    assert [record.approved for record in records] == [True, False]


def test_insert_posts_row_without_local_fields(row: dict[str, object]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json=[{**row, "id": payload_id(request)}])

    def payload_id(request: httpx.Request) -> object:
        return json.loads(request.content)["id"]

    record = make_record("Laundry Pods", owner_id="user-1", countries=("Canada",))
    record.brand_contact_email = "owner@ecowash.example"

    stored = asyncio.run(_make_store(handler).insert(record))

    request = seen[0]
    payload = json.loads(request.content)
    assert request.method == "POST"
    assert request.headers["Prefer"] == "return=representation"
    assert payload["pvastatus"] == "contains"
    assert payload["country"] == "Canada"
    assert payload["owner_id"] == "user-1"
    assert "brand_contact_email" not in payload
    assert "brand_verified" not in payload
    assert stored.id == record.id


def test_insert_with_empty_representation_fails() -> None:
    store = _make_store(lambda request: httpx.Response(201, json=[]))

    with pytest.raises(RemoteStoreError, match="did not return inserted product"):
        asyncio.run(store.insert(make_record()))


def test_update_patches_by_id(row: dict[str, object]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{**row, "approved": True}])

    updated = asyncio.run(
        _make_store(handler).update("42", ProductChanges.of(approved=True, countries=()))
    )

    request = seen[0]
    payload = json.loads(request.content)
    assert request.method == "PATCH"
    assert request.url.params["id"] == "eq.42"
    assert payload["approved"] is True
    assert payload["country"] == "Global"
    assert "updatedat" in payload
    assert updated.approved


def test_update_of_missing_record_raises_not_found() -> None:
    store = _make_store(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(RecordNotFoundError) as excinfo:
        asyncio.run(store.update("missing", ProductChanges.of(approved=True)))

    assert excinfo.value.status_code == 404


def test_delete(row: dict[str, object]) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[row])

    asyncio.run(_make_store(handler).delete("42"))

    assert seen[0].method == "DELETE"
    assert seen[0].url.params["id"] == "eq.42"


def test_delete_of_missing_record_raises_not_found() -> None:
    store = _make_store(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(RecordNotFoundError):
        asyncio.run(store.delete("missing"))


@pytest.mark.parametrize(
    ("owner_id", "approved", "owner_filter", "approved_filter"),
    [
        ("user-1", True, "eq.user-1", "is.true"),
        (None, False, "is.null", "not.is.true"),
    ],
)
def test_count_submissions(
    owner_id: str | None,
    owner_filter: str,
    approved_filter: str,
    *,
    approved: bool,
) -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=[{"id": "1"}, {"id": "2"}])

    count = asyncio.run(_make_store(handler).count_submissions(owner_id, approved=approved))

    assert count == 2
    assert seen[0].url.params["select"] == "id"
    assert seen[0].url.params["owner_id"] == owner_filter
    assert seen[0].url.params["approved"] == approved_filter


def test_error_status_raises_with_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "JWT expired", "code": "PGRST301"})

    with pytest.raises(RemoteStoreError, match="JWT expired") as excinfo:
        asyncio.run(_make_store(handler).fetch_records())

    assert excinfo.value.status_code == 401


def test_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteStoreError, match="request failed"):
        asyncio.run(_make_store(handler).fetch_records())


def test_invalid_payload_is_reported() -> None:
    store = _make_store(lambda request: httpx.Response(200, json=[{"id": "1"}]))

    with pytest.raises(RemoteStoreError, match="Unexpected product payload"):
        asyncio.run(store.fetch_records())


def test_check_connection() -> None:
    ok = _make_store(lambda request: httpx.Response(200, json=[]))
    down = _make_store(lambda request: httpx.Response(503, text="maintenance"))

    connected = asyncio.run(ok.check_connection())
    failed = asyncio.run(down.check_connection())

    assert connected.connected
    assert connected.message == "Connected to https://registry.example.com/rest/v1/"
    assert not failed.connected
    assert "maintenance" in failed.message
