from __future__ import annotations

import asyncio

import pytest

from pvaregistry.adapters.memory import InMemoryProductCache
from pvaregistry.domain.errors import BulkParseError, QuotaExceededError
from pvaregistry.domain.events import EventBus, NotificationRaised, ReloadRequested
from pvaregistry.domain.ingest_pipeline import BulkIngestionPipeline, Submitter
from pvaregistry.domain.model import ProductStatus
from pvaregistry.domain.quotas import SubmissionLimiter
from tests.support.events import EventRecorder
from tests.support.records import make_record
from tests.support.remote import FakeRemoteStore

HEADER = "brand,name,type,status,percentage,country\n"
CONTRIBUTOR = Submitter(user_id="user-1")
ADMIN = Submitter(user_id="admin-1", is_admin=True)


def _csv(*rows: str) -> str:
    return HEADER + "".join(f"{row}\n" for row in rows)


def _pipeline(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
    *,
    live_only: bool = False,
) -> BulkIngestionPipeline:
    return BulkIngestionPipeline(
        remote=remote, cache=cache, limiter=limiter, bus=bus, live_only=live_only
    )


def test_repeated_row_in_one_batch_is_a_duplicate(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    recorder = EventRecorder(bus, ReloadRequested)
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(
            _csv("EcoWash,Pods,Laundry,contains,,", "ecowash, PODS ,Laundry,contains,,"),
            submitter=CONTRIBUTOR,
        )
    )

    assert [record.name for record in result.accepted] == ["Pods"]
    assert [row.line for row in result.duplicates] == [3]
    assert result.rejected == []
    assert result.summary() == "1 accepted, 1 duplicate(s), 0 rejected"
    assert len(remote.inserted) == 1
    assert cache.get(result.accepted[0].id) is not None
    assert len(recorder.of_type(ReloadRequested)) == 1


def test_contributor_rows_are_pending_and_owned(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(_csv("EcoWash,Pods,Laundry,contains,12,Canada"), submitter=CONTRIBUTOR)
    )

    record = result.accepted[0]
    assert record.approved is False
    assert record.owner_id == "user-1"
    assert record.percentage == 12.0
    assert record.countries == ("Canada",)
    assert result.quota is not None
    assert result.quota.pending_count == 1
    assert result.quota.remaining_allowed == 2


def test_existing_records_are_duplicates(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    remote.records["r1"] = make_record("Pods", brand="EcoWash", record_id="r1")
    cache.put(make_record("Dish Tabs", brand="Sparkle"))
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(
            _csv("ECOWASH,pods,Laundry,contains,,", "sparkle,dish tabs,Dish,contains,,"),
            submitter=ADMIN,
        )
    )

    assert result.accepted == []
    assert len(result.duplicates) == 2
    assert remote.inserted == []


def test_admin_rows_are_approved_without_limit(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    rows = [f"Brand {i},Product {i},Soap,verified-free,0," for i in range(25)]
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(pipeline.ingest_csv(_csv(*rows), submitter=ADMIN))

    assert len(result.accepted) == 25
    assert all(record.approved for record in result.accepted)
    assert not result.truncated
    assert result.quota is not None
    assert result.quota.unbounded


def test_batch_is_truncated_to_remaining_quota(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    rows = [f"Brand,Product {i},Soap,contains,," for i in range(5)]
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(pipeline.ingest_csv(_csv(*rows), submitter=CONTRIBUTOR))

    assert [record.name for record in result.accepted] == ["Product 0", "Product 1", "Product 2"]
    assert result.truncated
    assert result.notice == (
        "Only the first 3 of 5 rows were processed because of your submission limit"
    )
    assert [rejected.row.name for rejected in result.rejected] == ["Product 3", "Product 4"]
    assert all(
        rejected.reason.startswith("Submission limit reached") for rejected in result.rejected
    )
    assert result.quota is not None
    assert result.quota.remaining_allowed == 0


def test_exhausted_quota_rejects_the_batch(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    for i in range(3):
        remote.records[f"p{i}"] = make_record(
            f"Pending {i}", owner_id="user-1", approved=False, record_id=f"p{i}"
        )
    pipeline = _pipeline(remote, cache, limiter, bus)

    with pytest.raises(QuotaExceededError) as excinfo:
        asyncio.run(pipeline.ingest_csv(_csv("A,B,C,contains,,"), submitter=CONTRIBUTOR))

    assert excinfo.value.remaining == 0
    assert remote.inserted == []


def test_invalid_rows_are_rejected_individually(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(
            _csv(
                "EcoWash,Pods,Laundry,contains,,",
                "EcoWash,,Laundry,contains,,",
                "EcoWash,Tabs,Dish,verified-free,15,",
            ),
            submitter=ADMIN,
        )
    )

    assert [record.name for record in result.accepted] == ["Pods"]
    reasons = [rejected.reason for rejected in result.rejected]
    assert reasons[0] == "Missing required fields: name"
    assert "verified-free" in reasons[1]


def test_remote_write_failure_rejects_rows(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    recorder = EventRecorder(bus, ReloadRequested)
    remote.fail_writes = True
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(pipeline.ingest_csv(_csv("A,B,C,contains,,"), submitter=ADMIN))

    assert result.accepted == []
    assert result.rejected[0].reason.startswith("Could not be saved:")
    assert len(cache) == 0
    assert recorder.events == []


def test_remote_read_failure_checks_duplicates_against_cache(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    recorder = EventRecorder(bus, NotificationRaised)
    cache.put(make_record("Pods", brand="EcoWash"))
    remote.fail_reads = True
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(
            _csv("EcoWash,Pods,Laundry,contains,,", "EcoWash,Tabs,Dish,contains,,"),
            submitter=ADMIN,
        )
    )

    assert len(result.duplicates) == 1
    assert [record.name for record in result.accepted] == ["Tabs"]
    assert recorder.notification_titles() == ["Remote store unavailable"]


def test_country_override_applies_to_every_row(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(
        pipeline.ingest_csv(
            _csv("A,One,Soap,contains,,Mexico", "A,Two,Soap,contains,,"),
            submitter=ADMIN,
            countries=["usa", "Canada"],
        )
    )

    assert [record.countries for record in result.accepted] == [
        ("United States", "Canada"),
        ("United States", "Canada"),
    ]


def test_live_only_mode_skips_the_cache(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    cache.put(make_record("Pods", brand="EcoWash"))
    pipeline = _pipeline(remote, cache, limiter, bus, live_only=True)

    result = asyncio.run(
        pipeline.ingest_csv(_csv("EcoWash,Pods,Laundry,contains,,"), submitter=ADMIN)
    )

    assert len(result.accepted) == 1
    assert len(cache) == 1
    assert result.accepted[0].status is ProductStatus.CONTAINS


def test_structural_errors_abort_the_whole_batch(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    pipeline = _pipeline(remote, cache, limiter, bus)

    with pytest.raises(BulkParseError):
        asyncio.run(pipeline.ingest_csv("brand,name\nA,B\n", submitter=ADMIN))


def test_mixed_batch_partitions_every_row(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    remote.records["p"] = make_record("Pods", brand="EcoWash", record_id="p")
    rows = (
        "EcoWash,Tabs,Laundry,contains,,",
        "EcoWash,,Laundry,contains,,",
        "ecowash,pods,Laundry,contains,,",
        "Sparkle,Wrap,Kitchen,contains,,",
        "Sparkle,Foil,Kitchen,contains,,",
    )

    pipeline = _pipeline(remote, cache, limiter, bus)

    result = asyncio.run(pipeline.ingest_csv(_csv(*rows), submitter=CONTRIBUTOR))

    assert result.total == len(rows)
    assert [record.name for record in result.accepted] == ["Tabs"]
    assert [row.line for row in result.duplicates] == [4]
    assert len(result.rejected) == 3
    assert all(rejected.reason for rejected in result.rejected)
    assert result.truncated


def test_failed_quota_recheck_keeps_the_result(
    remote: FakeRemoteStore,
    cache: InMemoryProductCache,
    limiter: SubmissionLimiter,
    bus: EventBus,
) -> None:
    recorder = EventRecorder(bus, NotificationRaised)
    remote.counts_until_failure = 2

    result = asyncio.run(
        _pipeline(remote, cache, limiter, bus).ingest_csv(
            _csv("EcoWash,Pods,Laundry,contains,,"), submitter=CONTRIBUTOR
        )
    )

    assert [record.name for record in result.accepted] == ["Pods"]
    assert len(remote.inserted) == 1
    assert result.quota is None
    assert recorder.notification_titles() == ["Quota unavailable"]
