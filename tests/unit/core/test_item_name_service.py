import pytest

from conftest import FakeCatalogApi, group_payload
from esicache.core.services.item_name_service import ItemNameService, paginate
from esicache.core.services.market_group_service import MarketGroupService
from esicache.core.services.sync_orchestrator import SyncState
from esicache.domain.errors import AggregateFetchError, PayloadValidationError, TransportError
from esicache.domain.models.catalog import NameRecord
from esicache.domain.models.common import NameEntry
from esicache.infrastructure.resilience.batch_executor import BatchExecutor


def name_payload(entity_id, category="inventory_type"):
    return {"id": entity_id, "name": f"Item {entity_id}", "category": category}


def build_service(api, store, page_size=2, concurrency=10):
    executor = BatchExecutor()
    groups = MarketGroupService(
        api=api, cache=store.groups, sentinel=store.sentinel, executor=executor, concurrency=10
    )
    return ItemNameService(
        api=api,
        cache=store.names,
        group_service=groups,
        executor=executor,
        concurrency=concurrency,
        page_size=page_size,
    )


@pytest.fixture
def api():
    return FakeCatalogApi(
        groups={
            1: group_payload(1, [1, 2]),
            2: group_payload(2, [3, 4, 2]),
        },
        names={i: name_payload(i) for i in range(1, 5)},
    )


def test_paginate():
    assert paginate([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
    assert paginate([], 1000) == []
    with pytest.raises(ValueError):
        paginate([1], 0)


@pytest.mark.asyncio
async def test_resolves_all_member_ids_and_persists_them(api, store):
    service = build_service(api, store)

    names = await service.resolve_item_names()

    assert names == {i: NameEntry(f"Item {i}", "inventory_type") for i in range(1, 5)}
    # id 2 appears in both groups but is only requested once
    assert api.name_pages == [[1, 2], [3, 4]]
    assert await store.names.count() == 4
    assert service.state is SyncState.DONE


@pytest.mark.asyncio
async def test_cached_ids_are_never_refetched(api, store):
    await store.names.bulk_upsert([NameRecord(id=2, name="Cached two"), NameRecord(id=4, name="Cached four")])
    service = build_service(api, store)

    names = await service.resolve_item_names()

    assert api.name_pages == [[1, 3]]
    assert names[2] == NameEntry("Cached two", None)
    assert names[3].name == "Item 3"


@pytest.mark.asyncio
async def test_page_count_is_ceil_of_missing_over_page_size(store):
    member_ids = list(range(100, 2601))
    api = FakeCatalogApi(
        groups={7: group_payload(7, member_ids)},
        names={i: name_payload(i) for i in member_ids},
    )
    service = build_service(api, store, page_size=1000, concurrency=10)

    names = await service.resolve_item_names()

    assert len(api.name_pages) == 3
    assert [len(page) for page in api.name_pages] == [1000, 1000, 501]
    assert len(names) == 2501


@pytest.mark.asyncio
async def test_concurrency_width_bounds_name_pages_in_flight(store):
    member_ids = list(range(1, 31))
    api = FakeCatalogApi(
        groups={7: group_payload(7, member_ids)},
        names={i: name_payload(i) for i in member_ids},
    )
    service = build_service(api, store, page_size=2, concurrency=3)

    await service.resolve_item_names()

    assert len(api.name_pages) == 15
    assert api.max_in_flight == 3


@pytest.mark.asyncio
async def test_failed_page_commits_other_pages_and_reports_aggregate(api, store):
    api.failing_names.add(3)
    service = build_service(api, store, page_size=2)

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_item_names()

    error = excinfo.value
    assert set(error.partial) == {1, 2}
    assert error.failures[0].page == [3, 4]
    assert isinstance(error.failures[0].error, TransportError)
    assert await store.names.get(1) is not None
    assert await store.names.get(2) is not None
    assert await store.names.get(3) is None
    assert service.state is SyncState.DONE_WITH_ERROR


@pytest.mark.asyncio
async def test_malformed_page_is_a_page_failure(api, store, mocker):
    service = build_service(api, store, page_size=2)
    real_resolve = api.resolve_names

    async def resolve(ids):
        if 3 in ids:
            return [{"id": 3}]
        return await real_resolve(ids)

    mocker.patch.object(api, "resolve_names", side_effect=resolve)

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_item_names()

    assert isinstance(excinfo.value.failures[0].error, PayloadValidationError)
    assert set(excinfo.value.partial) == {1, 2}


@pytest.mark.asyncio
async def test_rerun_is_idempotent(api, store):
    first = await build_service(api, store).resolve_item_names()
    calls_after_first = len(api.name_pages)

    second = await build_service(api, store).resolve_item_names()

    assert second == first
    assert len(api.name_pages) == calls_after_first
    assert await store.names.count() == 4


@pytest.mark.asyncio
async def test_empty_gap_issues_no_name_calls(api, store):
    await store.names.bulk_upsert([NameRecord(id=i, name=f"Known {i}") for i in range(1, 5)])
    service = build_service(api, store)

    names = await service.resolve_item_names()

    assert api.name_pages == []
    assert names == {i: NameEntry(f"Known {i}", None) for i in range(1, 5)}
    assert service.state is SyncState.DONE


@pytest.mark.asyncio
async def test_retry_after_failure_completes_the_map(api, store):
    api.failing_names.add(4)
    service = build_service(api, store)
    with pytest.raises(AggregateFetchError):
        await service.resolve_item_names()

    api.failing_names.clear()
    api.name_pages.clear()
    names = await service.resolve_item_names()

    assert api.name_pages == [[3, 4]]
    assert len(names) == 4


@pytest.mark.asyncio
async def test_group_catalog_failure_propagates(api, store):
    api.failing_groups.add(2)
    service = build_service(api, store)

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_item_names()

    assert excinfo.value.catalog == "market groups"
    assert api.name_pages == []


@pytest.mark.asyncio
async def test_lookup_reads_cache_only(api, store):
    await store.names.bulk_upsert([NameRecord(id=34, name="Tritanium", category="inventory_type")])
    service = build_service(api, store)

    found = await service.lookup([34, 35])

    assert found == {34: NameEntry("Tritanium", "inventory_type")}
    assert api.list_calls == 0
    assert api.name_pages == []


@pytest.mark.asyncio
async def test_names_outside_the_requested_page_fail_the_page(api, store, mocker):
    service = build_service(api, store, page_size=2)
    real_resolve = api.resolve_names

    async def resolve(ids):
        body = await real_resolve(ids)
        if 3 in ids:
            body.append(name_payload(1))
        return body

    mocker.patch.object(api, "resolve_names", side_effect=resolve)

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_item_names()

    assert excinfo.value.failures[0].page == [3, 4]
    assert isinstance(excinfo.value.failures[0].error, PayloadValidationError)
    assert set(excinfo.value.partial) == {1, 2}
    assert await store.names.get(3) is None
