import pytest

from conftest import FakeCatalogApi, group_payload
from esicache.core.services.market_group_service import MarketGroupService
from esicache.core.services.sync_orchestrator import SyncState
from esicache.domain.errors import AggregateFetchError, PayloadValidationError, TransportError
from esicache.domain.models.catalog import GroupRecord
from esicache.infrastructure.resilience.batch_executor import BatchExecutor


@pytest.fixture
def api():
    return FakeCatalogApi(groups={
        10: group_payload(10, [34, 35]),
        11: group_payload(11, [36], parent=10),
        12: group_payload(12, [37, 38]),
    })


@pytest.fixture
def service(api, store):
    return MarketGroupService(
        api=api,
        cache=store.groups,
        sentinel=store.sentinel,
        executor=BatchExecutor(),
        concurrency=2,
    )


@pytest.mark.asyncio
async def test_first_sync_fetches_persists_and_marks_sentinel(service, api, store):
    groups = await service.resolve_market_groups()

    assert [g.id for g in groups] == [10, 11, 12]
    assert groups[1].parent_id == 10
    assert api.list_calls == 1
    assert sorted(api.group_calls) == [10, 11, 12]
    assert await store.groups.count() == 3
    assert await store.sentinel.is_set()
    assert service.state is SyncState.DONE


@pytest.mark.asyncio
async def test_sentinel_present_means_zero_network_calls(service, api, store):
    cached = [
        GroupRecord(id=1, name="A", description="a", member_ids=[5]),
        GroupRecord(id=2, name="B", description="b", parent_id=1, member_ids=[]),
    ]
    await store.groups.bulk_upsert(cached)
    await store.sentinel.mark()

    groups = await service.resolve_market_groups()

    assert groups == cached
    assert api.list_calls == 0
    assert api.group_calls == []
    assert service.state is SyncState.DONE


@pytest.mark.asyncio
async def test_cached_groups_are_not_refetched(service, api, store):
    await store.groups.bulk_upsert([GroupRecord(id=11, name="Cached", description="", member_ids=[36])])

    groups = await service.resolve_market_groups()

    assert api.group_calls == [10, 12]
    assert [g.name for g in groups] == ["Group 10", "Cached", "Group 12"]


@pytest.mark.asyncio
async def test_concurrency_width_bounds_in_flight_requests(service, api):
    for group_id in range(20, 40):
        api.groups[group_id] = group_payload(group_id, [])

    await service.resolve_market_groups()

    assert api.max_in_flight == 2


@pytest.mark.asyncio
async def test_partial_failure_keeps_successes_and_leaves_sentinel_unset(service, api, store):
    api.failing_groups.add(11)
    api.malformed_groups.add(12)

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_market_groups()

    error = excinfo.value
    assert [g.id for g in error.partial] == [10]
    assert {f.page for f in error.failures} == {11, 12}
    failure_types = {f.page: type(f.error) for f in error.failures}
    assert failure_types == {11: TransportError, 12: PayloadValidationError}
    assert error.total_pages == 3
    assert (await store.groups.get(10)).name == "Group 10"
    assert await store.groups.get(11) is None
    assert not await store.sentinel.is_set()
    assert service.state is SyncState.DONE_WITH_ERROR


@pytest.mark.asyncio
async def test_retry_after_partial_failure_fetches_only_the_gap(service, api, store):
    api.failing_groups.add(11)
    with pytest.raises(AggregateFetchError):
        await service.resolve_market_groups()

    api.failing_groups.clear()
    api.group_calls.clear()
    groups = await service.resolve_market_groups()

    assert api.group_calls == [11]
    assert [g.id for g in groups] == [10, 11, 12]
    assert await store.sentinel.is_set()


@pytest.mark.asyncio
async def test_failed_id_list_is_reported_as_aggregate_error(service, api, mocker):
    mocker.patch.object(api, "list_market_group_ids", side_effect=TransportError("HTTP 503", status=503))

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_market_groups()

    assert excinfo.value.partial == []
    assert isinstance(excinfo.value.failures[0].error, TransportError)
    assert api.group_calls == []


@pytest.mark.asyncio
async def test_payload_for_another_group_is_a_page_failure(service, api, store):
    # the body returned for group 11 describes group 10
    api.groups[11] = group_payload(10, [99])

    with pytest.raises(AggregateFetchError) as excinfo:
        await service.resolve_market_groups()

    error = excinfo.value
    assert [f.page for f in error.failures] == [11]
    assert isinstance(error.failures[0].error, PayloadValidationError)
    assert [g.id for g in error.partial] == [10, 12]
    assert (await store.groups.get(10)).member_ids == [34, 35]
    assert await store.groups.get(11) is None
    assert not await store.sentinel.is_set()

    api.groups[11] = group_payload(11, [36], parent=10)
    groups = await service.resolve_market_groups()

    assert [g.id for g in groups] == [10, 11, 12]
    assert await store.sentinel.is_set()
