"""Unit tests for cache-first loading in RecordLoader."""

import asyncio

import pytest

from recordsync.application.services import RecordCache, RecordLoader
from recordsync.domain.entities import (
    ChangeSet,
    ClassDelta,
    FunctionKey,
    Process,
    RecordClass,
)
from recordsync.domain.exceptions import EntityNotFoundError, StoreUnavailableError


@pytest.mark.asyncio
async def test_cold_cache_loads_processes_from_store(store):
    loader = RecordLoader(store, RecordCache())

    processes, from_cache = await loader.load_processes()

    assert not from_cache
    assert len(processes) == 3
    assert store.count("read_all_processes") == 1
    assert loader.cache.count(RecordClass.PROCESS) == 3


@pytest.mark.asyncio
async def test_warm_cache_serves_processes_without_store_reads(store):
    cache = RecordCache()
    cache.put_many(Process(test_id=1, process_id=float(i)) for i in range(150))
    loader = RecordLoader(store, cache)

    processes, from_cache = await loader.load_processes()

    assert from_cache
    assert len(processes) == 150
    assert store.count("read_all_processes") == 0


@pytest.mark.asyncio
async def test_function_group_is_fetched_once(store):
    loader = RecordLoader(store, RecordCache())

    first = await loader.load_functions(1.0)
    second = await loader.load_functions(1)

    assert [f.function_name for f in first] == ["Navigate", "WaitForPage"]
    assert [f.function_name for f in second] == ["Navigate", "WaitForPage"]
    assert store.count("read_functions_for_process") == 1


@pytest.mark.asyncio
async def test_concurrent_requests_share_one_store_read(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()

    waiters = [asyncio.create_task(loader.load_functions(1.0)) for _ in range(5)]
    await asyncio.sleep(0.01)
    store.gate.set()
    results = await asyncio.gather(*waiters)

    assert store.count("read_functions_for_process") == 1
    assert all(len(r) == 2 for r in results)


@pytest.mark.asyncio
async def test_failed_group_load_propagates_to_all_waiters_and_can_retry(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()
    store.fail_next = 1

    waiters = [asyncio.create_task(loader.load_functions(2.0)) for _ in range(3)]
    await asyncio.sleep(0.01)
    store.gate.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(r, StoreUnavailableError) for r in results)
    assert not loader.cache.is_group_loaded(2.0)

    functions = await loader.load_functions(2.0)
    assert [f.function_name for f in functions] == ["TypeUser"]


@pytest.mark.asyncio
async def test_load_test_uses_cache_after_first_read(store):
    loader = RecordLoader(store, RecordCache())

    first = await loader.load_test(1)
    second = await loader.load_test(1)

    assert first is second
    assert store.count("read_full_tests") == 1


@pytest.mark.asyncio
async def test_load_missing_test_raises(store):
    loader = RecordLoader(store, RecordCache())
    with pytest.raises(EntityNotFoundError):
        await loader.load_test(404)


@pytest.mark.asyncio
async def test_cancelling_first_caller_does_not_cancel_other_waiters(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()

    first = asyncio.create_task(loader.load_functions(1.0))
    await asyncio.sleep(0.01)
    second = asyncio.create_task(loader.load_functions(1.0))
    await asyncio.sleep(0.01)
    first.cancel()
    await asyncio.sleep(0)
    store.gate.set()

    functions = await second
    with pytest.raises(asyncio.CancelledError):
        await first

    assert [f.function_name for f in functions] == ["Navigate", "WaitForPage"]
    assert store.count("read_functions_for_process") == 1
    assert loader.cache.is_group_loaded(1.0)


@pytest.mark.asyncio
async def test_group_read_spanning_a_clear_is_not_cached(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()

    pending = asyncio.create_task(loader.load_functions(1.0))
    await asyncio.sleep(0.01)
    loader.cache.clear()
    store.gate.set()
    functions = await pending

    assert len(functions) == 2
    assert not loader.cache.is_group_loaded(1.0)
    assert loader.cache.count(RecordClass.FUNCTION) == 0


@pytest.mark.asyncio
async def test_bulk_read_spanning_a_clear_is_not_cached(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()

    pending = asyncio.create_task(loader.load_processes())
    await asyncio.sleep(0.01)
    loader.cache.clear()
    store.gate.set()
    processes, from_cache = await pending

    assert len(processes) == 3
    assert not from_cache
    assert loader.cache.count(RecordClass.PROCESS) == 0


@pytest.mark.asyncio
async def test_group_read_overlapping_a_delete_event_is_read_again(store):
    cache = RecordCache()
    loader = RecordLoader(store, cache)
    read_group = store.read_functions_for_process
    release = asyncio.Event()

    async def slow_first_read(process_id):
        functions = await read_group(process_id)
        if store.count("read_functions_for_process") == 1:
            await release.wait()
        return functions

    store.read_functions_for_process = slow_first_read
    pending = asyncio.create_task(loader.load_functions(1.0))
    await asyncio.sleep(0.01)

    deleted = FunctionKey(1.0, 2)
    del store.functions[deleted]
    cache.apply_change_set(
        ChangeSet(sequence=1, functions=ClassDelta(deleted=frozenset({deleted})))
    )
    release.set()
    functions = await pending

    assert [f.function_name for f in functions] == ["Navigate"]
    assert store.count("read_functions_for_process") == 2
    assert [f.function_name for f in cache.get_group(1.0)] == ["Navigate"]


@pytest.mark.asyncio
async def test_close_cancels_group_reads_in_flight(store):
    loader = RecordLoader(store, RecordCache())
    store.gate = asyncio.Event()

    pending = asyncio.create_task(loader.load_functions(3.5))
    await asyncio.sleep(0.01)
    await loader.close()

    with pytest.raises(asyncio.CancelledError):
        await pending
    assert not loader.cache.is_group_loaded(3.5)
