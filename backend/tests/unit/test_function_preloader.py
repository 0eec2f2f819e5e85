"""Unit tests for the throttled background FunctionPreloader."""

import asyncio

import pytest

from recordsync.application.services import FunctionPreloader, RecordCache, RecordLoader


def _seed_groups(store, count: int) -> list[float]:
    ids = []
    for n in range(count):
        process_id = 100.0 + n
        store.add_process(9, process_id)
        store.add_function(process_id, 1, function_name=f"fn{n}")
        ids.append(process_id)
    return ids


@pytest.mark.asyncio
async def test_preloads_every_queued_group(store):
    loader = RecordLoader(store, RecordCache())
    preloader = FunctionPreloader(loader, batch_size=10, pause=0)
    ids = _seed_groups(store, 25)

    assert preloader.enqueue(ids) == 25
    preloader.start()
    await preloader.join()

    assert preloader.loaded == 25
    assert all(loader.cache.is_group_loaded(i) for i in ids)
    assert not preloader.is_running()


@pytest.mark.asyncio
async def test_enqueue_ignores_duplicates_and_missing_ids(store):
    preloader = FunctionPreloader(RecordLoader(store, RecordCache()))

    assert preloader.enqueue([1.0, 1, None, 2.0]) == 2
    assert preloader.pending == 2


@pytest.mark.asyncio
async def test_already_loaded_groups_are_skipped(store):
    cache = RecordCache()
    loader = RecordLoader(store, cache)
    await loader.load_functions(1.0)
    preloader = FunctionPreloader(loader, pause=0)

    preloader.enqueue([1.0, 2.0])
    preloader.start()
    await preloader.join()

    assert preloader.skipped == 1
    assert preloader.loaded == 1
    assert store.count("read_functions_for_process") == 2


@pytest.mark.asyncio
async def test_worker_pauses_after_each_batch(store, monkeypatch):
    loader = RecordLoader(store, RecordCache())
    preloader = FunctionPreloader(loader, batch_size=10, pause=0.25)
    preloader.enqueue(_seed_groups(store, 25))

    pauses: list[float] = []
    real_sleep = asyncio.sleep

    async def recording_sleep(delay, *args, **kwargs):
        pauses.append(delay)
        await real_sleep(0)

    monkeypatch.setattr(
        "recordsync.application.services.function_preloader.asyncio.sleep",
        recording_sleep,
    )
    preloader.start()
    await preloader.join()

    assert pauses == [0.25, 0.25]


@pytest.mark.asyncio
async def test_failed_group_does_not_stop_the_worker(store):
    loader = RecordLoader(store, RecordCache())
    preloader = FunctionPreloader(loader, pause=0)
    store.fail_next = 1

    preloader.enqueue([1.0, 2.0, 3.5])
    preloader.start()
    await preloader.join()

    assert preloader.failed == 1
    assert preloader.loaded == 2


@pytest.mark.asyncio
async def test_stop_interrupts_and_drops_pending_work(store):
    loader = RecordLoader(store, RecordCache())
    preloader = FunctionPreloader(loader, batch_size=1, pause=10)
    preloader.enqueue(_seed_groups(store, 5))

    preloader.start()
    await asyncio.sleep(0.01)
    await preloader.stop()

    assert not preloader.is_running()
    assert preloader.pending == 0
    assert preloader.loaded == 1


def test_batch_size_must_be_positive(store):
    with pytest.raises(ValueError):
        FunctionPreloader(RecordLoader(store, RecordCache()), batch_size=0)
