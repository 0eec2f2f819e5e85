"""Integration tests for the sync and records API over an in-memory store."""

import pytest
from httpx import ASGITransport, AsyncClient

from recordsync.config import Settings
from recordsync.domain.entities import ProcessKey
from recordsync.infrastructure.runtime import build_runtime
from recordsync.main import create_app


@pytest.fixture
def app(store):
    application = create_app()
    settings = Settings(_env_file=None, watcher_initial_delay_seconds=60)
    application.state.runtime = build_runtime(settings, store=store)
    yield application
    application.state.runtime = None


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_status_reports_stopped_watcher(app):
    async with _client(app) as client:
        response = await client.get("/api/v1/sync/status")

    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "stopped"
    assert data["snapshot_sizes"] == {"test": 0, "process": 0, "function": 0}
    assert data["statistics"]["passes_run"] == 0


@pytest.mark.asyncio
async def test_manual_check_reports_changes(app, store):
    async with _client(app) as client:
        baseline = await client.post("/api/v1/sync/check")
        store.processes[ProcessKey(1, 2.0)].process_name = "Enter password"
        changed = await client.post("/api/v1/sync/check")

    assert baseline.json() == {"changed": False, "event": None}
    event = changed.json()["event"]
    assert changed.json()["changed"] is True
    assert event["processes"]["changed"] == [{"test_id": 1, "process_id": 2.0}]
    assert event["processes"]["records"][0]["process_name"] == "Enter password"


@pytest.mark.asyncio
async def test_start_and_stop(app):
    async with _client(app) as client:
        started = await client.post("/api/v1/sync/start")
        stopped = await client.post("/api/v1/sync/stop")

    assert started.json()["state"] == "running"
    assert stopped.json()["state"] == "stopped"


@pytest.mark.asyncio
async def test_interval_update_is_validated(app):
    async with _client(app) as client:
        rejected = await client.put("/api/v1/sync/interval", json={"seconds": 0})
        accepted = await client.put("/api/v1/sync/interval", json={"seconds": 1.5})

    assert rejected.status_code == 422
    assert accepted.status_code == 200
    assert accepted.json()["poll_interval_seconds"] == 1.5


@pytest.mark.asyncio
async def test_processes_are_served_from_store_then_cached(app, store):
    async with _client(app) as client:
        processes = await client.get("/api/v1/records/processes")
        functions = await client.get("/api/v1/records/processes/1.0/functions")
        again = await client.get("/api/v1/records/processes/1/functions")
        cache = await client.get("/api/v1/sync/cache")

    assert processes.json()["total"] == 3
    assert processes.json()["from_cache"] is False
    assert [f["function_name"] for f in functions.json()] == ["Navigate", "WaitForPage"]
    assert again.json() == functions.json()
    assert store.count("read_functions_for_process") == 1
    assert cache.json()["processes"] == 3
    assert cache.json()["groups_loaded"] == 1


@pytest.mark.asyncio
async def test_clear_cache(app):
    async with _client(app) as client:
        await client.get("/api/v1/records/processes")
        cleared = await client.delete("/api/v1/sync/cache")

    assert cleared.json()["processes"] == 0


@pytest.mark.asyncio
async def test_get_test_and_missing_test(app):
    async with _client(app) as client:
        found = await client.get("/api/v1/records/tests/1")
        missing = await client.get("/api/v1/records/tests/404")

    assert found.json()["test_name"] == "Login"
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_store_outage_maps_to_503(app, store):
    store.fail_next = 1
    async with _client(app) as client:
        response = await client.get("/api/v1/records/processes")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_schema_switch(app, store):
    async with _client(app) as client:
        switched = await client.put("/api/v1/sync/schema", json={"schema_name": "qa_env"})
        repeated = await client.put("/api/v1/sync/schema", json={"schema_name": "qa_env"})

    assert switched.json() == {"schema_name": "qa_env", "switched": True}
    assert repeated.json()["switched"] is False
    assert store.schema == "qa_env"


@pytest.mark.asyncio
async def test_missing_runtime_returns_503():
    application = create_app()
    async with _client(application) as client:
        response = await client.get("/api/v1/sync/status")

    assert response.status_code == 503


@pytest.mark.asyncio
async def test_health_reports_watcher_state(app):
    async with _client(app) as client:
        response = await client.get("/api/v1/health")

    assert response.status_code == 200
    assert response.json()["watcher"] == "stopped"
    assert response.json()["schema"] is None
