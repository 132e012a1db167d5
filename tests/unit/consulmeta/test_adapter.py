from unittest.mock import AsyncMock

import pytest

from consulmeta import ConsulMetaAdapter, InMemoryBackend
from consulmeta.errors import BackendError


@pytest.mark.asyncio
async def test_ping_returns_leader(adapter: ConsulMetaAdapter) -> None:
    assert await adapter.ping() == "127.0.0.1:8300"


@pytest.mark.asyncio
async def test_ping_propagates_backend_error() -> None:
    adapter = ConsulMetaAdapter(InMemoryBackend(leader=""), "registrator/")

    with pytest.raises(BackendError):
        await adapter.ping()


@pytest.mark.asyncio
async def test_register_writes_entry_and_attributes(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, make_service
) -> None:
    service = make_service(
        service_id="abc",
        attrs={"version": "1.2.0", "check_http": "/health"},
    )

    await adapter.register(service)

    entry = backend.services["registrator/abc"]
    assert entry["Service"] == "web"
    assert entry["Address"] == "192.168.1.10"
    assert entry["Port"] == 8080
    assert entry["Tags"] == ["api", "v1"]
    assert entry["Check"] == {
        "HTTP": "http://192.168.1.10:8080/health",
        "Interval": "10s",
    }
    assert backend.kv == {
        "registrator/web/abc/version": "1.2.0",
        "registrator/web/abc/check_http": "/health",
    }


@pytest.mark.asyncio
async def test_register_without_check(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, sample_service
) -> None:
    await adapter.register(sample_service)

    entry = backend.services[adapter.prefix + sample_service.id]
    assert entry["Check"] is None


@pytest.mark.asyncio
async def test_register_tolerates_attribute_write_failure(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, make_service
) -> None:
    service = make_service(service_id="abc", attrs={"a": "1", "b": "2", "c": "3"})
    put_key = backend.put_key

    async def flaky_put(path: str, value: str) -> None:
        if path.endswith("/b"):
            raise BackendError("kv.put", "connection reset")
        await put_key(path, value)

    backend.put_key = flaky_put

    await adapter.register(service)

    assert "registrator/abc" in backend.services
    assert backend.kv == {
        "registrator/web/abc/a": "1",
        "registrator/web/abc/c": "3",
    }


@pytest.mark.asyncio
async def test_register_propagates_registration_failure(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, sample_service
) -> None:
    backend.register_service = AsyncMock(
        side_effect=BackendError("agent.service.register", "rejected")
    )

    with pytest.raises(BackendError):
        await adapter.register(sample_service)

    # Attributes are written before the entry and are not rolled back.
    assert len(backend.kv) == 2


@pytest.mark.asyncio
async def test_register_then_deregister_leaves_nothing(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, sample_service
) -> None:
    await adapter.register(sample_service)
    await adapter.deregister(sample_service)

    assert backend.services == {}
    assert backend.kv == {}


@pytest.mark.asyncio
async def test_deregister_keeps_sibling_attributes(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, make_service
) -> None:
    short = make_service(service_id="abc", attrs={"k": "1"})
    longer = make_service(service_id="abcdef", attrs={"k": "2"})
    await adapter.register(short)
    await adapter.register(longer)

    await adapter.deregister(short)

    assert list(backend.services) == ["registrator/abcdef"]
    assert backend.kv == {"registrator/web/abcdef/k": "2"}


@pytest.mark.asyncio
async def test_deregister_tolerates_attribute_delete_failure(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, sample_service
) -> None:
    await adapter.register(sample_service)
    backend.delete_tree = AsyncMock(side_effect=BackendError("kv.delete", "timeout"))

    await adapter.deregister(sample_service)

    backend.delete_tree.assert_awaited_once_with("registrator/web/host1:web:80/")
    assert backend.services == {}


@pytest.mark.asyncio
async def test_deregister_propagates_agent_failure(
    adapter: ConsulMetaAdapter, sample_service
) -> None:
    with pytest.raises(BackendError):
        await adapter.deregister(sample_service)


@pytest.mark.asyncio
async def test_refresh_is_a_no_op(
    adapter: ConsulMetaAdapter, sample_service
) -> None:
    adapter.backend = AsyncMock()

    assert await adapter.refresh(sample_service) is None
    assert adapter.backend.mock_calls == []


@pytest.mark.asyncio
async def test_cleanup_delegates_to_reconciler(
    adapter: ConsulMetaAdapter, backend: InMemoryBackend, make_service
) -> None:
    live = make_service(service_id="live")
    gone = make_service(service_id="gone", attrs={"k": "v"})
    await adapter.register(live)
    await adapter.register(gone)

    removed = await adapter.cleanup({"live": live})

    assert removed == ["registrator/gone"]
    assert list(backend.services) == ["registrator/live"]
    assert backend.kv == {}


@pytest.mark.asyncio
async def test_close_releases_backend() -> None:
    backend = InMemoryBackend()
    backend.close = AsyncMock()
    adapter = ConsulMetaAdapter(backend, "registrator/")

    await adapter.close()

    backend.close.assert_awaited_once()
