"""
Shared fixtures for consulmeta unit tests.
"""

import pytest

from consulmeta import ConsulMetaAdapter, InMemoryBackend, Service, ServiceOrigin

TEST_PREFIX = "registrator/"


def _make_service(
    service_id: str = "host1:web:80",
    name: str = "web",
    attrs: dict[str, str] | None = None,
    **origin,
) -> Service:
    origin_fields = {
        "container_id": "abcdef0123456789",
        "container_name": "web-1",
        "host_ip": "10.0.0.5",
        "host_port": "8080",
        "exposed_port": "80",
    }
    origin_fields.update(origin)
    return Service(
        id=service_id,
        name=name,
        ip="192.168.1.10",
        port=8080,
        tags=("api", "v1"),
        origin=ServiceOrigin(**origin_fields),
        attrs=dict(attrs or {}),
    )


@pytest.fixture
def sample_service() -> Service:
    """Provide a service carrying a couple of attributes."""
    return _make_service(attrs={"version": "1.2.0", "team": "payments"})


@pytest.fixture
def backend() -> InMemoryBackend:
    return InMemoryBackend()


@pytest.fixture
def adapter(backend: InMemoryBackend) -> ConsulMetaAdapter:
    return ConsulMetaAdapter(backend, TEST_PREFIX)


@pytest.fixture
def make_service():
    """Provide a factory for services with overridable origin fields."""
    return _make_service
