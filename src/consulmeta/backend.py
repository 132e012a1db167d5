"""
Registry Backends

The capability set the adapter consumes from a registry, a Consul
implementation built on python-consul's asyncio client, and an in-memory
implementation for development and testing.
"""

import asyncio
import builtins
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Iterator
from contextlib import contextmanager
from typing import Any, TypeVar

import aiohttp
import consul
import consul.aio

from .config import AdapterConfig
from .core import RegistryEntry
from .errors import BackendError, ConfigurationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Read by python-consul's Consul.__init__, where they override explicit
# arguments. AdapterConfig has already resolved them.
CLIENT_ENVIRONMENT = (
    "CONSUL_HTTP_ADDR",
    "CONSUL_HTTP_SSL",
    "CONSUL_HTTP_SSL_VERIFY",
    "CONSUL_HTTP_TOKEN",
)


@contextmanager
def _client_environment_hidden() -> Iterator[None]:
    saved = {
        name: os.environ.pop(name) for name in CLIENT_ENVIRONMENT if name in os.environ
    }
    try:
        yield
    finally:
        os.environ.update(saved)


class RegistryBackend(ABC):
    """Client-facing operations of a service registry."""

    @abstractmethod
    async def get_leader(self) -> str:
        """Return the identity of the current cluster leader."""

    @abstractmethod
    async def put_key(self, path: str, value: str) -> None:
        """Write one key/value entry."""

    @abstractmethod
    async def delete_tree(self, path: str) -> None:
        """Recursively delete every key under ``path``."""

    @abstractmethod
    async def register_service(self, entry: RegistryEntry) -> None:
        """Register a service entry with the local agent."""

    @abstractmethod
    async def deregister_service(self, service_id: str) -> None:
        """Remove a service entry from the local agent."""

    @abstractmethod
    async def list_services(self) -> builtins.dict[str, builtins.dict[str, Any]]:
        """Return the agent's service entries keyed by entry ID."""

    async def close(self) -> None:
        """Release network resources."""


class ConsulBackend(RegistryBackend):
    """Consul agent and KV store reached through python-consul's aio client.

    The client owns an aiohttp session bound to the running event loop, so it
    is created on first use. Each request is bounded by ``config.timeout``
    through the session's own timeout. Await calls on one backend serially.
    """

    def __init__(self, config: AdapterConfig):
        config.validate()
        self.config = config
        self._consul: consul.aio.Consul | None = None

    async def _get_consul_client(self) -> consul.aio.Consul:
        """Get Consul client."""
        if self._consul is None:
            try:
                with _client_environment_hidden():
                    self._consul = consul.aio.Consul(
                        host=self.config.host,
                        port=self.config.port,
                        token=self.config.token,
                        scheme=self.config.scheme,
                        verify=self.config.verify,
                        connections_timeout=self.config.timeout,
                    )
            except (consul.ConsulException, TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Cannot create Consul client for {self.config.address}: {e}"
                ) from e
            logger.debug("Created Consul client for %s", self.config.address)

        return self._consul

    async def _call(self, operation: str, request: Awaitable[T]) -> T:
        try:
            return await request
        except asyncio.TimeoutError as e:
            raise BackendError(
                operation, f"timed out after {self.config.timeout}s"
            ) from e
        except (consul.ConsulException, aiohttp.ClientError) as e:
            raise BackendError(operation, str(e)) from e

    async def get_leader(self) -> str:
        client = await self._get_consul_client()
        leader = await self._call("status.leader", client.status.leader())
        if not leader:
            raise BackendError("status.leader", "cluster has no leader")
        return leader

    async def put_key(self, path: str, value: str) -> None:
        client = await self._get_consul_client()
        if not await self._call("kv.put", client.kv.put(path, value)):
            raise BackendError("kv.put", f"write to {path} was not acknowledged")

    async def delete_tree(self, path: str) -> None:
        client = await self._get_consul_client()
        if not await self._call("kv.delete", client.kv.delete(path, recurse=True)):
            raise BackendError("kv.delete", f"delete of {path} was not acknowledged")

    async def register_service(self, entry: RegistryEntry) -> None:
        client = await self._get_consul_client()
        check = entry.check.to_consul() if entry.check is not None else None
        registered = await self._call(
            "agent.service.register",
            client.agent.service.register(
                entry.name,
                service_id=entry.id,
                address=entry.address,
                port=entry.port,
                tags=list(entry.tags),
                check=check,
            ),
        )
        if not registered:
            raise BackendError(
                "agent.service.register", f"registration of {entry.id} was rejected"
            )

    async def deregister_service(self, service_id: str) -> None:
        client = await self._get_consul_client()
        if not await self._call(
            "agent.service.deregister", client.agent.service.deregister(service_id)
        ):
            raise BackendError(
                "agent.service.deregister",
                f"deregistration of {service_id} was rejected",
            )

    async def list_services(self) -> builtins.dict[str, builtins.dict[str, Any]]:
        client = await self._get_consul_client()
        return await self._call("agent.services", client.agent.services())

    async def close(self) -> None:
        if self._consul is not None:
            await self._consul.close()
            self._consul = None


class InMemoryBackend(RegistryBackend):
    """In-memory registry backend for development and testing."""

    def __init__(self, leader: str = "127.0.0.1:8300"):
        self.leader = leader
        self.services: builtins.dict[str, builtins.dict[str, Any]] = {}
        self.kv: builtins.dict[str, str] = {}

    async def get_leader(self) -> str:
        if not self.leader:
            raise BackendError("status.leader", "cluster has no leader")
        return self.leader

    async def put_key(self, path: str, value: str) -> None:
        self.kv[path] = value

    async def delete_tree(self, path: str) -> None:
        for key in [k for k in self.kv if k.startswith(path)]:
            del self.kv[key]

    async def register_service(self, entry: RegistryEntry) -> None:
        definition = entry.to_consul()
        self.services[entry.id] = {
            "ID": definition["ID"],
            "Service": definition["Name"],
            "Tags": definition["Tags"],
            "Address": definition["Address"],
            "Port": definition["Port"],
            "Check": definition.get("Check"),
        }

    async def deregister_service(self, service_id: str) -> None:
        if self.services.pop(service_id, None) is None:
            raise BackendError(
                "agent.service.deregister", f"unknown service ID {service_id}"
            )

    async def list_services(self) -> builtins.dict[str, builtins.dict[str, Any]]:
        return {sid: dict(service) for sid, service in self.services.items()}
