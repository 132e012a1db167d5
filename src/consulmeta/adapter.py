"""
Consul Metadata Registration Adapter

Mirrors locally discovered services into Consul. Each service becomes an agent
service entry (with at most one health check) plus one key/value entry per
service attribute, all under the adapter's namespace prefix.

Only the agent registration decides whether ``register`` succeeds. Attribute
writes and deletes are best effort: failures are logged and the primary
operation proceeds.
"""

import builtins
import logging
from collections.abc import Mapping

from .backend import ConsulBackend, RegistryBackend
from .checks import build_check
from .config import AdapterConfig
from .core import NamespacedKey, RegistryEntry, Service
from .errors import BackendError
from .reconcile import Reconciler

logger = logging.getLogger(__name__)


class ConsulMetaAdapter:
    """Registration adapter bound to one backend and namespace prefix."""

    def __init__(self, backend: RegistryBackend, prefix: str):
        self.backend = backend
        self.namespace = NamespacedKey(prefix)
        self.reconciler = Reconciler(backend, self.namespace)

    @classmethod
    def from_uri(cls, uri: str) -> "ConsulMetaAdapter":
        """Create an adapter talking to the Consul agent named by ``uri``."""
        config = AdapterConfig.from_uri(uri)
        logger.debug(
            "Connecting to Consul at %s with prefix %r", config.address, config.prefix
        )
        return cls(ConsulBackend(config), config.prefix)

    @property
    def prefix(self) -> str:
        return self.namespace.prefix

    async def ping(self) -> str:
        """Check connectivity by asking for the current cluster leader."""
        leader = await self.backend.get_leader()
        logger.info("consul: current leader %s", leader)
        return leader

    def build_entry(self, service: Service) -> RegistryEntry:
        """Translate a service into its registry entry."""
        return RegistryEntry(
            id=self.namespace.entry_id(service),
            name=service.name,
            address=service.ip,
            port=service.port,
            tags=list(service.tags),
            check=build_check(service),
        )

    async def register(self, service: Service) -> None:
        """Register a service and write its attributes."""
        entry = self.build_entry(service)

        for key, value in service.attrs.items():
            path = self.namespace.attribute_path(service, key)
            try:
                await self.backend.put_key(path, value)
            except BackendError as e:
                logger.warning(
                    "Failed to register k/v for attribute [%s]: %s", path, e
                )
                continue
            logger.debug("Wrote attribute %s", path)

        await self.backend.register_service(entry)
        logger.info("Registered service in Consul: %s as %s", service, entry.id)

    async def deregister(self, service: Service) -> None:
        """Delete a service's attributes and deregister its entry."""
        path = self.namespace.attribute_tree(service.name, service.id)
        try:
            await self.backend.delete_tree(path)
        except BackendError as e:
            logger.warning("Failed to delete k/v for [%s]: %s", path, e)

        entry_id = self.namespace.entry_id(service)
        await self.backend.deregister_service(entry_id)
        logger.info("Deregistered service from Consul: %s", entry_id)

    async def refresh(self, service: Service) -> None:
        """No-op: Consul evaluates configured checks itself."""

    async def cleanup(
        self, valid_services: Mapping[str, Service | None]
    ) -> builtins.list[str]:
        """Deregister owned entries whose bare ID is not in ``valid_services``."""
        return await self.reconciler.reconcile(valid_services)

    async def close(self) -> None:
        """Release the backend's network resources."""
        await self.backend.close()
