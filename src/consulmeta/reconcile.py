"""
Registry Reconciliation

Removes registry entries owned by the adapter's namespace that no longer have
a live service behind them. Reconciliation is one-way: missing entries are
never created here.
"""

import builtins
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .backend import RegistryBackend
from .core import NamespacedKey, Service
from .errors import BackendError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Orphan:
    """A registry entry with no matching valid service."""

    entry_id: str
    bare_id: str
    service_name: str | None = None


def find_orphans(
    namespace: NamespacedKey,
    entries: Mapping[str, Mapping[str, Any]],
    valid_services: Mapping[str, Service | None],
) -> builtins.list[Orphan]:
    """Return the owned entries absent from ``valid_services``.

    Entries outside the namespace are never returned. A bare ID mapped to
    ``None`` counts as absent.
    """
    orphans = []
    for entry_id, summary in entries.items():
        if not namespace.owns(entry_id):
            continue

        bare_id = namespace.strip_prefix(entry_id)
        if valid_services.get(bare_id):
            continue

        service_name = (summary or {}).get("Service") or None
        orphans.append(Orphan(entry_id, bare_id, service_name))
    return orphans


class Reconciler:
    """Deregisters orphaned entries from a registry backend."""

    def __init__(self, backend: RegistryBackend, namespace: NamespacedKey):
        self.backend = backend
        self.namespace = namespace

    async def reconcile(
        self, valid_services: Mapping[str, Service | None]
    ) -> builtins.list[str]:
        """Remove orphaned entries and return the IDs that were deregistered.

        A listing failure propagates. Failures for individual orphans are
        logged and do not stop the pass.
        """
        entries = await self.backend.list_services()

        removed = []
        for orphan in find_orphans(self.namespace, entries, valid_services):
            logger.info("cleanup: %s", orphan.bare_id)
            try:
                await self.backend.deregister_service(orphan.entry_id)
            except BackendError as e:
                logger.error(
                    "Deregister during cleanup failed for %s: %s", orphan.entry_id, e
                )
                continue

            removed.append(orphan.entry_id)
            if orphan.service_name:
                await self._delete_attributes(orphan)

        return removed

    async def _delete_attributes(self, orphan: Orphan) -> None:
        path = self.namespace.attribute_tree(orphan.service_name, orphan.bare_id)
        try:
            await self.backend.delete_tree(path)
        except BackendError as e:
            logger.warning("Failed to delete k/v during cleanup for [%s]: %s", path, e)
