"""
Consul Metadata Registration Adapter

Mirrors locally discovered services into Consul: one agent service entry with
an optional health check per service, one key/value entry per service
attribute, and a periodic cleanup that removes entries whose service is gone.

Usage:
    from consulmeta import Service, create_adapter

    adapter = create_adapter("consulmeta://localhost:8500/registrator/")
    await adapter.ping()
    await adapter.register(service)
    await adapter.cleanup({service.id: service})
"""

from .adapter import ConsulMetaAdapter
from .backend import ConsulBackend, InMemoryBackend, RegistryBackend
from .checks import (
    CHECK_RULES,
    DEFAULT_INTERVAL,
    CheckRule,
    CheckType,
    HealthCheckSpec,
    build_check,
    select_check_rule,
)
from .config import AdapterConfig
from .core import NamespacedKey, RegistryEntry, Service, ServiceOrigin
from .errors import BackendError, ConfigurationError, ConsulMetaError, NamespaceError
from .factory import ADAPTER_SCHEMES, create_adapter
from .reconcile import Orphan, Reconciler, find_orphans

__version__ = "1.0.0"

__all__ = [
    "ADAPTER_SCHEMES",
    "AdapterConfig",
    "BackendError",
    "CHECK_RULES",
    "CheckRule",
    "CheckType",
    "ConfigurationError",
    "ConsulBackend",
    "ConsulMetaAdapter",
    "ConsulMetaError",
    "DEFAULT_INTERVAL",
    "HealthCheckSpec",
    "InMemoryBackend",
    "NamespaceError",
    "NamespacedKey",
    "Orphan",
    "Reconciler",
    "RegistryBackend",
    "RegistryEntry",
    "Service",
    "ServiceOrigin",
    "build_check",
    "create_adapter",
    "find_orphans",
    "select_check_rule",
]
