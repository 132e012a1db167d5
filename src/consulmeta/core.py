"""
Core Registration Abstractions

Service descriptions supplied by the host, the namespaced key type used for
every identifier the adapter writes, and the registry entry submitted to the
backend.
"""

import builtins
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .errors import NamespaceError

if TYPE_CHECKING:
    from .checks import HealthCheckSpec

ATTRIBUTE_SEPARATOR = "/"


@dataclass(frozen=True)
class ServiceOrigin:
    """Where a service came from on the local machine."""

    container_id: str = ""
    container_name: str = ""
    host_ip: str = ""
    host_port: str = ""
    exposed_ip: str = ""
    exposed_port: str = ""
    port_type: str = "tcp"

    @property
    def short_container_id(self) -> str:
        """Container ID truncated to the conventional 12 characters."""
        return self.container_id[:12]


@dataclass(frozen=True)
class Service:
    """A locally discovered service as described by the host."""

    id: str
    name: str
    ip: str
    port: int
    tags: builtins.tuple[str, ...] = ()
    origin: ServiceOrigin = field(default_factory=ServiceOrigin)
    attrs: builtins.dict[str, str] = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.name}[{self.id}]@{self.ip}:{self.port}"


@dataclass(frozen=True)
class NamespacedKey:
    """Namespace prefix applied to entry IDs and key/value paths."""

    prefix: str

    def with_prefix(self, bare: str) -> str:
        return self.prefix + bare

    def owns(self, full: str) -> bool:
        return full.startswith(self.prefix)

    def strip_prefix(self, full: str) -> str:
        """Remove the prefix from ``full``.

        Raises NamespaceError when ``full`` is not owned by this namespace, so
        a foreign identifier is never silently truncated.
        """
        if not self.owns(full):
            raise NamespaceError(
                f"{full!r} is outside namespace {self.prefix!r}"
            )
        return full[len(self.prefix) :]

    def entry_id(self, service: Service) -> str:
        """Registry entry ID for a service."""
        return self.with_prefix(service.id)

    def attribute_root(self, service_name: str, service_id: str) -> str:
        """Key/value path holding every attribute of one service."""
        return self.with_prefix(
            f"{service_name}{ATTRIBUTE_SEPARATOR}{service_id}"
        )

    def attribute_path(self, service: Service, key: str) -> str:
        return (
            self.attribute_root(service.name, service.id)
            + ATTRIBUTE_SEPARATOR
            + key
        )

    def attribute_tree(self, service_name: str, service_id: str) -> str:
        """Recursive-delete root for a service's attributes.

        The trailing separator keeps a delete for ``web/abc`` from matching
        the attributes of ``web/abcdef``.
        """
        return self.attribute_root(service_name, service_id) + ATTRIBUTE_SEPARATOR


@dataclass
class RegistryEntry:
    """Service record submitted to the registry agent."""

    id: str
    name: str
    address: str
    port: int
    tags: builtins.list[str] = field(default_factory=list)
    check: "HealthCheckSpec | None" = None

    def to_consul(self) -> builtins.dict[str, Any]:
        """Agent service definition in Consul's JSON shape."""
        definition: builtins.dict[str, Any] = {
            "ID": self.id,
            "Name": self.name,
            "Tags": list(self.tags),
            "Address": self.address,
            "Port": self.port,
        }
        if self.check is not None:
            definition["Check"] = self.check.to_consul()
        return definition
