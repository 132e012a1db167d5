"""
Adapter Configuration

Parses the adapter URI (``consulmeta://host:port/prefix``) and the standard
Consul client environment variables into an ``AdapterConfig``.

The URI host selects the Consul agent; when it is empty the address comes from
``CONSUL_HTTP_ADDR`` and finally ``127.0.0.1:8500``. The URI path is the
namespace prefix: it must start with ``/``, which is removed once, and the rest
is used literally, so ``/registrator/`` yields entry IDs like
``registrator/<id>``.
"""

import builtins
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8500
DEFAULT_TIMEOUT = 10.0

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _parse_bool(name: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Invalid boolean for {name}: {value!r}")


def _split_address(address: str, default_scheme: str) -> builtins.tuple[str, str, int]:
    """Split ``[scheme://]host[:port]`` into its parts."""
    scheme = default_scheme
    if "://" in address:
        scheme, address = address.split("://", 1)

    parsed = urlsplit(f"//{address}")
    try:
        port = parsed.port or DEFAULT_PORT
    except ValueError as e:
        raise ConfigurationError(f"Invalid Consul address {address!r}: {e}") from e

    return scheme, parsed.hostname or DEFAULT_HOST, port


@dataclass
class AdapterConfig:
    """Connection and namespace settings for one adapter instance."""

    prefix: str
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    scheme: str = "http"
    token: str | None = None
    verify: bool = True
    timeout: float = DEFAULT_TIMEOUT

    @classmethod
    def from_uri(
        cls, uri: str, environ: Mapping[str, str] | None = None
    ) -> "AdapterConfig":
        """Create configuration from an adapter URI and the environment."""
        env = os.environ if environ is None else environ
        parsed = urlsplit(uri)

        path = parsed.path
        if not path.startswith("/"):
            raise ConfigurationError(
                f"Adapter URI {uri!r} needs a path naming the namespace prefix"
            )

        scheme = "http"
        if env.get("CONSUL_HTTP_SSL"):
            if _parse_bool("CONSUL_HTTP_SSL", env["CONSUL_HTTP_SSL"]):
                scheme = "https"

        address = parsed.netloc or env.get("CONSUL_HTTP_ADDR", "")
        if address:
            scheme, host, port = _split_address(address, scheme)
        else:
            host, port = DEFAULT_HOST, DEFAULT_PORT

        verify = True
        if env.get("CONSUL_HTTP_SSL_VERIFY"):
            verify = _parse_bool(
                "CONSUL_HTTP_SSL_VERIFY", env["CONSUL_HTTP_SSL_VERIFY"]
            )

        config = cls(
            prefix=path[1:],
            host=host,
            port=port,
            scheme=scheme,
            token=env.get("CONSUL_HTTP_TOKEN") or None,
            verify=verify,
        )
        config.validate()
        return config

    def validate(self) -> None:
        if not self.prefix:
            raise ConfigurationError("Namespace prefix must not be empty")
        if self.port <= 0 or self.port > 65535:
            raise ConfigurationError(f"Invalid port number: {self.port}")
        if self.scheme not in ("http", "https"):
            raise ConfigurationError(f"Unsupported Consul scheme: {self.scheme}")
        if self.timeout <= 0:
            raise ConfigurationError("Timeout must be positive")

    @property
    def address(self) -> str:
        return f"{self.scheme}://{self.host}:{self.port}"
