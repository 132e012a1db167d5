"""
Factory helpers for constructing registration adapters from URIs.
"""

from __future__ import annotations

from collections.abc import Callable
from urllib.parse import urlsplit

from .adapter import ConsulMetaAdapter
from .errors import ConfigurationError

ADAPTER_SCHEMES: dict[str, Callable[[str], ConsulMetaAdapter]] = {
    "consulmeta": ConsulMetaAdapter.from_uri,
}


def create_adapter(uri: str) -> ConsulMetaAdapter:
    """Factory function to create an adapter based on the URI scheme."""
    scheme = urlsplit(uri).scheme
    factory = ADAPTER_SCHEMES.get(scheme)
    if factory is None:
        raise ConfigurationError(f"Unsupported adapter scheme: {scheme!r}")
    return factory(uri)
