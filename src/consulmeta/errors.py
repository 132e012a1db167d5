"""
Adapter Errors

Exception hierarchy shared by the configuration, backend and adapter layers.
"""


class ConsulMetaError(Exception):
    """Base consulmeta error."""


class ConfigurationError(ConsulMetaError):
    """Adapter configuration error, raised at construction time."""


class BackendError(ConsulMetaError):
    """A call to the registry backend failed."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"{operation}: {message}")


class NamespaceError(ConsulMetaError):
    """An identifier does not belong to the adapter's namespace."""
