"""
Health Check Builder

Selects at most one health check for a service from its attributes. Rules are
evaluated in the order of ``CHECK_RULES``; the first rule whose attribute is
present and non-empty wins and later attributes are ignored.
"""

import builtins
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .core import Service

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = "10s"
CHECK_SHELL = ("sh", "-c")


class CheckType(Enum):
    """Health check variants."""

    HTTP = "http"
    COMMAND = "command"
    SCRIPT = "script"
    TTL = "ttl"


@dataclass(frozen=True)
class HealthCheckSpec:
    """A single health check attached to a registry entry."""

    check_type: CheckType
    http: str | None = None
    script: str | None = None
    ttl: str | None = None
    timeout: str | None = None
    interval: str | None = None

    @property
    def is_polled(self) -> bool:
        """Whether the backend polls this check on an interval."""
        return self.check_type != CheckType.TTL

    def to_consul(self) -> builtins.dict[str, Any]:
        """Check definition in Consul's JSON shape."""
        check: builtins.dict[str, Any]
        if self.check_type == CheckType.HTTP:
            check = {"HTTP": self.http}
            if self.timeout:
                check["Timeout"] = self.timeout
        elif self.check_type == CheckType.TTL:
            check = {"TTL": self.ttl}
        else:
            check = {"Args": [*CHECK_SHELL, self.script]}

        if self.is_polled:
            check["Interval"] = self.interval
        return check


@dataclass(frozen=True)
class CheckRule:
    """Maps one trigger attribute to the check variant it produces."""

    attribute: str
    check_type: CheckType
    build: Callable[[Service, str], HealthCheckSpec]

    def matches(self, attrs: Mapping[str, str]) -> bool:
        return bool(attrs.get(self.attribute))


def interpolate_script(script: str, service: Service) -> str:
    """Substitute every ``$SERVICE_IP`` and ``$SERVICE_PORT`` placeholder."""
    return script.replace("$SERVICE_IP", service.origin.host_ip).replace(
        "$SERVICE_PORT", service.origin.host_port
    )


def _poll_interval(service: Service) -> str:
    return service.attrs.get("check_interval") or DEFAULT_INTERVAL


def _http_check(service: Service, path: str) -> HealthCheckSpec:
    return HealthCheckSpec(
        check_type=CheckType.HTTP,
        http=f"http://{service.ip}:{service.port}{path}",
        timeout=service.attrs.get("check_timeout") or None,
        interval=_poll_interval(service),
    )


def _command_check(service: Service, command: str) -> HealthCheckSpec:
    script = " ".join(
        [
            "check-cmd",
            service.origin.short_container_id,
            service.origin.exposed_port,
            command,
        ]
    )
    return HealthCheckSpec(
        check_type=CheckType.COMMAND,
        script=script,
        interval=_poll_interval(service),
    )


def _script_check(service: Service, script: str) -> HealthCheckSpec:
    return HealthCheckSpec(
        check_type=CheckType.SCRIPT,
        script=interpolate_script(script, service),
        interval=_poll_interval(service),
    )


def _ttl_check(service: Service, ttl: str) -> HealthCheckSpec:
    return HealthCheckSpec(check_type=CheckType.TTL, ttl=ttl)


CHECK_RULES: builtins.tuple[CheckRule, ...] = (
    CheckRule("check_http", CheckType.HTTP, _http_check),
    CheckRule("check_cmd", CheckType.COMMAND, _command_check),
    CheckRule("check_script", CheckType.SCRIPT, _script_check),
    CheckRule("check_ttl", CheckType.TTL, _ttl_check),
)


def select_check_rule(
    attrs: Mapping[str, str],
    rules: builtins.tuple[CheckRule, ...] = CHECK_RULES,
) -> CheckRule | None:
    """Return the first rule triggered by ``attrs``, or None."""
    for rule in rules:
        if rule.matches(attrs):
            return rule
    return None


def build_check(service: Service) -> HealthCheckSpec | None:
    """Build the health check for a service, or None when it declares none."""
    rule = select_check_rule(service.attrs)
    if rule is None:
        return None

    check = rule.build(service, service.attrs[rule.attribute])
    logger.debug(
        "Selected %s check for %s from %s",
        check.check_type.value,
        service,
        rule.attribute,
    )
    return check
