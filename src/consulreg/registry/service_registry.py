#!/usr/bin/env python3
"""
Registry client interface and payload types

This module provides:
- HealthCheckSpec / ServiceSpec: what gets sent to the registry
- RegistryClient: the two operations the registration lifecycle needs
- InMemoryRegistryClient: a dict-backed registry used for dry runs and tests
"""

import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any, Protocol, runtime_checkable

from .errors import RegistryRequestError


HEALTH_CHECK_INTERVAL = "10s"
HEALTH_CHECK_TIMEOUT = "5s"
HEALTH_CHECK_STATUS = "passing"


@dataclass
class HealthCheckSpec:
    """HTTP GET health check run by the registry against the service."""
    http: str
    interval: str = HEALTH_CHECK_INTERVAL
    timeout: str = HEALTH_CHECK_TIMEOUT
    status: str = HEALTH_CHECK_STATUS
    tls_skip_verify: bool = True

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the registry's check definition JSON."""
        return {
            "HTTP": self.http,
            "Interval": self.interval,
            "Timeout": self.timeout,
            "Status": self.status,
            "TLSSkipVerify": self.tls_skip_verify,
        }


@dataclass
class ServiceSpec:
    """Service definition submitted on registration."""
    service_id: str
    name: str
    port: int
    check: HealthCheckSpec
    tags: List[str] = field(default_factory=list)

    def to_payload(self) -> Dict[str, Any]:
        """Convert to the registry's service definition JSON."""
        return {
            "ID": self.service_id,
            "Name": self.name,
            "Tags": list(self.tags),
            "Port": self.port,
            "Check": self.check.to_payload(),
        }


@runtime_checkable
class RegistryClient(Protocol):
    """Minimal registry API consumed by the registration lifecycle."""

    def register_service(self, spec: ServiceSpec) -> None:
        ...

    def deregister_service(self, service_id: str) -> None:
        ...


# ---------------------------------------------------------------------------
# In-memory registry (dry runs, tests)
# ---------------------------------------------------------------------------

class InMemoryRegistryClient:
    """Thread-safe, dict-backed registry client.

    Records every call so the lifecycle can be observed without a live
    registry.  Setting ``fail_register`` / ``fail_deregister`` makes the
    corresponding call raise ``RegistryRequestError``.
    """

    def __init__(self, registry_url: str = "memory", fail_register: bool = False,
                 fail_deregister: bool = False):
        self.registry_url = registry_url
        self.fail_register = fail_register
        self.fail_deregister = fail_deregister
        self._lock = threading.Lock()
        self._services: Dict[str, ServiceSpec] = {}
        self.register_calls: List[ServiceSpec] = []
        self.deregister_calls: List[str] = []

    def register_service(self, spec: ServiceSpec) -> None:
        with self._lock:
            self.register_calls.append(spec)
            if self.fail_register:
                raise RegistryRequestError(
                    "registration rejected", registry_url=self.registry_url,
                    service_id=spec.service_id,
                )
            self._services[spec.service_id] = spec

    def deregister_service(self, service_id: str) -> None:
        with self._lock:
            self.deregister_calls.append(service_id)
            if self.fail_deregister:
                raise RegistryRequestError(
                    "deregistration rejected", registry_url=self.registry_url,
                    service_id=service_id,
                )
            self._services.pop(service_id, None)

    def get_service(self, service_id: str) -> Optional[ServiceSpec]:
        with self._lock:
            return self._services.get(service_id)

    def get_service_count(self) -> int:
        with self._lock:
            return len(self._services)
