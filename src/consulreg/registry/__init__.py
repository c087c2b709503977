"""
Service Registry Clients

This package provides:
1. RegistryClient: the register/deregister interface the lifecycle depends on
2. ConsulRegistryClient: python-consul backed client for a Consul agent
3. InMemoryRegistryClient: dict-backed client for dry runs and tests
"""

from .consul_client import ConsulRegistryClient, parse_registry_url
from .errors import RegistryConnectionError, RegistryError, RegistryRequestError
from .service_registry import (
    HealthCheckSpec,
    InMemoryRegistryClient,
    RegistryClient,
    ServiceSpec,
)

__all__ = [
    'ConsulRegistryClient',
    'HealthCheckSpec',
    'InMemoryRegistryClient',
    'RegistryClient',
    'RegistryConnectionError',
    'RegistryError',
    'RegistryRequestError',
    'ServiceSpec',
    'parse_registry_url',
]
