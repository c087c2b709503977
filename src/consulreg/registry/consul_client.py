"""HashiCorp Consul registry client backed by python-consul."""

from typing import Tuple
from urllib.parse import urlsplit

import consul
import requests

from .errors import RegistryConnectionError, RegistryRequestError
from .service_registry import ServiceSpec


DEFAULT_CONSUL_PORT = 8500


def parse_registry_url(registry_url: str) -> Tuple[str, str, int]:
    """Split a registry address into ``(scheme, host, port)``.

    Accepts ``host``, ``host:port`` and ``scheme://host:port``.  Raises
    ``ValueError`` for anything that does not name a host.
    """
    if not registry_url or not registry_url.strip():
        raise ValueError("empty registry address")
    address = registry_url.strip()
    if "://" not in address:
        address = f"http://{address}"
    parts = urlsplit(address)
    if parts.scheme not in ("http", "https"):
        raise ValueError(f"unsupported scheme {parts.scheme!r}")
    if not parts.hostname:
        raise ValueError(f"no host in {registry_url!r}")
    if parts.path not in ("", "/"):
        raise ValueError(f"unexpected path in {registry_url!r}")
    port = parts.port  # raises ValueError on a malformed port
    return parts.scheme, parts.hostname, port or DEFAULT_CONSUL_PORT


class ConsulRegistryClient:
    """Register and deregister services with a Consul agent.

    A new instance is built for every lifecycle call; python-consul opens
    its HTTP session lazily so construction does no I/O.
    """

    def __init__(self, registry_url: str):
        self.registry_url = registry_url
        try:
            scheme, host, port = parse_registry_url(registry_url)
        except ValueError as e:
            raise RegistryConnectionError(
                f"Invalid registry address {registry_url!r}: {e}",
                registry_url=registry_url,
            ) from e
        self._client = consul.Consul(host=host, port=port, scheme=scheme)

    def register_service(self, spec: ServiceSpec) -> None:
        try:
            self._client.agent.service.register(
                spec.name,
                service_id=spec.service_id,
                port=spec.port,
                tags=list(spec.tags),
                check=spec.check.to_payload(),
            )
        except consul.ConsulException as e:
            raise RegistryRequestError(
                f"Registry rejected registration: {e}",
                registry_url=self.registry_url, service_id=spec.service_id,
            ) from e
        except requests.exceptions.RequestException as e:
            raise RegistryConnectionError(
                f"Could not reach registry: {e}",
                registry_url=self.registry_url, service_id=spec.service_id,
            ) from e

    def deregister_service(self, service_id: str) -> None:
        try:
            self._client.agent.service.deregister(service_id)
        except consul.ConsulException as e:
            raise RegistryRequestError(
                f"Registry rejected deregistration: {e}",
                registry_url=self.registry_url, service_id=service_id,
            ) from e
        except requests.exceptions.RequestException as e:
            raise RegistryConnectionError(
                f"Could not reach registry: {e}",
                registry_url=self.registry_url, service_id=service_id,
            ) from e
