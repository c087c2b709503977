"""Service registration record: identity, network location and health check URL."""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List


DEFAULT_PROTOCOL = "http"
DEFAULT_IP = "localhost"
DEFAULT_HEALTH_PATH = "/health"
DEFAULT_REGISTRY_URL = "localhost:8500"

# Host name replaced by $HOST_IP at registration time
PLACEHOLDER_HOST = "localhost"

_SUPPORTED_PROTOCOLS = {"http", "https"}

# dataclass field -> YAML key
YAML_KEYS = {
    "service_id": "id",
    "service_name": "name",
    "protocol": "protocol",
    "ip": "ip",
    "port": "port",
    "health_path": "healthUrl",
    "tags": "tags",
    "registry_url": "consulUrl",
    "skip_tls_verify": "skipSsl",
    "registered": "registered",
}

# Fields without a default on ServiceRegistration
_REQUIRED = ("service_name", "service_id", "port")


class RegistrationConfigError(ValueError):
    """Raised when registration fields cannot form a valid health check URL."""


@dataclass
class ServiceRegistration:
    """One service instance as known to the registry."""
    service_name: str
    service_id: str
    port: int
    protocol: str = DEFAULT_PROTOCOL
    ip: str = DEFAULT_IP
    health_path: str = DEFAULT_HEALTH_PATH
    tags: List[str] = field(default_factory=list)
    registry_url: str = DEFAULT_REGISTRY_URL
    skip_tls_verify: bool = True
    registered: bool = False

    @property
    def health_check_url(self) -> str:
        """URL the registry polls to decide whether this instance is alive."""
        return f"{self.protocol}://{self.ip}:{self.port}{self.health_path}"

    def validate(self) -> None:
        """Check that the fields concatenate into a well-formed URL.

        The health check URL is built by plain string concatenation, so
        separators embedded in ``ip`` or a relative ``health_path`` would
        silently produce a different URL than intended.
        """
        if not self.service_id:
            raise RegistrationConfigError("service_id must not be empty")
        if not self.service_name:
            raise RegistrationConfigError("service_name must not be empty")
        if isinstance(self.port, bool) or not isinstance(self.port, int):
            raise RegistrationConfigError(f"port must be an integer, got {self.port!r}")
        if not 1 <= self.port <= 65535:
            raise RegistrationConfigError(f"port {self.port} out of range 1-65535")
        if self.protocol not in _SUPPORTED_PROTOCOLS:
            raise RegistrationConfigError(
                f"protocol must be one of {sorted(_SUPPORTED_PROTOCOLS)}, got {self.protocol!r}"
            )
        if not _is_valid_host(self.ip):
            raise RegistrationConfigError(f"invalid ip/host {self.ip!r}")
        if not self.health_path.startswith("/"):
            raise RegistrationConfigError(
                f"health_path must start with '/', got {self.health_path!r}"
            )
        if any(c.isspace() for c in self.health_path):
            raise RegistrationConfigError(
                f"health_path must not contain whitespace, got {self.health_path!r}"
            )

    def apply_host_ip(self, host_ip: str) -> bool:
        """Swap the placeholder host for *host_ip*.

        Only acts while the health check URL still points at
        ``localhost``; once substituted the placeholder is gone, so calling
        this again is a no-op.  Returns True if a substitution happened.
        """
        if not host_ip:
            return False
        if self.ip.lower() != PLACEHOLDER_HOST:
            return False
        if ":" in host_ip and not host_ip.startswith("["):
            host_ip = f"[{host_ip}]"
        self.ip = host_ip
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary keyed by the YAML field names."""
        data = asdict(self)
        return {YAML_KEYS[k]: v for k, v in data.items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServiceRegistration':
        """Create from a dictionary keyed by the YAML field names."""
        reverse = {v: k for k, v in YAML_KEYS.items()}
        kwargs = {reverse[k]: v for k, v in data.items() if k in reverse}
        missing = [YAML_KEYS[k] for k in _REQUIRED if kwargs.get(k) in (None, "")]
        if missing:
            raise RegistrationConfigError(f"missing required settings: {', '.join(missing)}")
        kwargs["port"] = _to_port(kwargs["port"])
        if "tags" in kwargs:
            kwargs["tags"] = [str(t) for t in kwargs["tags"] or []]
        return cls(**kwargs)


def _to_port(value: Any) -> int:
    if isinstance(value, bool):
        raise RegistrationConfigError(f"port must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise RegistrationConfigError(f"port must be an integer, got {value!r}") from e


def _is_valid_host(host: str) -> bool:
    if not host or any(c.isspace() for c in host):
        return False
    if host.startswith("[") and host.endswith("]"):
        return "/" not in host
    return not any(c in host for c in "/:?#@")


def get_registration(name: str, service_id: str, port: int) -> ServiceRegistration:
    """Return a new registration with the default network and registry settings."""
    return ServiceRegistration(service_name=name, service_id=service_id, port=port)
