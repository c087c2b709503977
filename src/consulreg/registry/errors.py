"""Errors raised while talking to the service registry."""

from typing import Optional


class RegistryError(Exception):
    """Base class for registry failures.

    Carries the registry address and service ID so callers can log the
    failure with context without threading those values through.
    """

    def __init__(self, message: str, registry_url: Optional[str] = None,
                 service_id: Optional[str] = None):
        super().__init__(message)
        self.registry_url = registry_url
        self.service_id = service_id


class RegistryConnectionError(RegistryError):
    """Bad registry address, or the registry could not be reached."""


class RegistryRequestError(RegistryError):
    """The registry answered but rejected the request."""
