"""Shared fixtures for consulreg unit tests."""

import signal

import pytest

from consulreg import RegistrationManager, get_registration
from consulreg.registry import InMemoryRegistryClient


@pytest.fixture
def registration():
    """Default registration for svc/svc-1 on port 8080."""
    return get_registration("svc", "svc-1", 8080)


@pytest.fixture
def memory_client():
    return InMemoryRegistryClient(registry_url="localhost:8500")


@pytest.fixture
def exits():
    """Collects exit statuses instead of terminating the test process."""
    return []


@pytest.fixture
def manager(registration, memory_client, exits):
    """Manager wired to the in-memory client with an empty environment."""
    return RegistrationManager(
        registration,
        client_factory=lambda registry_url: memory_client,
        environ={},
        exit_func=exits.append,
    )


@pytest.fixture(autouse=True)
def restore_signal_handlers():
    """Undo any SIGTERM/SIGINT handlers a test installed."""
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGINT)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)
