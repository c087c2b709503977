"""Unit tests for ConsulRegistryClient.

These tests use a mocked consul.Consul client, so no Consul agent is needed.
"""

from unittest.mock import MagicMock, patch

import consul
import pytest
import requests

from consulreg.registry import (
    ConsulRegistryClient,
    HealthCheckSpec,
    InMemoryRegistryClient,
    RegistryClient,
    RegistryConnectionError,
    RegistryRequestError,
    ServiceSpec,
    parse_registry_url,
)


@pytest.fixture
def mock_consul_client() -> MagicMock:
    """Provide mocked consul.Consul client."""
    client = MagicMock()
    client.agent = MagicMock()
    client.agent.service = MagicMock()
    client.agent.service.register = MagicMock(return_value=True)
    client.agent.service.deregister = MagicMock(return_value=True)
    return client


@pytest.fixture
def consul_cls(mock_consul_client):
    with patch("consulreg.registry.consul_client.consul.Consul",
               return_value=mock_consul_client) as cls:
        yield cls


@pytest.fixture
def spec() -> ServiceSpec:
    return ServiceSpec(
        service_id="svc-1",
        name="svc",
        port=8080,
        tags=["api"],
        check=HealthCheckSpec(http="http://10.0.0.1:8080/health"),
    )


class TestParseRegistryURL:

    @pytest.mark.parametrize("url,expected", [
        ("localhost:8500", ("http", "localhost", 8500)),
        ("consul.example.com", ("http", "consul.example.com", 8500)),
        ("http://10.0.0.2:8501", ("http", "10.0.0.2", 8501)),
        ("https://consul.example.com", ("https", "consul.example.com", 8500)),
        ("  consul:9500  ", ("http", "consul", 9500)),
    ])
    def test_valid(self, url, expected):
        assert parse_registry_url(url) == expected

    @pytest.mark.parametrize("url", [
        "",
        "   ",
        "consul:port",
        "consul:99999",
        "ftp://consul:8500",
        "http://:8500",
        "consul:8500/v1",
    ])
    def test_invalid(self, url):
        with pytest.raises(ValueError):
            parse_registry_url(url)


class TestConsulRegistryClient:

    def test_builds_consul_client_from_url(self, consul_cls):
        ConsulRegistryClient("https://consul.example.com:8501")
        consul_cls.assert_called_once_with(host="consul.example.com", port=8501, scheme="https")

    def test_bad_address_is_connection_error(self, consul_cls):
        with pytest.raises(RegistryConnectionError) as excinfo:
            ConsulRegistryClient("consul:not-a-port")
        assert excinfo.value.registry_url == "consul:not-a-port"
        consul_cls.assert_not_called()

    def test_register_service(self, consul_cls, mock_consul_client, spec):
        ConsulRegistryClient("localhost:8500").register_service(spec)

        mock_consul_client.agent.service.register.assert_called_once_with(
            "svc",
            service_id="svc-1",
            port=8080,
            tags=["api"],
            check={
                "HTTP": "http://10.0.0.1:8080/health",
                "Interval": "10s",
                "Timeout": "5s",
                "Status": "passing",
                "TLSSkipVerify": True,
            },
        )

    def test_deregister_service(self, consul_cls, mock_consul_client):
        ConsulRegistryClient("localhost:8500").deregister_service("svc-1")
        mock_consul_client.agent.service.deregister.assert_called_once_with("svc-1")

    def test_register_rejected(self, consul_cls, mock_consul_client, spec):
        mock_consul_client.agent.service.register.side_effect = consul.ConsulException("500 boom")
        with pytest.raises(RegistryRequestError) as excinfo:
            ConsulRegistryClient("localhost:8500").register_service(spec)
        assert excinfo.value.service_id == "svc-1"
        assert excinfo.value.registry_url == "localhost:8500"

    def test_register_unreachable(self, consul_cls, mock_consul_client, spec):
        mock_consul_client.agent.service.register.side_effect = (
            requests.exceptions.ConnectionError("refused")
        )
        with pytest.raises(RegistryConnectionError):
            ConsulRegistryClient("localhost:8500").register_service(spec)

    def test_deregister_rejected(self, consul_cls, mock_consul_client):
        mock_consul_client.agent.service.deregister.side_effect = (
            consul.ACLPermissionDenied("403")
        )
        with pytest.raises(RegistryRequestError) as excinfo:
            ConsulRegistryClient("localhost:8500").deregister_service("svc-1")
        assert excinfo.value.service_id == "svc-1"

    def test_deregister_unreachable(self, consul_cls, mock_consul_client):
        mock_consul_client.agent.service.deregister.side_effect = (
            requests.exceptions.Timeout("timed out")
        )
        with pytest.raises(RegistryConnectionError):
            ConsulRegistryClient("localhost:8500").deregister_service("svc-1")


def test_clients_satisfy_registry_protocol(consul_cls):
    assert isinstance(ConsulRegistryClient("localhost:8500"), RegistryClient)
    assert isinstance(InMemoryRegistryClient(), RegistryClient)
    assert not isinstance(object(), RegistryClient)
