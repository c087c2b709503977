"""CLI entry point for consulreg."""

import argparse
import sys

from .config import build_registration, load_registration_data, registration_to_yaml
from .health import start_health_server
from .manager import RegistrationManager
from .registration import RegistrationConfigError, ServiceRegistration
from .registry import ConsulRegistryClient, InMemoryRegistryClient, RegistryError


def _add_registration_args(parser: argparse.ArgumentParser) -> None:
    """Add registration flags shared by register, serve and show."""
    parser.add_argument("--config", type=str, help="Path to YAML registration file")
    parser.add_argument("--name", type=str, dest="service_name", help="Logical service name")
    parser.add_argument("--id", type=str, dest="service_id", help="Unique service instance ID")
    parser.add_argument("--port", type=int, help="Port the service listens on")
    parser.add_argument(
        "--protocol", type=str, choices=["http", "https"],
        help="Protocol used by the health check (default: http)",
    )
    parser.add_argument("--ip", type=str, help="Address the registry uses to reach the service (default: localhost)")
    parser.add_argument(
        "--health-path", type=str, dest="health_path",
        help="Path of the health endpoint (default: /health)",
    )
    parser.add_argument("--tag", action="append", dest="tags", help="Service tag (repeatable)")
    _add_registry_url_arg(parser)
    parser.add_argument(
        "--verify-tls", action="store_false", dest="skip_tls_verify", default=None,
        help="Make the registry verify the health endpoint's TLS certificate",
    )


def _add_registry_url_arg(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--registry-url", type=str, dest="registry_url",
        help="Consul agent address, host:port (default: localhost:8500)",
    )


def _client_factory(args):
    if args.dry_run:
        memory = InMemoryRegistryClient()
        return lambda registry_url: memory
    return ConsulRegistryClient


def _build_manager(args, registration: ServiceRegistration) -> RegistrationManager:
    return RegistrationManager(registration, client_factory=_client_factory(args))


def _wait_for_shutdown(manager: RegistrationManager) -> None:
    """Block until the shutdown hook deregisters and exits the process."""
    print("Waiting for SIGTERM or Ctrl-C to de-register...", file=sys.stderr)
    manager.shutdown_hook.join()


def cmd_register(args) -> None:
    """Register a service, optionally blocking until shutdown."""
    registration = build_registration(args)
    manager = _build_manager(args, registration)
    manager.register(auto_deregister=args.auto_deregister)
    print(registration.health_check_url)
    if args.auto_deregister:
        _wait_for_shutdown(manager)


def cmd_deregister(args) -> None:
    """Deregister a service instance registered by another process."""
    data = load_registration_data(args.config) if args.config else {}
    if args.registry_url is not None:
        data["consulUrl"] = args.registry_url
    service_id = args.service_id or data.get("id")
    if not service_id:
        print("Error: a service ID is required (argument or 'id' in the config file).", file=sys.stderr)
        sys.exit(1)

    data["id"] = service_id
    data["name"] = data.get("name") or service_id
    # Port plays no part in deregistration
    data["port"] = data.get("port") or 0
    # This process did not register it; let deregister() act anyway
    data["registered"] = True
    registration = ServiceRegistration.from_dict(data)
    _build_manager(args, registration).deregister()


def cmd_serve(args) -> None:
    """Serve the health endpoint, register with auto-deregister, and block."""
    registration = build_registration(args)
    server = start_health_server(registration, host=args.bind)
    manager = _build_manager(args, registration)
    try:
        manager.register(auto_deregister=True)
    except (RegistryError, RegistrationConfigError):
        server.shutdown()
        raise
    _wait_for_shutdown(manager)


def cmd_show(args) -> None:
    """Print the effective registration and its health check URL."""
    registration = build_registration(args)
    registration.validate()
    print(registration_to_yaml(registration), end="")
    print(f"# health check: {registration.health_check_url}")


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="consulreg",
        description="consulreg: register a service and its health check with Consul",
    )
    parser.add_argument(
        "--dry-run", action="store_true", dest="dry_run",
        help="Use an in-memory registry instead of contacting Consul",
    )
    subparsers = parser.add_subparsers(dest="command")

    # register
    register_parser = subparsers.add_parser(
        "register", help="Register a service with the registry",
    )
    _add_registration_args(register_parser)
    register_parser.add_argument(
        "--auto-deregister", action="store_true", dest="auto_deregister",
        help="Stay running and de-register on SIGTERM or Ctrl-C",
    )
    register_parser.set_defaults(func=cmd_register)

    # deregister
    deregister_parser = subparsers.add_parser(
        "deregister", help="Remove a service instance from the registry",
    )
    deregister_parser.add_argument(
        "service_id", type=str, nargs="?", default=None,
        help="Service instance ID (default: 'id' from --config)",
    )
    deregister_parser.add_argument("--config", type=str, help="Path to YAML registration file")
    _add_registry_url_arg(deregister_parser)
    deregister_parser.set_defaults(func=cmd_deregister)

    # serve
    serve_parser = subparsers.add_parser(
        "serve", help="Serve a health endpoint and stay registered until shutdown",
    )
    _add_registration_args(serve_parser)
    serve_parser.add_argument(
        "--bind", type=str, default="0.0.0.0",
        help="Address the health endpoint binds to (default: 0.0.0.0)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # show
    show_parser = subparsers.add_parser(
        "show", help="Print the effective registration",
    )
    _add_registration_args(show_parser)
    show_parser.set_defaults(func=cmd_show)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        args.func(args)
    except (RegistryError, RegistrationConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
