"""Registration lifecycle: register, deregister, and deregister-on-shutdown."""

import os
import signal
import sys
import threading
from typing import Callable, Mapping, Optional

from .registration import ServiceRegistration
from .registry import (
    ConsulRegistryClient,
    HealthCheckSpec,
    RegistryClient,
    RegistryError,
    ServiceSpec,
)


HOST_IP_ENV = "HOST_IP"

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)

ClientFactory = Callable[[str], RegistryClient]


def _exit_process(status: int) -> None:
    # Called from the hook thread, where sys.exit would only end the thread
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(status)


class RegistrationManager:
    """Owns one ServiceRegistration and drives it through the registry.

    *client_factory* is called with the registry URL for every register or
    deregister call; no client is reused across calls.
    """

    def __init__(
        self,
        registration: ServiceRegistration,
        client_factory: ClientFactory = ConsulRegistryClient,
        environ: Optional[Mapping[str, str]] = None,
        exit_func: Callable[[int], None] = _exit_process,
    ):
        self.registration = registration
        self._client_factory = client_factory
        self._environ = os.environ if environ is None else environ
        self._exit_func = exit_func
        self.shutdown_hook: Optional[ShutdownHook] = None

    @property
    def registered(self) -> bool:
        return self.registration.registered

    def _substitute_host_ip(self) -> None:
        host_ip = self._environ.get(HOST_IP_ENV)
        if host_ip is None:
            return
        reg = self.registration
        if reg.apply_host_ip(host_ip):
            print(
                f"[consul] Using {HOST_IP_ENV}={host_ip} for {reg.service_id}"
                f" health check: {reg.health_check_url}",
                file=sys.stderr,
            )

    def _build_spec(self) -> ServiceSpec:
        reg = self.registration
        check = HealthCheckSpec(
            http=reg.health_check_url,
            tls_skip_verify=reg.skip_tls_verify,
        )
        return ServiceSpec(
            service_id=reg.service_id,
            name=reg.service_name,
            port=reg.port,
            tags=list(reg.tags),
            check=check,
        )

    def register(self, auto_deregister: bool = False) -> None:
        """Register the service and its health check with the registry.

        With *auto_deregister*, a ShutdownHook is started that deregisters
        and exits the process on SIGTERM or SIGINT.  It is available as
        ``self.shutdown_hook``.
        """
        reg = self.registration
        self._substitute_host_ip()
        reg.validate()

        try:
            client = self._client_factory(reg.registry_url)
            client.register_service(self._build_spec())
        except RegistryError as e:
            print(
                f"[consul] Error registering {reg.service_id} with consul on"
                f" {reg.registry_url} - {e}",
                file=sys.stderr,
            )
            raise

        reg.registered = True
        print(
            f"[consul] Registered {reg.service_id} ({reg.service_name}) with consul on"
            f" {reg.registry_url}, health check {reg.health_check_url}",
            file=sys.stderr,
        )

        if auto_deregister and not (self.shutdown_hook and self.shutdown_hook.is_alive()):
            self.shutdown_hook = ShutdownHook(self, exit_func=self._exit_func)
            self.shutdown_hook.start()

    def deregister(self) -> None:
        """Remove the service from the registry.  No-op unless registered."""
        reg = self.registration
        if not reg.registered:
            return

        print(
            f"[consul] Attempting de-register ({reg.service_id}) with consul on"
            f" {reg.registry_url}",
            file=sys.stderr,
        )
        try:
            client = self._client_factory(reg.registry_url)
            client.deregister_service(reg.service_id)
        except RegistryError as e:
            print(
                f"[consul] Error de-registering ({reg.service_id}) with consul on"
                f" {reg.registry_url} - {e}",
                file=sys.stderr,
            )
            raise

        reg.registered = False
        print(
            f"[consul] Successfully de-registered ({reg.service_id}) with consul on"
            f" {reg.registry_url}",
            file=sys.stderr,
        )


class ShutdownHook:
    """Background task that deregisters once a termination is requested.

    The hook thread waits on an event set by SIGTERM/SIGINT (after
    ``install_signal_handlers``) or by calling ``trigger`` directly.  It
    fires at most once: deregister, report any registry error, then call
    *exit_func* with status 0 whatever the outcome.
    """

    def __init__(self, manager: RegistrationManager,
                 exit_func: Callable[[int], None] = _exit_process):
        self._manager = manager
        self._exit = exit_func
        self._event = threading.Event()
        # Re-entrant: a signal handler may call trigger() while cancel() holds it
        self._lock = threading.RLock()
        self._cancelled = False
        self._thread: Optional[threading.Thread] = None
        self._previous_handlers: dict = {}
        self.fired = False

    def start(self, install_signals: bool = True) -> 'ShutdownHook':
        if self._thread is not None:
            raise RuntimeError("shutdown hook already started")
        if install_signals:
            self.install_signal_handlers()
        self._thread = threading.Thread(
            target=self._run,
            name=f"deregister-{self._manager.registration.service_id}",
            daemon=True,
        )
        self._thread.start()
        return self

    def install_signal_handlers(self) -> bool:
        """Route SIGTERM and SIGINT to ``trigger``.

        Returns False when not called from the main thread, in which case
        the hook only fires through ``trigger``.
        """
        try:
            for sig in SHUTDOWN_SIGNALS:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
        except ValueError:
            print(
                "[shutdown] Warning: signal handlers can only be installed from the"
                " main thread; auto-deregister will not react to signals",
                file=sys.stderr,
            )
            return False
        return True

    def _restore_signal_handlers(self) -> None:
        for sig, handler in self._previous_handlers.items():
            signal.signal(sig, handler)
        self._previous_handlers.clear()

    def _handle_signal(self, signum, frame) -> None:
        print(f"[shutdown] Received {signal.Signals(signum).name}", file=sys.stderr)
        self.trigger()

    def trigger(self) -> None:
        """Request termination: deregister and exit."""
        with self._lock:
            self._event.set()

    def cancel(self) -> None:
        """Stop waiting without deregistering.

        Has no effect once termination has been requested, even if the hook
        thread has not woken up yet.
        """
        with self._lock:
            if self._event.is_set():
                return
            self._cancelled = True
            self._event.set()
        if threading.current_thread() is threading.main_thread():
            self._restore_signal_handlers()

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        self._event.wait()
        if self._cancelled:
            return
        self.fired = True
        try:
            self._manager.deregister()
        except RegistryError as e:
            print(f"[shutdown] Ignoring de-registration failure: {e}", file=sys.stderr)
        finally:
            self._exit(0)
