"""Minimal health endpoint served for the registry's HTTP check."""

import json
import sys
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from .registration import ServiceRegistration


def _make_handler(registration: ServiceRegistration):
    """Create a handler class bound to the given registration."""

    class HealthHTTPHandler(BaseHTTPRequestHandler):

        def log_message(self, format, *args):
            # Silence default stderr logging; the registry polls every 10s
            pass

        def _json_response(self, data: Any, status: int = 200):
            body = json.dumps(data).encode()
            self.send_response(status)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def do_GET(self):
            path = self.path.split("?", 1)[0]
            if path == registration.health_path:
                self._json_response({
                    "status": "passing",
                    "service_id": registration.service_id,
                    "service_name": registration.service_name,
                })
            else:
                self._json_response({"error": "not found"}, status=404)

    return HealthHTTPHandler


def start_health_server(
    registration: ServiceRegistration,
    host: str = "0.0.0.0",
    port: int | None = None,
) -> ThreadingHTTPServer:
    """Serve ``registration.health_path`` from a daemon thread and return the server.

    *port* defaults to the registration's service port.
    """
    handler = _make_handler(registration)
    server = ThreadingHTTPServer((host, registration.port if port is None else port), handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    bound_host, bound_port = server.server_address[:2]
    print(
        f"[health] Serving {registration.health_path} on {bound_host}:{bound_port}",
        file=sys.stderr,
    )
    return server
