"""Metrics HTTP endpoint.

Threaded HTTP server exposing two routes:
  GET <telemetry path>  Prometheus exposition of the given CollectorRegistry
  GET any other path    small HTML landing page linking to the metrics path

Public API:
  make_metrics_server(host, port, telemetry_path, registry) -> ThreadingHTTPServer
  setup_metrics_server(config, registry) -> (server, shutdown_callable)
"""
from __future__ import annotations

import html
import logging
import socket
import threading
from collections.abc import Callable
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

from prometheus_client import REGISTRY, CollectorRegistry
from prometheus_client.exposition import choose_encoder

from ..config.runtime_config import ExporterConfig

logger = logging.getLogger(__name__)

__all__ = ["make_metrics_server", "setup_metrics_server", "landing_page"]

_LANDING_TEMPLATE = """<html>
<head><title>Elasticsearch Exporter</title></head>
<body>
<h1>Elasticsearch Exporter</h1>
<p><a href='{path}'>Metrics</a></p>
</body>
</html>
"""


def landing_page(telemetry_path: str) -> bytes:
    return _LANDING_TEMPLATE.format(path=html.escape(telemetry_path, quote=True)).encode("utf-8")


def _make_handler(telemetry_path: str, registry: CollectorRegistry) -> type[BaseHTTPRequestHandler]:
    index_body = landing_page(telemetry_path)

    class _MetricsHandler(BaseHTTPRequestHandler):
        def _send(self, code: int, ctype: str, body: bytes) -> None:
            self.send_response(code)
            self.send_header('Content-Type', ctype)
            self.send_header('Content-Length', str(len(body)))
            self.end_headers()
            if self.command != 'HEAD':
                self.wfile.write(body)

        def log_message(self, format, *args):  # route access logs through logging
            logger.debug("%s - %s", self.address_string(), format % args)

        def do_GET(self):  # noqa: N802
            path = self.path.split('?', 1)[0]
            if path == telemetry_path:
                encoder, content_type = choose_encoder(self.headers.get('Accept'))
                try:
                    body = encoder(registry)
                except Exception:
                    logger.exception("failed to render metrics exposition")
                    self._send(500, 'text/plain; charset=utf-8', b"error collecting metrics\n")
                    return
                self._send(200, content_type, body)
            else:
                self._send(200, 'text/html; charset=utf-8', index_body)

        do_HEAD = do_GET

    return _MetricsHandler


class _MetricsHTTPServer(ThreadingHTTPServer):
    allow_reuse_address = True
    daemon_threads = True


class _MetricsHTTPServerV6(_MetricsHTTPServer):
    address_family = socket.AF_INET6


def make_metrics_server(host: str, port: int, telemetry_path: str = "/metrics",
                        registry: CollectorRegistry = REGISTRY) -> ThreadingHTTPServer:
    """Bind (but do not start) the metrics server. Raises OSError when the bind fails."""
    server_cls = _MetricsHTTPServerV6 if ":" in host else _MetricsHTTPServer
    return server_cls((host, port), _make_handler(telemetry_path, registry))


def setup_metrics_server(config: ExporterConfig, registry: CollectorRegistry = REGISTRY, *,
                         background: bool = True) -> tuple[ThreadingHTTPServer, Callable[[], None]]:
    """Bind the metrics endpoint described by config.

    With background=True the server runs in a daemon thread and the returned
    callable stops it; otherwise the caller is expected to run serve_forever().
    """
    host, port = config.listen
    server = make_metrics_server(host, port, config.telemetry_path, registry)
    bound_host, bound_port = server.server_address[:2]
    logger.info("Metrics server listening on %s:%s", bound_host or "0.0.0.0", bound_port)
    logger.info("Metrics available at http://%s:%s%s", bound_host or "0.0.0.0", bound_port, config.telemetry_path)

    if not background:
        return server, server.server_close

    thread = threading.Thread(target=server.serve_forever, name="metrics-http", daemon=True)
    thread.start()

    def _shutdown() -> None:
        server.shutdown()
        server.server_close()
        thread.join(timeout=5)

    return server, _shutdown
