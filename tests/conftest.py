"""Pytest configuration & shared fixtures.

Responsibilities:
1. Ensure project root on sys.path (so `tests._helpers` and `es_exporter` import).
2. Provide a fake Elasticsearch node-stats endpoint backed by a local
   ThreadingHTTPServer, with knobs for status, body, latency and trickled
   bodies, plus in-flight request accounting for concurrency tests.
3. Provide a fresh prometheus CollectorRegistry per test.
"""
from __future__ import annotations

import contextlib
import json
import socket
import sys
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from es_exporter.config.runtime_config import NODE_STATS_PATH  # noqa: E402
from tests._helpers import stats_payload  # noqa: E402


def find_free_port() -> int:
    with contextlib.closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class FakeElasticsearch:
    """Scriptable stand-in for a node's /_nodes/_local/stats endpoint."""

    def __init__(self) -> None:
        self.status = 200
        self.body = json.dumps(stats_payload()).encode('utf-8')
        self.delay = 0.0            # sleep before sending headers
        self.trickle: tuple[int, float] | None = None  # (chunks, gap seconds) for the body
        self.hits = 0
        self.paths: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self.server = ThreadingHTTPServer(('127.0.0.1', 0), self._handler())
        self.server.daemon_threads = True
        self._thread = threading.Thread(target=self.server.serve_forever, name='fake-es', daemon=True)

    @property
    def base_url(self) -> str:
        return f"http://127.0.0.1:{self.server.server_address[1]}"

    @property
    def stats_url(self) -> str:
        return self.base_url + NODE_STATS_PATH

    def set_payload(self, payload: Any) -> None:
        self.body = json.dumps(payload).encode('utf-8')

    def start(self) -> FakeElasticsearch:
        self._thread.start()
        return self

    def stop(self) -> None:
        self.server.shutdown()
        self.server.server_close()

    def _handler(self) -> type[BaseHTTPRequestHandler]:
        fake = self

        class _Handler(BaseHTTPRequestHandler):
            def log_message(self, format, *args):  # silence default noisy logging
                return

            def do_GET(self):  # noqa: N802
                with fake._lock:
                    fake.hits += 1
                    fake.paths.append(self.path)
                    fake.in_flight += 1
                    fake.max_in_flight = max(fake.max_in_flight, fake.in_flight)
                try:
                    if fake.delay:
                        time.sleep(fake.delay)
                    body = fake.body
                    self.send_response(fake.status)
                    self.send_header('Content-Type', 'application/json')
                    self.send_header('Content-Length', str(len(body)))
                    self.end_headers()
                    if fake.trickle is None:
                        self.wfile.write(body)
                        return
                    chunks, gap = fake.trickle
                    step = max(1, len(body) // chunks)
                    for i in range(0, len(body), step):
                        self.wfile.write(body[i:i + step])
                        self.wfile.flush()
                        time.sleep(gap)
                except (BrokenPipeError, ConnectionResetError):
                    pass
                finally:
                    with fake._lock:
                        fake.in_flight -= 1

        return _Handler


@pytest.fixture()
def fake_es():
    fake = FakeElasticsearch().start()
    yield fake
    fake.stop()


@pytest.fixture()
def refused_url() -> str:
    """URL on a local port with nothing listening."""
    return f"http://127.0.0.1:{find_free_port()}{NODE_STATS_PATH}"


@pytest.fixture()
def registry():
    from prometheus_client import CollectorRegistry
    return CollectorRegistry()
