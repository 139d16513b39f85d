"""Runtime configuration for the exporter.

A minimal, typed, frozen snapshot of the startup parameters. Values come from
environment variables (``ES_EXPORTER_*``) and can be overridden by CLI flags
in ``es_exporter.main``; once built the object is passed through construction
and never mutated.

Durations accept the Go flag syntax used by the upstream exporter flags
(``500ms``, ``5s``, ``1m30s``) as well as bare numbers of seconds.
"""
from __future__ import annotations

import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, replace
from urllib.parse import urlsplit

from ..utils.exceptions import ConfigError

__all__ = [
    "ExporterConfig",
    "parse_duration",
    "parse_listen_address",
    "build_runtime_config",
    "NODE_STATS_PATH",
    "DEFAULT_LISTEN_ADDRESS",
    "DEFAULT_TELEMETRY_PATH",
    "DEFAULT_ES_URI",
    "DEFAULT_ES_TIMEOUT",
]

NODE_STATS_PATH = "/_nodes/_local/stats"

DEFAULT_LISTEN_ADDRESS = ":9108"
DEFAULT_TELEMETRY_PATH = "/metrics"
DEFAULT_ES_URI = "http://localhost:9200"
DEFAULT_ES_TIMEOUT = "5s"
DEFAULT_LOG_LEVEL = "INFO"

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(raw: str | float | int) -> float:
    """Return a positive duration in seconds."""
    if isinstance(raw, (int, float)):
        seconds = float(raw)
    else:
        text = raw.strip()
        if not text:
            raise ConfigError("empty duration")
        try:
            seconds = float(text)
        except ValueError:
            pos = 0
            seconds = 0.0
            for m in _DURATION_PART.finditer(text):
                if m.start() != pos:
                    break
                seconds += float(m.group(1)) * _UNIT_SECONDS[m.group(2)]
                pos = m.end()
            if pos != len(text) or pos == 0:
                raise ConfigError(f"invalid duration {raw!r}") from None
    if seconds <= 0:
        raise ConfigError(f"duration must be positive, got {raw!r}")
    return seconds


def parse_listen_address(addr: str) -> tuple[str, int]:
    """Split ``host:port`` (``:9108`` binds all interfaces, ``[::1]:9108`` for IPv6)."""
    host, sep, port_s = addr.strip().rpartition(":")
    if not sep:
        raise ConfigError(f"listen address {addr!r} is missing a port")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_s)
    except ValueError:
        raise ConfigError(f"invalid port in listen address {addr!r}") from None
    if not 0 <= port <= 65535:
        raise ConfigError(f"port out of range in listen address {addr!r}")
    return host, port


@dataclass(frozen=True)
class ExporterConfig:
    listen_address: str = DEFAULT_LISTEN_ADDRESS
    telemetry_path: str = DEFAULT_TELEMETRY_PATH
    es_uri: str = DEFAULT_ES_URI
    es_timeout: float = 5.0
    log_level: str = DEFAULT_LOG_LEVEL

    def __post_init__(self) -> None:
        parse_listen_address(self.listen_address)
        if not self.telemetry_path.startswith("/") or self.telemetry_path == "/":
            raise ConfigError(f"telemetry path must start with '/' and not be the root: {self.telemetry_path!r}")
        parts = urlsplit(self.es_uri)
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ConfigError(f"es uri must be an http(s) URL: {self.es_uri!r}")
        if self.es_timeout <= 0:
            raise ConfigError(f"es timeout must be positive, got {self.es_timeout!r}")

    @property
    def listen(self) -> tuple[str, int]:
        return parse_listen_address(self.listen_address)

    @property
    def stats_uri(self) -> str:
        """Local node stats endpoint derived from the base URI."""
        return self.es_uri.rstrip("/") + NODE_STATS_PATH

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> ExporterConfig:
        e = env if env is not None else os.environ
        return cls(
            listen_address=e.get("ES_EXPORTER_LISTEN_ADDRESS", DEFAULT_LISTEN_ADDRESS),
            telemetry_path=e.get("ES_EXPORTER_TELEMETRY_PATH", DEFAULT_TELEMETRY_PATH),
            es_uri=e.get("ES_EXPORTER_ES_URI", DEFAULT_ES_URI),
            es_timeout=parse_duration(e.get("ES_EXPORTER_ES_TIMEOUT", DEFAULT_ES_TIMEOUT)),
            log_level=e.get("ES_EXPORTER_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
        )

    def with_overrides(self, **overrides: object) -> ExporterConfig:
        """Copy with the non-None overrides applied (CLI flags beat env)."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes) if changes else self


def build_runtime_config(env: Mapping[str, str] | None = None, **overrides: object) -> ExporterConfig:
    return ExporterConfig.from_env(env).with_overrides(**overrides)
