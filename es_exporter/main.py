#!/usr/bin/env python3
"""Exporter entrypoint.

Usage:
    es-exporter --es.uri http://localhost:9200 --web.listen-address :9108

Every flag falls back to an ES_EXPORTER_* environment variable (a .env file in
the working directory is honored), then to the built-in default.
"""
from __future__ import annotations

import argparse
import logging
import sys

from dotenv import load_dotenv
from prometheus_client import REGISTRY, CollectorRegistry

from .collector.stats_collector import StatsCollector
from .config.runtime_config import ExporterConfig, build_runtime_config, parse_duration
from .metrics.server import setup_metrics_server
from .utils.exceptions import ConfigError
from .utils.logging_utils import setup_logging
from .version import get_version

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="es-exporter", description="Export Elasticsearch node stats to Prometheus")
    p.add_argument("--web.listen-address", dest="listen_address", default=None,
                   help="Address to listen on for web interface and telemetry (default :9108)")
    p.add_argument("--web.telemetry-path", dest="telemetry_path", default=None,
                   help="Path under which to expose metrics (default /metrics)")
    p.add_argument("--es.uri", dest="es_uri", default=None,
                   help="HTTP API address of an Elasticsearch node (default http://localhost:9200)")
    p.add_argument("--es.timeout", dest="es_timeout", default=None,
                   help="Timeout for trying to get stats from Elasticsearch, e.g. 5s or 500ms (default 5s)")
    p.add_argument("--log.level", dest="log_level", default=None,
                   help="Log level (default INFO)")
    p.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")
    return p


def load_config(args: argparse.Namespace) -> ExporterConfig:
    return build_runtime_config(
        listen_address=args.listen_address,
        telemetry_path=args.telemetry_path,
        es_uri=args.es_uri,
        es_timeout=parse_duration(args.es_timeout) if args.es_timeout is not None else None,
        log_level=args.log_level.upper() if args.log_level else None,
    )


def main(argv: list[str] | None = None, registry: CollectorRegistry = REGISTRY) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    try:
        config = load_config(args)
    except ConfigError as e:
        print(f"es-exporter: invalid configuration: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)
    collector = StatsCollector.from_config(config)
    registry.register(collector)
    logger.info("Scraping node stats from %s (timeout %.3fs)", config.stats_uri, config.es_timeout)

    try:
        server, shutdown = setup_metrics_server(config, registry, background=False)
    except OSError as e:
        logger.error("Failed to bind metrics server on %s: %s", config.listen_address, e)
        registry.unregister(collector)
        collector.close()
        return 1

    logger.info("Starting Server: %s", config.listen_address)
    try:
        server.serve_forever()
    except KeyboardInterrupt:
        logger.info("Interrupted; shutting down")
    finally:
        shutdown()
        registry.unregister(collector)
        collector.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
