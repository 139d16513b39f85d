"""Unified logging utilities for the exporter."""
from __future__ import annotations

import json
import logging
import os
import sys
import time

DEFAULT_FORMAT = '%(asctime)s - %(threadName)s - %(name)s - %(levelname)s - %(message)s'

SUPPRESSED_LOGGERS = [
    'urllib3', 'requests',
]


class JsonFormatter(logging.Formatter):
    """One JSON object per line; enabled via ES_EXPORTER_JSON_LOGS=1."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'ts': getattr(record, 'created', time.time()),
            'level': record.levelname,
            'logger': record.name,
            'thread': record.threadName,
            'msg': record.getMessage(),
        }
        if record.exc_info:
            payload['exc_info'] = self.formatException(record.exc_info)
        return json.dumps(payload)


def _json_logs_requested() -> bool:
    return os.environ.get('ES_EXPORTER_JSON_LOGS', '').lower() in {'1', 'true', 'yes', 'on'}


def setup_logging(level: str = 'INFO', fmt: str = DEFAULT_FORMAT, *, json_logs: bool | None = None) -> logging.Logger:
    """Configure root logging with a single stdout handler.

    Existing root handlers are removed so repeated calls (tests, re-init)
    never duplicate output. `json_logs` overrides the ES_EXPORTER_JSON_LOGS
    env toggle when given explicitly.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(log_level)
    for h in root.handlers[:]:
        root.removeHandler(h)
        h.close()

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(log_level)
    if json_logs is None:
        json_logs = _json_logs_requested()
    if json_logs:
        console.setFormatter(JsonFormatter())
    else:
        console.setFormatter(logging.Formatter(fmt))
    root.addHandler(console)

    for name in SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root

__all__ = ["setup_logging", "JsonFormatter", "DEFAULT_FORMAT"]
