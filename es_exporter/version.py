"""Exporter version; ES_EXPORTER_VERSION overrides it at runtime."""
from __future__ import annotations

import os

__version__ = "0.1.0"

def get_version() -> str:
    return os.environ.get("ES_EXPORTER_VERSION", __version__)

__all__ = ["__version__", "get_version"]
