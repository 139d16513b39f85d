"""Exporter exception hierarchy.

A small exception tree for categorizing failures. Scrape-time errors
(FetchError, DecodeError) are recoverable and never escape a collect cycle;
ConfigError and SchemaError are startup-time conditions.
"""
from __future__ import annotations


class ExporterError(Exception):
    """Base class for all exporter exceptions."""


class ConfigError(ExporterError):
    """Invalid runtime configuration (bad duration, listen address, path)."""


class SchemaError(ExporterError):
    """Metric schema declaration is inconsistent (duplicate names, bad labels)."""


class FetchError(ExporterError):
    """Upstream node stats could not be retrieved."""


class UnreachableError(FetchError):
    """Connection could not be established or the request timed out."""


class ReadFailureError(FetchError):
    """Connected, but the response body could not be read in time."""


class DecodeError(ExporterError):
    """Response body is not a usable node stats payload."""


__all__ = [
    "ExporterError",
    "ConfigError",
    "SchemaError",
    "FetchError",
    "UnreachableError",
    "ReadFailureError",
    "DecodeError",
]
