"""Configuration surface: startup parameters from env and CLI."""

from .runtime_config import ExporterConfig, build_runtime_config, parse_duration, parse_listen_address

__all__ = ["ExporterConfig", "build_runtime_config", "parse_duration", "parse_listen_address"]
