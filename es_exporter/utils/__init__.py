"""Shared helpers (logging, exceptions)."""
