"""Logging setup and per-run context."""
