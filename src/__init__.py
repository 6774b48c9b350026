# src/__init__.py — v1
"""iacdiagram: turn docker-compose manifests and Helm charts into architecture diagrams."""

from iacdiagram.version import __version__

__all__ = ["__version__"]
