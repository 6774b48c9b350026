"""Diagram generators."""
