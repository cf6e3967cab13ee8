"""Archival lifecycle manager for task outputs."""

__version__ = "0.1.0"
