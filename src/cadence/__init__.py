"""Cadence - live GPS activity recording."""

__version__ = "0.1.0"
