"""Prometheus exporter for Ethereum node state."""

__version__ = "0.1.0"
