"""Kubernetes operator managing Postgres instances."""

__version__ = "0.1.0"
