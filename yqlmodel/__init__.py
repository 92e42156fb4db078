"""Simulation model of query-graph scheduling across a server cluster, with an HTTP API."""

__version__ = "0.1.0"
__all__ = ["__version__"]