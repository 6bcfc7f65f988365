"""Broker-neutral messaging contracts, cancellation, batch writing, serialization and handlers."""

__version__ = "3.0.0"