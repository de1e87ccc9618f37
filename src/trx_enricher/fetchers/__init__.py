"""Fetcher modules for external data sources."""

from . import triple
from .triple import TripleClient

__all__ = ["triple", "TripleClient"]
