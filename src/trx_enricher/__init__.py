"""Transaction Enricher - Streaming batch enrichment of transaction files via the Triple API."""

__version__ = "0.1.0"

from .config import RunConfig, Settings, TripleEnvironment
from .models import ChannelType, Outcome, Transaction, TransactionType

__all__ = [
    "RunConfig",
    "Settings",
    "TripleEnvironment",
    "ChannelType",
    "Outcome",
    "Transaction",
    "TransactionType",
]
