"""Parser modules for turning input rows into records."""

from . import transaction_row
from .transaction_row import parse_row

__all__ = ["transaction_row", "parse_row"]
