"""Exception hierarchy for the transaction enricher."""

from typing import Optional


class TrxEnricherError(Exception):
    """Base exception for all enricher errors."""


class ConfigurationError(TrxEnricherError):
    """Raised when run configuration is invalid or missing."""


class RecordValidationError(TrxEnricherError):
    """Raised when an input row lacks a usable mandatory field."""

    def __init__(self, message: str, field: str, row_number: Optional[int] = None):
        location = f" (row {row_number})" if row_number is not None else ""
        super().__init__(f"{message}{location}")
        self.field = field
        self.row_number = row_number


class SinkError(TrxEnricherError):
    """Raised when the result sink is used incorrectly."""
