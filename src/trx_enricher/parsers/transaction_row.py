"""Parse raw CSV rows into Transaction records."""

import math
from typing import Mapping, Optional, Union

from ..exceptions import RecordValidationError
from ..logging_config import get_logger
from ..models import ChannelType, Transaction, TransactionType

logger = get_logger(__name__)

MAX_ID_LENGTH = 255

STRING_FIELDS = (
    "merchant_name",
    "merchant_country",
    "merchant_city",
    "merchant_id",
    "transaction_timestamp",
    "transaction_amount",
    "transaction_currency",
    "transaction_reference_text",
    "account_id",
    "vat",
)


def _clean(value: Optional[object]) -> Optional[str]:
    """Trim a cell; empty or whitespace-only cells become None."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_transaction_type(value: Optional[str]) -> TransactionType:
    """Parse a transaction type, defaulting to BANK_TRANSFER."""
    if not value:
        return TransactionType.BANK_TRANSFER
    normalized = value.upper().replace("-", "_")
    try:
        return TransactionType(normalized)
    except ValueError:
        return TransactionType.BANK_TRANSFER


def parse_channel_type(value: Optional[str]) -> Optional[ChannelType]:
    """Parse a channel type; unknown or missing channels stay None."""
    if not value:
        return None
    try:
        return ChannelType(value.upper())
    except ValueError:
        return None


def parse_number(
    value: Optional[str],
    field: str = "",
    row_number: Optional[int] = None,
) -> Optional[Union[int, float]]:
    """Parse an optional number; unparseable values become None.

    Integral values come back as int, so ``"8699.0"`` is ``8699``.
    """
    if value is None:
        return None
    number = math.nan
    # int() and float() both accept digit grouping such as "1_000"
    if "_" not in value:
        try:
            number = float(value)
        except ValueError:
            pass
    if not math.isfinite(number):
        logger.warning(f"Dropping non-numeric {field or 'value'} {value!r} (row {row_number})")
        return None
    if number.is_integer():
        try:
            return int(value)
        except ValueError:
            return int(number)
    return number


def parse_row(row: Mapping[str, Optional[str]], row_number: Optional[int] = None) -> Transaction:
    """
    Convert one CSV row to a Transaction.

    Args:
        row: Cells keyed by header name; unknown columns are ignored
        row_number: 1-based data row number, used in error messages

    Returns:
        Parsed transaction

    Raises:
        RecordValidationError: If transaction_id is missing or too long
    """
    cells = {str(key).strip(): _clean(value) for key, value in row.items()}

    transaction_id = cells.get("transaction_id")
    if transaction_id is None:
        raise RecordValidationError("Missing transaction_id", "transaction_id", row_number)
    if len(transaction_id) > MAX_ID_LENGTH:
        raise RecordValidationError(
            f"transaction_id longer than {MAX_ID_LENGTH} characters",
            "transaction_id",
            row_number,
        )

    fields = {name: cells.get(name) for name in STRING_FIELDS}

    return Transaction(
        transaction_id=transaction_id,
        transaction_type=parse_transaction_type(cells.get("transaction_type")),
        channel_type=parse_channel_type(cells.get("channel_type")),
        merchant_category_code=parse_number(
            cells.get("merchant_category_code"), "merchant_category_code", row_number
        ),
        **fields,
    )
