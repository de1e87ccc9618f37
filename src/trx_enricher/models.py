"""Domain models: transactions and enrichment outcomes."""

from enum import Enum
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .utils.typing import RawRequest, RawResponse


class TransactionType(str, Enum):
    """Transaction type: bank transfer, card transaction or invoice."""

    BANK_TRANSFER = "BANK_TRANSFER"
    CARD_TRANSACTION = "CARD_TRANSACTION"
    INVOICE = "INVOICE"


class ChannelType(str, Enum):
    """Payment channel: atm, offline or online."""

    ATM = "ATM"
    POS = "POS"
    ECOMMERCE = "ECOMMERCE"


class Transaction(BaseModel):
    """One input transaction, as sent to the enrichment API.

    Field order is the input/output column order.
    """

    model_config = ConfigDict(frozen=True)

    merchant_name: Optional[str] = None
    transaction_type: TransactionType = TransactionType.BANK_TRANSFER
    transaction_id: str = Field(..., min_length=1, max_length=255)
    merchant_country: Optional[str] = None
    merchant_category_code: Optional[Union[int, float]] = None
    merchant_city: Optional[str] = None
    merchant_id: Optional[str] = None
    transaction_timestamp: Optional[str] = None
    transaction_amount: Optional[str] = None
    transaction_currency: Optional[str] = None
    transaction_reference_text: Optional[str] = None
    account_id: Optional[str] = None
    channel_type: Optional[ChannelType] = None
    vat: Optional[str] = None

    def to_request_body(self) -> Dict[str, Any]:
        """JSON-ready request body; absent fields are sent as null."""
        return self.model_dump(mode="json")


class EnrichSuccess(BaseModel):
    """Successful enrichment: the response payload plus the audit trail."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["success"] = "success"
    payload: Dict[str, Any]
    request: RawRequest
    response: RawResponse


class EnrichFailure(BaseModel):
    """Failed enrichment: what was sent and whatever came back."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["failure"] = "failure"
    reason: str
    request: RawRequest
    response: RawResponse


EnrichmentResult = Union[EnrichSuccess, EnrichFailure]


class Outcome(BaseModel):
    """A transaction paired with exactly one enrichment result."""

    model_config = ConfigDict(frozen=True)

    transaction: Transaction
    result: EnrichmentResult = Field(..., discriminator="kind")

    @property
    def enriched(self) -> Optional[EnrichSuccess]:
        return self.result if isinstance(self.result, EnrichSuccess) else None

    @property
    def failure(self) -> Optional[EnrichFailure]:
        return self.result if isinstance(self.result, EnrichFailure) else None

    @property
    def ok(self) -> bool:
        return self.enriched is not None
