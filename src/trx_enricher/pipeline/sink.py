"""CSV result sink: one output row per enrichment outcome."""

import asyncio
import json
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional, TextIO, Tuple, Union

import polars as pl

from ..exceptions import SinkError
from ..fetchers.triple import REDACTED
from ..logging_config import get_logger
from ..models import Outcome

logger = get_logger(__name__)

Column = Tuple[str, Callable[[Any], Any]]


def _dig(outcome: Outcome, *path: Union[str, int]) -> Any:
    """Walk the enriched payload; None when any step is missing."""
    if outcome.enriched is None:
        return None
    value: Any = outcome.enriched.payload
    for step in path:
        if isinstance(step, int):
            value = value[step] if isinstance(value, list) and len(value) > step else None
        else:
            value = value.get(step) if isinstance(value, dict) else None
        if value is None:
            return None
    return value


def _json(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


TRANSACTION_COLUMNS: List[Column] = [
    ("merchant_name", lambda t: t.merchant_name),
    ("transaction_type", lambda t: t.transaction_type),
    ("transaction_id", lambda t: t.transaction_id),
    ("merchant_country", lambda t: t.merchant_country),
    ("merchant_category_code", lambda t: t.merchant_category_code),
    ("merchant_city", lambda t: t.merchant_city),
    ("merchant_id", lambda t: t.merchant_id),
    ("transaction_timestamp", lambda t: t.transaction_timestamp),
    ("transaction_amount", lambda t: t.transaction_amount),
    ("transaction_currency", lambda t: t.transaction_currency),
    ("transaction_reference_text", lambda t: t.transaction_reference_text),
    ("account_id", lambda t: t.account_id),
    ("channel_type", lambda t: t.channel_type),
    ("vat", lambda t: t.vat),
]

OUTCOME_COLUMNS: List[Column] = [
    ("triple_transaction_id", lambda o: _dig(o, "transaction_id")),
    ("triple_visual_enrichments_merchant_clean_name", lambda o: _dig(o, "visual_enrichments", "merchant_clean_name")),
    ("triple_visual_enrichments_merchant_logo_link", lambda o: _dig(o, "visual_enrichments", "merchant_logo_link")),
    ("triple_visual_enrichments_default_logo", lambda o: _dig(o, "visual_enrichments", "default_logo")),
    ("triple_visual_enrichments_merchant_category", lambda o: _dig(o, "visual_enrichments", "merchant_category")),
    ("triple_visual_enrichments_google_places_id", lambda o: _dig(o, "visual_enrichments", "google_places_id")),
    ("triple_visual_enrichments_merchant_website", lambda o: _dig(o, "visual_enrichments", "merchant_website")),
    ("triple_visual_enrichments_updated", lambda o: _dig(o, "visual_enrichments", "updated")),
    ("triple_visual_enrichments_brand_id", lambda o: _dig(o, "visual_enrichments", "brand_id")),
    ("triple_merchant_location_enabled", lambda o: _dig(o, "merchant_location", "enabled")),
    ("triple_merchant_location_coordinates_lat", lambda o: _dig(o, "merchant_location", "coordinates", "lat")),
    ("triple_merchant_location_coordinates_lon", lambda o: _dig(o, "merchant_location", "coordinates", "lon")),
    ("triple_merchant_location_address_country", lambda o: _dig(o, "merchant_location", "address", "country")),
    ("triple_merchant_location_address_city", lambda o: _dig(o, "merchant_location", "address", "city")),
    ("triple_merchant_location_address_zip_code", lambda o: _dig(o, "merchant_location", "address", "zip_code")),
    ("triple_merchant_location_address_street", lambda o: _dig(o, "merchant_location", "address", "street")),
    ("triple_merchant_location_location_id", lambda o: _dig(o, "merchant_location", "location_id")),
    ("triple_subscriptions_enabled", lambda o: _dig(o, "subscriptions", "enabled")),
    ("triple_subscriptions_is_recurring", lambda o: _dig(o, "subscriptions", "is_recurring")),
    ("triple_co2_footprint_enabled", lambda o: _dig(o, "co2_footprint", "enabled")),
    ("triple_co2_footprint_emissions", lambda o: _dig(o, "co2_footprint", "emissions")),
    ("triple_updated", lambda o: _dig(o, "updated")),
    ("triple_fraud_enabled", lambda o: _dig(o, "fraud", "enabled")),
    ("triple_fraud_merchant_flagged", lambda o: _dig(o, "fraud", "merchant_flagged")),
    ("triple_category", lambda o: _dig(o, "categories", 0, "name")),
    ("triple_subcategory", lambda o: _dig(o, "categories", 1, "name")),
    ("triple_contact_enabled", lambda o: _dig(o, "contact", "enabled")),
    ("triple_contact_phone", lambda o: _dig(o, "contact", "phone")),
    ("triple_contact_email", lambda o: _dig(o, "contact", "email")),
    ("triple_contact_website", lambda o: _dig(o, "contact", "website")),
    ("triple_payment_processor_enabled", lambda o: _dig(o, "payment_processor", "enabled")),
    ("triple_payment_processor_name", lambda o: _dig(o, "payment_processor", "name")),
    ("triple_payment_processor_logo_url", lambda o: _dig(o, "payment_processor", "logo_url")),
    ("triple_payment_processor_brand_id", lambda o: _dig(o, "payment_processor", "brand_id")),
    ("triple_raw_request_body", lambda o: _json(o.result.request["body"])),
    ("triple_raw_request_headers", lambda o: _json(o.result.request["headers"])),
    ("triple_raw_request_timestamp", lambda o: o.result.request["timestamp"]),
    ("triple_raw_response_status", lambda o: o.result.response["status"]),
    ("triple_raw_response_body", lambda o: _json(o.result.response["body"])),
    ("triple_raw_response_headers", lambda o: _json(o.result.response["headers"])),
]

HEADER: List[str] = [name for name, _ in TRANSACTION_COLUMNS] + [name for name, _ in OUTCOME_COLUMNS]


def format_cell(value: Any) -> Optional[str]:
    """Render a scalar as cell text; None and empty strings leave the cell empty."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, (dict, list)):
        return _json(value)
    text = str(value)
    return text or None


def _mask(cell: Optional[str], secrets: Tuple[str, ...]) -> Optional[str]:
    if cell is None:
        return None
    for secret in secrets:
        cell = cell.replace(secret, REDACTED)
    return cell


def outcome_to_row(outcome: Outcome, secrets: Iterable[str] = ()) -> List[Optional[str]]:
    """
    Cells of one output row, in header order.

    Any occurrence of a string in ``secrets`` is replaced with the redaction
    marker, including in cells copied from the input transaction.
    """
    secrets = tuple(secret for secret in secrets if secret)
    transaction_cells = [format_cell(get(outcome.transaction)) for _, get in TRANSACTION_COLUMNS]
    outcome_cells = [format_cell(get(outcome)) for _, get in OUTCOME_COLUMNS]
    return [_mask(cell, secrets) for cell in transaction_cells + outcome_cells]


class CsvResultSink:
    """
    Streaming CSV writer for enrichment outcomes.

    Each row is written to the destination in a worker thread and
    ``write_one`` returns only once the destination has taken it, so a slow
    destination holds back the pipeline instead of buffering rows.
    """

    def __init__(
        self,
        handle: TextIO,
        owns_handle: bool = True,
        name: str = "<stream>",
        secrets: Iterable[str] = (),
    ):
        self._handle = handle
        self._secrets = tuple(secrets)
        self._owns_handle = owns_handle
        self.name = name
        self.rows_written = 0
        self.closed = False
        self._schema = {column: pl.String for column in HEADER}

    @classmethod
    async def open(
        cls,
        destination: Union[str, Path, TextIO],
        secrets: Iterable[str] = (),
    ) -> "CsvResultSink":
        """
        Open a sink and write the header row.

        Args:
            destination: Output path, or an open text stream the caller keeps ownership of
            secrets: Strings never written verbatim, such as the API token
        """
        secrets = tuple(secrets)
        if isinstance(destination, (str, Path)):
            path = Path(destination)
            handle = await asyncio.to_thread(path.open, "w", encoding="utf-8", newline="")
            sink = cls(handle, owns_handle=True, name=str(path), secrets=secrets)
        else:
            sink = cls(destination, owns_handle=False, secrets=secrets)

        try:
            await sink._write(sink._render(None))
        except BaseException:
            await sink.close()
            raise
        logger.debug(f"Opened result sink {sink.name}")
        return sink

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _render(self, row: Optional[List[Optional[str]]]) -> str:
        if row is None:
            return pl.DataFrame(schema=self._schema).write_csv(include_header=True)
        frame = pl.DataFrame([row], schema=self._schema, orient="row")
        return frame.write_csv(include_header=False)

    async def _write(self, text: str) -> None:
        await asyncio.to_thread(self._handle.write, text)

    async def write_one(self, outcome: Outcome) -> None:
        """Serialize and write one outcome row."""
        if self.closed:
            raise SinkError(f"Result sink {self.name} is closed")
        await self._write(self._render(outcome_to_row(outcome, self._secrets)))
        self.rows_written += 1

    async def close(self) -> None:
        """Flush and close the destination. Safe to call more than once."""
        if self.closed:
            return
        self.closed = True
        try:
            await asyncio.to_thread(self._handle.flush)
        finally:
            if self._owns_handle:
                await asyncio.to_thread(self._handle.close)
        logger.debug(f"Closed result sink {self.name} after {self.rows_written} rows")
