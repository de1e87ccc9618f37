"""Type definitions for Triple API payloads."""

from typing import Any, Dict, List, Optional

from typing_extensions import TypedDict


class VisualEnrichments(TypedDict, total=False):
    merchant_clean_name: str
    merchant_logo_link: str
    default_logo: bool
    merchant_category: str
    google_places_id: str
    merchant_website: str
    updated: str
    brand_id: str


class Coordinates(TypedDict, total=False):
    lat: str
    lon: str


class Address(TypedDict, total=False):
    country: str
    city: str
    zip_code: str
    street: str


class MerchantLocation(TypedDict, total=False):
    enabled: bool
    coordinates: Coordinates
    address: Address
    location_id: str


class Subscriptions(TypedDict, total=False):
    enabled: bool
    is_recurring: bool


class Co2Footprint(TypedDict, total=False):
    enabled: bool
    emissions: str


class Fraud(TypedDict, total=False):
    enabled: bool
    merchant_flagged: bool


class Category(TypedDict, total=False):
    name: str


class Contact(TypedDict, total=False):
    enabled: bool
    phone: str
    email: str
    website: str


class PaymentProcessor(TypedDict, total=False):
    enabled: bool
    name: str
    logo_url: str
    brand_id: str


class TripleEnrichResponse(TypedDict, total=False):
    """Triple enrich-transaction response body."""
    transaction_id: str
    visual_enrichments: VisualEnrichments
    merchant_location: MerchantLocation
    subscriptions: Subscriptions
    co2_footprint: Co2Footprint
    updated: str
    fraud: Fraud
    categories: List[Category]
    contact: Contact
    payment_processor: PaymentProcessor


class RawRequest(TypedDict):
    """Outbound request as recorded for audit."""
    body: Any
    headers: Dict[str, str]
    timestamp: str


class RawResponse(TypedDict):
    """Inbound response as recorded for audit; None where unavailable."""
    status: Optional[int]
    body: Any
    headers: Optional[Dict[str, str]]
