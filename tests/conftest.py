"""Shared fixtures for enricher tests."""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Optional

import httpx
import pytest

from trx_enricher.config import RunConfig, get_settings

TOKEN = "secret123"

HEADER = "transaction_id,merchant_name,transaction_type,merchant_city,channel_type"


def triple_payload(transaction_id: str, category: str = "Shopping") -> Dict[str, Any]:
    """A minimal Triple enrichment response."""
    return {
        "transaction_id": transaction_id,
        "visual_enrichments": {
            "merchant_clean_name": f"Merchant {transaction_id}",
            "default_logo": False,
        },
        "merchant_location": {
            "enabled": True,
            "coordinates": {"lat": "40.41", "lon": "-3.70"},
            "address": {"country": "ESP", "city": "Madrid"},
        },
        "subscriptions": {"enabled": True, "is_recurring": False},
        "fraud": {"enabled": True, "merchant_flagged": False},
        "categories": [{"name": category}, {"name": "Clothing"}],
        "payment_processor": {"enabled": False},
    }


def echo_handler(request: httpx.Request) -> httpx.Response:
    """Enrich every transaction successfully."""
    body = json.loads(request.content)
    return httpx.Response(200, json=triple_payload(body["transaction_id"]))


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch: pytest.MonkeyPatch):
    """Isolate tests from the caller's environment."""
    for name in ("TRIPLE_API_TOKEN", "TRIPLE_ENVIRONMENT", "BATCH_SIZE", "BATCH_DELAY"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def write_csv(tmp_path: Path) -> Callable[..., Path]:
    """Write CSV text to a file under tmp_path."""

    def _write(content: str, name: str = "transactions.csv") -> Path:
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def transactions_csv(write_csv) -> Callable[..., Path]:
    """Write a CSV with ``count`` generated transactions."""

    def _make(count: int, ids: Optional[Iterable[str]] = None) -> Path:
        ids = list(ids) if ids is not None else [f"T{i}" for i in range(1, count + 1)]
        lines = [HEADER] + [f"{tid},Shop {tid},card_transaction,Madrid,POS" for tid in ids]
        return write_csv("\n".join(lines) + "\n")

    return _make


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., RunConfig]:
    """Build a RunConfig writing to tmp_path/out.csv."""

    def _make(input_path: Path, **overrides) -> RunConfig:
        values = {
            "input_path": input_path,
            "output_path": tmp_path / "out.csv",
            "api_token": TOKEN,
        }
        values.update(overrides)
        return RunConfig(**values)

    return _make
