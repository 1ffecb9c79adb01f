# policy_proxy/app/services/catalog.py
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, List

DEFAULT_STORE_ID = "default"

# One category, two pizzas: enough for agent -> MCP -> proxy round trips.
MOCK_CATEGORIES: List[Dict[str, Any]] = [
    {
        "id": "pizzas",
        "name": "Pizzas",
        "items": [
            {"sku": "LARGE_PEP", "name": "Large Pepperoni", "price": 14.99},
            {"sku": "MED_MARG", "name": "Medium Margherita", "price": 11.49},
        ],
    }
]

ALLOWED_SKUS: FrozenSet[str] = frozenset(
    item["sku"] for cat in MOCK_CATEGORIES for item in cat["items"]
)

# Stub pricing; totals are not derived from the draft.
MOCK_TOTALS = {"amount": 18.75, "currency": "USD"}

ORDER_ID_PREFIX = "PB-"
ETA_MINUTES = 25


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(ms: int) -> str:
    """UTC ISO-8601 with millisecond precision and a trailing 'Z'."""
    dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def build_menu(store_id: str) -> Dict[str, Any]:
    return {
        "ok": True,
        "store_id": store_id,
        "categories": [
            {**cat, "items": [dict(it) for it in cat["items"]]} for cat in MOCK_CATEGORIES
        ],
    }


def build_confirmation(ms: int) -> Dict[str, Any]:
    return {
        "ok": True,
        "order_id": f"{ORDER_ID_PREFIX}{ms}",
        "eta_minutes": ETA_MINUTES,
        "received_at": iso_from_ms(ms),
    }
