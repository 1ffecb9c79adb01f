# policy_proxy/app/services/orders.py
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from policy_proxy.app.core.errors import ValidationFailed
from policy_proxy.app.services.catalog import ALLOWED_SKUS, MOCK_TOTALS

log = logging.getLogger(__name__)


def require_items(draft: Any) -> List[Any]:
    """Shape check shared by validateOrder and acceptOrder."""
    items = draft.get("items") if isinstance(draft, Mapping) else None
    if not isinstance(items, list) or not items:
        raise ValidationFailed("No items provided")
    return items


def _sku(item: Any) -> Any:
    return item.get("sku") if isinstance(item, Mapping) else None


def _allowed(sku: Any) -> bool:
    # client-controlled: lists/objects are unhashable, so test the type first
    return isinstance(sku, str) and sku in ALLOWED_SKUS


def _render_sku(sku: Any) -> str:
    """Missing/null SKUs render empty; non-strings in their JSON form."""
    if sku is None:
        return ""
    if isinstance(sku, str):
        return sku
    return json.dumps(sku, ensure_ascii=False)


def validate_order(draft: Any) -> Dict[str, Any]:
    items = require_items(draft)

    bad = [_sku(it) for it in items if not _allowed(_sku(it))]
    if bad:
        log.info("validateOrder rejected %d item(s)", len(bad))
        raise ValidationFailed(f"Unknown SKU(s): {', '.join(_render_sku(s) for s in bad)}")

    return {
        "totals": dict(MOCK_TOTALS),
        "warnings": [],
        "substitutions": [],
    }
