# policy_proxy/app/services/idempotency.py
from __future__ import annotations

import logging
import threading
import uuid
from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple

from policy_proxy.app.services.catalog import build_confirmation, now_ms
from policy_proxy.app.services.orders import require_items

log = logging.getLogger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"


class IdempotencyLedger:
    """
    key -> first confirmation produced under that key.

    Values are write-once: `put_if_absent` never replaces an existing entry.
    With `max_entries` > 0 the least recently used key is forgotten when full.
    """

    def __init__(self, max_entries: int = 0):
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            value = self._entries.get(key)
            if value is not None:
                self._entries.move_to_end(key)
            return value

    def put_if_absent(self, key: str, value: Dict[str, Any]) -> Tuple[Dict[str, Any], bool]:
        """Store `value` unless `key` is taken; returns (stored value, inserted)."""
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                self._entries.move_to_end(key)
                return existing, False
            self._entries[key] = value
            if self.max_entries > 0:
                while len(self._entries) > self.max_entries:
                    old, _ = self._entries.popitem(last=False)
                    log.info("idempotency ledger full (%d), forgot %s", self.max_entries, old)
            return value, True

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()


def resolve_key(supplied: Optional[str]) -> str:
    if supplied and supplied.strip():
        return supplied
    return str(uuid.uuid4())


def accept_order(
    ledger: IdempotencyLedger,
    draft: Any,
    idem_key: Optional[str] = None,
    *,
    clock: Callable[[], int] = now_ms,
) -> Tuple[str, Dict[str, Any], bool]:
    """
    Returns (resolved key, confirmation, replayed).

    A known key replays its first confirmation whatever the draft says now.
    Only the items shape is checked here; SKUs are vetted by validateOrder alone.
    """
    key = resolve_key(idem_key)

    stored = ledger.get(key)
    if stored is not None:
        log.info("acceptOrder replay for key=%s order_id=%s", key, stored.get("order_id"))
        return key, stored, True

    require_items(draft)

    confirmation, inserted = ledger.put_if_absent(key, build_confirmation(clock()))
    if inserted:
        log.info("acceptOrder created order_id=%s key=%s", confirmation["order_id"], key)
    else:
        log.info("acceptOrder lost race for key=%s; replaying", key)
    return key, confirmation, not inserted
