# policy_proxy/app/services/menu_cache.py
from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from policy_proxy.app.core.metrics import menu_cache_lookups
from policy_proxy.app.services.catalog import DEFAULT_STORE_ID, build_menu, now_ms

log = logging.getLogger(__name__)

KEY_PREFIX = "menu:"


@dataclass(frozen=True)
class MenuCacheEntry:
    store_key: str
    written_at: int  # ms since epoch
    payload: Dict[str, Any]


def cache_key(store_id: Optional[str]) -> str:
    return KEY_PREFIX + (DEFAULT_STORE_ID if store_id is None else str(store_id))


class MenuCache:
    """
    Per-store menu documents, replayed until they are `ttl_ms` old.

    Entries are replaced wholesale on regeneration and never deleted unless
    `max_entries` > 0, in which case the least recently used store is evicted.
    """

    def __init__(
        self,
        ttl_ms: int,
        *,
        max_entries: int = 0,
        clock: Callable[[], int] = now_ms,
    ):
        self.ttl_ms = ttl_ms
        self.max_entries = max_entries
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: "OrderedDict[str, MenuCacheEntry]" = OrderedDict()
        self.hits = 0
        self.misses = 0

    def get_menu(self, store_id: Optional[str] = None) -> Dict[str, Any]:
        store = DEFAULT_STORE_ID if store_id is None else str(store_id)
        key = cache_key(store)
        with self._lock:
            now = self._clock()
            hit = self._entries.get(key)
            if hit is not None and now - hit.written_at < self.ttl_ms:
                self._entries.move_to_end(key)
                self.hits += 1
                menu_cache_lookups.inc({"result": "hit"})
                return hit.payload

            payload = build_menu(store)
            self._entries[key] = MenuCacheEntry(store_key=key, written_at=now, payload=payload)
            self._entries.move_to_end(key)
            self._evict()
            self.misses += 1

        menu_cache_lookups.inc({"result": "miss"})
        log.debug("menu regenerated for %s (stale=%s)", key, hit is not None)
        return payload

    def entry(self, store_id: Optional[str] = None) -> Optional[MenuCacheEntry]:
        with self._lock:
            return self._entries.get(cache_key(store_id))

    def _evict(self) -> None:
        if self.max_entries <= 0:
            return
        while len(self._entries) > self.max_entries:
            key, _ = self._entries.popitem(last=False)
            log.info("menu cache full (%d), evicted %s", self.max_entries, key)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
