# policy_proxy/app/api/routes_menu.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from policy_proxy.app.api.deps import get_menu_cache
from policy_proxy.app.services.menu_cache import MenuCache

router = APIRouter(prefix="/apiclient", tags=["menu"])


@router.get("/menu")
def get_menu(
    store_id: Optional[str] = Query(default=None, description="Store whose menu to export"),
    cache: MenuCache = Depends(get_menu_cache),
) -> Dict[str, Any]:
    """Cached mock menu export; regenerated once the entry is older than CACHE_TTL_SEC."""
    return cache.get_menu(store_id)
