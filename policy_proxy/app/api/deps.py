from __future__ import annotations

from fastapi import Request

from policy_proxy.app.services.idempotency import IdempotencyLedger
from policy_proxy.app.services.menu_cache import MenuCache


def get_menu_cache(request: Request) -> MenuCache:
    return request.app.state.menu_cache


def get_ledger(request: Request) -> IdempotencyLedger:
    return request.app.state.ledger
