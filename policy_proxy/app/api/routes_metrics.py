from __future__ import annotations

from fastapi import APIRouter, Request, Response

from policy_proxy.app.core.metrics import REGISTRY, ledger_size, menu_cache_size

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics(request: Request) -> Response:
    # sizes are read from this app's own state at scrape time
    state = request.app.state
    menu_cache_size.set(len(state.menu_cache))
    ledger_size.set(len(state.ledger))
    return Response(content=REGISTRY.render_prometheus(), media_type="text/plain; version=0.0.4")
