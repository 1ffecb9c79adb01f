# policy_proxy/main.py
from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from policy_proxy.app.core.logging import setup_logging
from policy_proxy.app.core.config import Settings, get_settings
from policy_proxy.app.core.errors import INTERNAL, ProxyError, error_body
from policy_proxy.app.core.metrics import request_duration, requests_total
from policy_proxy.app.services.catalog import ALLOWED_SKUS
from policy_proxy.app.services.idempotency import IDEMPOTENCY_HEADER, IdempotencyLedger
from policy_proxy.app.services.menu_cache import MenuCache

from policy_proxy.app.api.routes_health import router as health_router
from policy_proxy.app.api.routes_menu import router as menu_router
from policy_proxy.app.api.routes_orders import router as orders_router
from policy_proxy.app.api.routes_metrics import router as metrics_router

log = logging.getLogger("policy_proxy")


def _route_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or "unmatched"


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    # Initialize logging early so all imports use correct handlers/levels
    setup_logging(settings.log_level, settings.log_format)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Mock Policy Proxy on :%s", settings.port)
        log.info(
            "menu ttl=%ss menu_cap=%s ledger_cap=%s env=%s",
            settings.cache_ttl_sec,
            settings.menu_cache_max_entries or "unbounded",
            settings.idempotency_max_entries or "unbounded",
            settings.environment,
        )
        yield
        log.info(
            "shutting down (menus cached=%d, idempotency keys=%d)",
            len(app.state.menu_cache),
            len(app.state.ledger),
        )

    app = FastAPI(
        title=settings.service_name or "Mock Policy Proxy",
        version=settings.version or "0.1.0",
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Process-local state; one instance per app, nothing shared across apps
    app.state.settings = settings
    app.state.menu_cache = MenuCache(settings.cache_ttl_ms, max_entries=settings.menu_cache_max_entries)
    app.state.ledger = IdempotencyLedger(max_entries=settings.idempotency_max_entries)

    @app.exception_handler(ProxyError)
    async def _proxy_error(request: Request, exc: ProxyError):
        log.info("%s %s -> %s %s: %s", request.method, request.url.path, exc.status, exc.code, exc.message)
        return JSONResponse(status_code=exc.status, content=error_body(exc.code, exc.message, exc.status))

    # --- Global JSON error handler: unexpected 500s stay machine-readable ---
    @app.exception_handler(Exception)
    async def _unhandled_exc_to_json(request: Request, exc: Exception):
        log.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content=error_body(
                INTERNAL,
                str(exc) or exc.__class__.__name__,
                500,
                path=request.url.path,
                method=request.method,
            ),
        )

    @app.middleware("http")
    async def _record_request(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            requests_total.inc({"route": _route_label(request), "status": "500"})
            raise
        # route is only known once the router has matched
        route = _route_label(request)
        request_duration.observe(time.perf_counter() - start, {"route": route})
        requests_total.inc({"route": route, "status": str(response.status_code)})
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins or ["*"],
        allow_credentials=True,
        allow_methods=settings.cors_allow_methods or ["*"],
        allow_headers=settings.cors_allow_headers or ["*"],
        expose_headers=[IDEMPOTENCY_HEADER],
    )

    # Routes
    app.include_router(health_router)
    app.include_router(menu_router)
    app.include_router(orders_router)
    app.include_router(metrics_router)

    # Friendly root
    @app.get("/")
    def root():
        return {
            "service": settings.service_name,
            "version": settings.version,
            "environment": settings.environment,
            "docs": "/docs",
            "endpoints": {
                "menu": "GET /apiclient/menu?store_id=<ID>",
                "validate_order": "POST /apiclient/validateOrder",
                "accept_order": f"POST /apiclient/acceptOrder ({IDEMPOTENCY_HEADER} header optional)",
                "health": "GET /healthz",
                "metrics": "GET /metrics",
            },
        }

    # Minimal runtime /meta for quick diagnostics (safe flags only)
    @app.get("/meta")
    def meta():
        return {
            "service": settings.service_name,
            "version": settings.version,
            "environment": settings.environment,
            "menu_cache": {
                "ttl_sec": settings.cache_ttl_sec,
                "max_entries": settings.menu_cache_max_entries,
            },
            "idempotency": {
                "header": IDEMPOTENCY_HEADER,
                "max_entries": settings.idempotency_max_entries,
            },
            "allowed_skus": sorted(ALLOWED_SKUS),
        }

    return app


app = create_app()


def run() -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
