# policy_proxy/app/api/routes_orders.py
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Header, Response

from policy_proxy.app.api.deps import get_ledger
from policy_proxy.app.core.errors import ValidationFailed, ok_body
from policy_proxy.app.core.metrics import accept_results, validate_results
from policy_proxy.app.services.idempotency import (
    IDEMPOTENCY_HEADER,
    IdempotencyLedger,
    accept_order,
)
from policy_proxy.app.services.orders import validate_order

router = APIRouter(prefix="/apiclient", tags=["orders"])

# Bodies are taken as raw JSON: a bad draft must come back as our VALIDATION
# error, not as a framework schema error.


@router.post("/validateOrder")
def validate_order_route(draft: Any = Body(default=None)) -> Dict[str, Any]:
    try:
        result = validate_order(draft)
    except ValidationFailed:
        validate_results.inc({"result": "rejected"})
        raise
    validate_results.inc({"result": "ok"})
    return ok_body(**result)


@router.post("/acceptOrder")
def accept_order_route(
    response: Response,
    draft: Any = Body(default=None),
    idempotency_key: Optional[str] = Header(default=None, alias=IDEMPOTENCY_HEADER),
    ledger: IdempotencyLedger = Depends(get_ledger),
) -> Dict[str, Any]:
    try:
        key, confirmation, replayed = accept_order(ledger, draft, idempotency_key)
    except ValidationFailed:
        accept_results.inc({"result": "rejected"})
        raise
    accept_results.inc({"result": "replayed" if replayed else "created"})
    response.headers[IDEMPOTENCY_HEADER] = key
    return confirmation
