from __future__ import annotations

from typing import Any, Dict

VALIDATION = "VALIDATION"
INTERNAL = "INTERNAL"


class ProxyError(Exception):
    """Error surfaced to the caller as `{ok: false, code, message, meta}`."""

    code: str = INTERNAL
    status: int = 500

    def __init__(self, message: str, *, code: str | None = None, status: int | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status


class ValidationFailed(ProxyError):
    code = VALIDATION
    status = 422


def ok_body(**data: Any) -> Dict[str, Any]:
    return {"ok": True, **data}


def error_body(code: str, message: str, status: int, **meta: Any) -> Dict[str, Any]:
    return {"ok": False, "code": code, "message": message, "meta": {"status": status, **meta}}
