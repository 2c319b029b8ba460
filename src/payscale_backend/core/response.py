from __future__ import annotations

from typing import Any, Dict, Optional

from .errors import ServiceError


# PUBLIC_INTERFACE
def ok(data: Any, meta: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Success envelope: {"status": "ok", "data": ..., "meta": {...}}."""
    return {
        "status": "ok",
        "data": data,
        "meta": meta or {},
    }


# PUBLIC_INTERFACE
def error_payload(
    code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    http_status: Optional[int] = None,
) -> Dict[str, Any]:
    """Error envelope: {"status": "error", "code", "message"} plus details/http_status when given.

    details must never carry plaintext personnel fields or ciphertext.
    """
    payload: Dict[str, Any] = {
        "status": "error",
        "code": code,
        "message": message,
    }
    if details:
        payload["details"] = details
    if http_status is not None:
        payload["http_status"] = http_status
    return payload


# PUBLIC_INTERFACE
def service_error_payload(exc: ServiceError) -> Dict[str, Any]:
    """Error envelope for a ServiceError, using its code and HTTP status."""
    return error_payload(code=exc.code, message=exc.message, details=exc.details, http_status=exc.http_status)
