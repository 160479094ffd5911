"""Error normalization and handlers."""

import logging
import builtins
from typing import Any, Dict, Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.responses import JSONResponse
from starlette.requests import Request

from wholesale.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class PermissionError(AppError, builtins.PermissionError):
    code = "forbidden"
    status_code = 403


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class BillingWebhookError(AppError):
    code = "invalid_webhook"
    status_code = 400


class BillingDisabledError(AppError):
    code = "billing_disabled"
    status_code = 503


class GateError(AppError):
    """Gating outcome rendered with the flat body the dashboard expects.

    ``payload`` is returned verbatim; ``code`` mirrors ``payload["code"]``.
    """

    def __init__(self, payload: Dict[str, Any], *, status_code: Optional[int] = None):
        super().__init__(
            str(payload.get("error", "Feature gate denied")),
            code=payload.get("code"),
            status_code=status_code,
        )
        self.payload = payload


class AuthRequiredError(GateError):
    code = "AUTH_REQUIRED"
    status_code = 401


class FeatureLimitExceededError(GateError):
    code = "SUBSCRIPTION_UPGRADE_REQUIRED"
    status_code = 403


class FeatureCheckFailedError(GateError):
    code = "FEATURE_CHECK_FAILED"
    status_code = 500


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("wholesale")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def gate_error_handler(request: Request, exc: GateError):
    rid = _extract_request_id(request)
    logger = logging.getLogger("wholesale")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        log_level,
        "gate.denied",
        extra={
            "request_id": rid,
            "error_code": exc.code,
            "feature": exc.payload.get("feature"),
            "status": exc.status_code,
        },
    )
    response = JSONResponse(status_code=exc.status_code, content=exc.payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("wholesale")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("wholesale")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
