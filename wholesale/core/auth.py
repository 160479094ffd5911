"""
Auth utilities for the wholesale API.

Validates HS256 bearer tokens and extracts the account id from the request.
Falls back to the X-User-Id header (service-to-service calls and tests).
"""
from fastapi import HTTPException, Request
from typing import Optional
from wholesale.core.config import settings
import jwt
import logging

logger = logging.getLogger(__name__)


def verify_jwt(token: str) -> Optional[str]:
    """
    Verify a bearer JWT and extract the account id.

    Args:
        token: JWT from Authorization header (Bearer {token})

    Returns:
        Account id from the 'sub' claim, or None when JWT_SECRET is not configured

    Raises:
        HTTPException 401: Invalid or expired token
    """
    if not settings.JWT_SECRET:
        logger.debug("No JWT_SECRET configured, skipping JWT validation")
        return None

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            options={"verify_signature": True, "verify_exp": True}
        )
    except jwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise HTTPException(status_code=401, detail="Invalid token")

    user_id = payload.get("sub")
    if not user_id:
        raise HTTPException(status_code=401, detail="Token has no subject")
    return str(user_id)


def get_optional_user_id(request: Request) -> Optional[str]:
    """
    Resolve the authenticated account id, or None when the request is anonymous.

    Priority:
    1. JWT from Authorization header
    2. X-User-Id header

    Never touches the database, so anonymous requests to gated routes can be
    rejected before any lookup happens.
    """
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        user_id = verify_jwt(auth_header[7:])
        if user_id:
            request.state.user_id = user_id
            return user_id

    x_user_id = (request.headers.get("X-User-Id") or "").strip()
    if x_user_id:
        request.state.user_id = x_user_id
        return x_user_id

    return None


def get_current_user_id(request: Request) -> str:
    """
    Resolve the authenticated account id.

    Raises:
        HTTPException 401: Missing authentication
    """
    user_id = get_optional_user_id(request)
    if not user_id:
        raise HTTPException(
            status_code=401,
            detail="Missing Authorization (Bearer JWT) or X-User-Id header",
        )
    return user_id
