"""
Admin authentication for manual subscription overrides.

Admin calls present the shared X-Admin-Key. Every override is audited with
the actor identity, so the key itself is never stored: only a short hash.
"""
import hashlib
import hmac
from dataclasses import dataclass
from fastapi import Request
from wholesale.core.errors import PermissionError
from wholesale.core.config import settings


@dataclass
class AdminActor:
    """Represents an authenticated admin actor."""
    actor_id: str  # "admin:<hash>"
    auth_mechanism: str = "x_admin_key"


def verify_admin_key(request: Request) -> AdminActor | None:
    """Return an AdminActor when X-Admin-Key matches ADMIN_KEY, else None."""
    expected_key = settings.ADMIN_KEY
    if not expected_key:
        return None

    header_key = request.headers.get("X-Admin-Key", "").strip()
    if not header_key or not hmac.compare_digest(header_key, expected_key):
        return None

    key_hash = hashlib.sha256(header_key.encode()).hexdigest()[:16]
    return AdminActor(actor_id=f"admin:{key_hash}")


def require_admin(request: Request) -> AdminActor:
    """FastAPI dependency guarding admin routes."""
    actor = verify_admin_key(request)
    if actor is None:
        raise PermissionError("Admin access required", code="admin_required")
    return actor
