"""
wholesale/api/broadcasts.py
Broadcasts API: record a product broadcast (monthly limit) and list history.
"""

from fastapi import APIRouter, Depends

from wholesale.core.auth import get_current_user_id
from wholesale.core.feature_gating import require_broadcast_limits
from wholesale.features.catalog.service import create_broadcast, list_broadcasts
from wholesale.models.catalog import BroadcastCreateRequest
from wholesale.models.usage import FeatureLimitCheck

router = APIRouter(prefix="/api/broadcasts", tags=["broadcasts"])


@router.post("", status_code=201)
async def create_broadcast_endpoint(
    request: BroadcastCreateRequest,
    check: FeatureLimitCheck = Depends(require_broadcast_limits()),
    user_id: str = Depends(get_current_user_id),
):
    """Record a broadcast; 404 if the product isn't the merchant's."""
    broadcast = create_broadcast(user_id, request)
    return {"data": broadcast.model_dump(mode="json"), "limits": check.to_response()}


@router.get("")
async def list_broadcasts_endpoint(user_id: str = Depends(get_current_user_id)):
    items = list_broadcasts(user_id)
    return {"data": [b.model_dump(mode="json") for b in items], "count": len(items)}
