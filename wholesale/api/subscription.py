"""
wholesale/api/subscription.py
Subscription API: plan catalogue, current subscription, usage report, audit history.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from wholesale.core.auth import get_current_user_id
from wholesale.features.audit.service import get_user_subscription_history
from wholesale.features.gating.service import get_user_plan_limits
from wholesale.features.plans.service import get_user_subscription, list_plans

router = APIRouter(prefix="/api/subscription", tags=["subscription"])


@router.get("/plans")
async def list_plans_endpoint():
    """Active plans in display order (public)."""
    plans = list_plans(active_only=True)
    return {"data": [p.model_dump(mode="json") for p in plans]}


@router.get("/status")
async def subscription_status_endpoint(user_id: str = Depends(get_current_user_id)):
    subscription = get_user_subscription(user_id)
    data = subscription.model_dump(mode="json")
    data["is_active"] = subscription.is_active
    return {"data": data}


@router.get("/usage")
async def usage_endpoint(
    user_id: str = Depends(get_current_user_id),
    now: Optional[str] = Query(None, description="Fixed timestamp for deterministic testing (ISO format)"),
):
    """Plan limits, current usage and percent used for the dashboard."""
    now_dt = None
    if now:
        try:
            now_dt = datetime.fromisoformat(now)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid ISO timestamp format for 'now' parameter")

    report = get_user_plan_limits(user_id, now=now_dt)
    return report.to_response()


@router.get("/history")
async def history_endpoint(user_id: str = Depends(get_current_user_id)):
    events = get_user_subscription_history(user_id)
    return {"data": [e.model_dump(mode="json") for e in events], "count": len(events)}
