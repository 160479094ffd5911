"""
Admin subscription API.

Support tooling guarded by X-Admin-Key:
- POST /api/admin/subscription/override: Move an account to a plan (audited)
- GET  /api/admin/subscription/stats: Audit event summary for a time range
"""
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from wholesale.core.admin_auth import AdminActor, require_admin
from wholesale.core.errors import ValidationError
from wholesale.features.audit.service import get_subscription_stats
from wholesale.features.plans.service import assign_plan


router = APIRouter(prefix="/api/admin/subscription", tags=["admin-subscription"])


class PlanOverrideRequest(BaseModel):
    """Manual plan change for one account."""
    user_id: str = Field(min_length=1)
    plan_id: str = Field(min_length=1)
    reason: str = Field(min_length=1, max_length=500)


@router.post("/override")
async def override_plan(request: PlanOverrideRequest, actor: AdminActor = Depends(require_admin)):
    """
    Assign a plan without going through billing.

    Errors:
        403: Missing or wrong admin key
        404: Unknown plan_id
    """
    subscription = assign_plan(
        request.user_id,
        request.plan_id,
        reason=request.reason,
        actor=actor.actor_id,
    )
    return {"data": subscription.model_dump(mode="json")}


@router.get("/stats")
async def subscription_stats(
    time_range: str = Query("30d", alias="timeRange"),
    actor: AdminActor = Depends(require_admin),
):
    try:
        stats = get_subscription_stats(time_range)
    except ValueError as e:
        raise ValidationError(str(e))
    return {"data": stats}
