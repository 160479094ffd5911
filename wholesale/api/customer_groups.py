"""
wholesale/api/customer_groups.py
Customer groups API: create (plan-gated) and list.
"""

from fastapi import APIRouter, Depends

from wholesale.core.auth import get_current_user_id
from wholesale.core.feature_gating import enforce_feature_access, require_feature_access
from wholesale.features.catalog.service import create_customer_group, list_customer_groups
from wholesale.features.usage.service import count_customer_groups
from wholesale.models.catalog import CustomerGroupCreateRequest

router = APIRouter(prefix="/api/customer-groups", tags=["customer-groups"])


@router.post("", status_code=201)
async def create_customer_group_endpoint(
    request: CustomerGroupCreateRequest,
    user_id: str = Depends(require_feature_access("customGroups")),
):
    """Create a customer group if one more group fits the plan."""
    enforce_feature_access(user_id, "customGroups", count_customer_groups(user_id) + 1)
    group = create_customer_group(user_id, request)
    return {"data": group.model_dump(mode="json")}


@router.get("")
async def list_customer_groups_endpoint(user_id: str = Depends(get_current_user_id)):
    groups = list_customer_groups(user_id)
    return {"data": [g.model_dump(mode="json") for g in groups], "count": len(groups)}
