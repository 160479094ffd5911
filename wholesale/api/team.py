"""
wholesale/api/team.py
Team API: invite members (seat-limited) and list the team.
"""

from fastapi import APIRouter, Depends

from wholesale.core.auth import get_current_user_id
from wholesale.core.feature_gating import require_team_member_limits
from wholesale.features.catalog.service import invite_team_member, list_team_members
from wholesale.models.catalog import TeamMemberInviteRequest
from wholesale.models.usage import FeatureLimitCheck

router = APIRouter(prefix="/api/team-members", tags=["team"])


@router.post("", status_code=201)
async def invite_team_member_endpoint(
    request: TeamMemberInviteRequest,
    check: FeatureLimitCheck = Depends(require_team_member_limits()),
    user_id: str = Depends(get_current_user_id),
):
    member = invite_team_member(user_id, request)
    return {"data": member.model_dump(mode="json"), "limits": check.to_response()}


@router.get("")
async def list_team_members_endpoint(user_id: str = Depends(get_current_user_id)):
    members = list_team_members(user_id)
    return {"data": [m.model_dump(mode="json") for m in members], "count": len(members)}
