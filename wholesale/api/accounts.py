"""
wholesale/api/accounts.py
Accounts API: register the signed-in merchant and read the profile.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from wholesale.core.auth import get_current_user_id
from wholesale.core.errors import NotFoundError
from wholesale.features.accounts.service import get_account, get_or_create_account

router = APIRouter(prefix="/api/accounts", tags=["accounts"])


class AccountRegisterRequest(BaseModel):
    email: Optional[str] = Field(default=None, max_length=255)
    business_name: Optional[str] = Field(default=None, max_length=255)


@router.post("/me")
async def register_account(request: AccountRegisterRequest, user_id: str = Depends(get_current_user_id)):
    """Create the account on first sign-in (free tier); existing accounts are returned unchanged."""
    account = get_or_create_account(user_id, email=request.email, business_name=request.business_name)
    return {"data": account.model_dump(mode="json")}


@router.get("/me")
async def get_my_account(user_id: str = Depends(get_current_user_id)):
    account = get_account(user_id)
    if account is None:
        raise NotFoundError(f"Account {user_id} not found")
    return {"data": account.model_dump(mode="json")}
