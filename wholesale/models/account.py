from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class Account(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    created_at: datetime
    email: Optional[str] = None
    business_name: Optional[str] = None
    role: str = "wholesaler"
    current_plan: Optional[str] = None
    subscription_status: str = "inactive"
