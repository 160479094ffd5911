"""
wholesale/models/plan.py

Plan model: a named subscription tier and its limits.
"""

from decimal import Decimal
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


UNLIMITED = -1


class Plan(BaseModel):
    """
    Plan represents a subscription tier.

    Examples:
    - free (default)
    - standard
    - premium

    Limits map a gated feature (products, broadcasts, teamMembers,
    customGroups) to an integer cap; -1 means unlimited.
    """
    model_config = ConfigDict(frozen=True)

    plan_id: str
    name: str
    limits: Dict[str, int]
    features: List[str] = Field(default_factory=list)
    description: Optional[str] = None
    monthly_price: Decimal = Decimal("0.00")
    currency: str = "GBP"
    stripe_price_id: Optional[str] = None
    sort_order: int = 0
    is_active: bool = True

    def limit_for(self, feature: str) -> Optional[int]:
        return self.limits.get(feature)

    def is_unlimited(self, feature: str) -> bool:
        return self.limits.get(feature) == UNLIMITED
