"""
wholesale/models/usage.py

Request-scoped gating values: usage snapshots, limit checks and the
plan/usage report shown on the merchant dashboard.
"""

from typing import Dict
from pydantic import BaseModel, ConfigDict, Field


class UsageSnapshot(BaseModel):
    """Current counts of gated resources, computed on demand."""
    model_config = ConfigDict(frozen=True)

    products: int = Field(default=0, ge=0)
    broadcasts: int = Field(default=0, ge=0)  # current calendar month only
    team_members: int = Field(default=0, ge=0)

    def as_feature_map(self) -> Dict[str, int]:
        return {
            "products": self.products,
            "broadcasts": self.broadcasts,
            "teamMembers": self.team_members,
        }


class FeatureLimitCheck(BaseModel):
    """Outcome of comparing one feature's usage against the resolved plan."""
    model_config = ConfigDict(frozen=True)

    allowed: bool
    limit: int
    current_count: int
    plan: str
    upgrade_required: bool

    def to_response(self) -> dict:
        return {
            "allowed": self.allowed,
            "limit": self.limit,
            "currentCount": self.current_count,
            "plan": self.plan,
            "upgradeRequired": self.upgrade_required,
        }


class PlanLimitsReport(BaseModel):
    model_config = ConfigDict(frozen=True)

    plan: str
    limits: Dict[str, int]
    usage: UsageSnapshot
    percent_used: Dict[str, int]

    def to_response(self) -> dict:
        return {
            "plan": self.plan,
            "limits": dict(self.limits),
            "usage": self.usage.as_feature_map(),
            "percentUsed": dict(self.percent_used),
        }
