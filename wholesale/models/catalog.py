"""
wholesale/models/catalog.py

Request and record models for the gated merchant resources.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(ge=0)
    currency: str = "GBP"
    moq: int = Field(default=1, ge=1)
    stock: int = Field(default=0, ge=0)


class Product(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    wholesaler_id: str
    name: str
    price: Decimal
    currency: str
    moq: int
    stock: int
    status: str
    created_at: datetime
    description: Optional[str] = None


class BroadcastCreateRequest(BaseModel):
    product_id: int
    message: str = Field(min_length=1)
    customer_group_id: Optional[int] = None


class Broadcast(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    wholesaler_id: str
    product_id: int
    message: str
    status: str
    created_at: datetime
    customer_group_id: Optional[int] = None


class TeamMemberInviteRequest(BaseModel):
    email: str = Field(min_length=3, max_length=255)
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: str = Field(default="member", pattern="^(admin|member)$")


class TeamMember(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    wholesaler_id: str
    email: str
    role: str
    status: str
    invited_at: datetime
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class CustomerGroupCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None


class CustomerGroup(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    wholesaler_id: str
    name: str
    created_at: datetime
    description: Optional[str] = None
