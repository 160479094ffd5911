"""
wholesale/features/catalog/service.py

Merchant resources guarded by plan limits.

Handles:
- Products (create, list)
- Broadcasts (record, list)
- Team member invitations (create, list)
- Customer groups (create, list)

Limit checks happen in the route dependencies before these run.
"""

from datetime import datetime
from typing import List
from sqlalchemy import select, insert

from wholesale.core.database import (
    get_db_session,
    products,
    broadcasts,
    team_members,
    customer_groups,
)
from wholesale.core.errors import NotFoundError
from wholesale.models.catalog import (
    Broadcast,
    BroadcastCreateRequest,
    CustomerGroup,
    CustomerGroupCreateRequest,
    Product,
    ProductCreateRequest,
    TeamMember,
    TeamMemberInviteRequest,
)


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        wholesaler_id=row.wholesaler_id,
        name=row.name,
        description=row.description,
        price=row.price,
        currency=row.currency,
        moq=row.moq,
        stock=row.stock,
        status=row.status,
        created_at=row.created_at,
    )


def create_product(user_id: str, request: ProductCreateRequest) -> Product:
    with get_db_session() as session:
        result = session.execute(
            insert(products).values(
                wholesaler_id=user_id,
                name=request.name,
                description=request.description,
                price=request.price,
                currency=request.currency,
                moq=request.moq,
                stock=request.stock,
                status="active",
                created_at=datetime.now(),
            )
        )
        product_id = result.inserted_primary_key[0]
        row = session.execute(select(products).where(products.c.id == product_id)).first()
        return _row_to_product(row)


def list_products(user_id: str) -> List[Product]:
    with get_db_session() as session:
        rows = session.execute(
            select(products)
            .where(products.c.wholesaler_id == user_id)
            .order_by(products.c.created_at.desc(), products.c.id.desc())
        ).all()
        return [_row_to_product(row) for row in rows]


def _row_to_broadcast(row) -> Broadcast:
    return Broadcast(
        id=row.id,
        wholesaler_id=row.wholesaler_id,
        product_id=row.product_id,
        customer_group_id=row.customer_group_id,
        message=row.message,
        status=row.status,
        created_at=row.created_at,
    )


def create_broadcast(user_id: str, request: BroadcastCreateRequest) -> Broadcast:
    """
    Record a broadcast for one of the merchant's products.

    Raises:
        NotFoundError: Product is not owned by the merchant
    """
    with get_db_session() as session:
        owned = session.execute(
            select(products.c.id).where(
                products.c.id == request.product_id,
                products.c.wholesaler_id == user_id,
            )
        ).first()
        if not owned:
            raise NotFoundError(f"Product {request.product_id} not found")

        result = session.execute(
            insert(broadcasts).values(
                wholesaler_id=user_id,
                product_id=request.product_id,
                customer_group_id=request.customer_group_id,
                message=request.message,
                status="pending",
                created_at=datetime.now(),
            )
        )
        broadcast_id = result.inserted_primary_key[0]
        row = session.execute(select(broadcasts).where(broadcasts.c.id == broadcast_id)).first()
        return _row_to_broadcast(row)


def list_broadcasts(user_id: str) -> List[Broadcast]:
    with get_db_session() as session:
        rows = session.execute(
            select(broadcasts)
            .where(broadcasts.c.wholesaler_id == user_id)
            .order_by(broadcasts.c.created_at.desc(), broadcasts.c.id.desc())
        ).all()
        return [_row_to_broadcast(row) for row in rows]


def _row_to_team_member(row) -> TeamMember:
    return TeamMember(
        id=row.id,
        wholesaler_id=row.wholesaler_id,
        email=row.email,
        first_name=row.first_name,
        last_name=row.last_name,
        role=row.role,
        status=row.status,
        invited_at=row.invited_at,
    )


def invite_team_member(user_id: str, request: TeamMemberInviteRequest) -> TeamMember:
    with get_db_session() as session:
        result = session.execute(
            insert(team_members).values(
                wholesaler_id=user_id,
                email=request.email,
                first_name=request.first_name,
                last_name=request.last_name,
                role=request.role,
                status="pending",
                invited_at=datetime.now(),
            )
        )
        member_id = result.inserted_primary_key[0]
        row = session.execute(select(team_members).where(team_members.c.id == member_id)).first()
        return _row_to_team_member(row)


def list_team_members(user_id: str) -> List[TeamMember]:
    with get_db_session() as session:
        rows = session.execute(
            select(team_members)
            .where(team_members.c.wholesaler_id == user_id)
            .order_by(team_members.c.invited_at, team_members.c.id)
        ).all()
        return [_row_to_team_member(row) for row in rows]


def _row_to_customer_group(row) -> CustomerGroup:
    return CustomerGroup(
        id=row.id,
        wholesaler_id=row.wholesaler_id,
        name=row.name,
        description=row.description,
        created_at=row.created_at,
    )


def create_customer_group(user_id: str, request: CustomerGroupCreateRequest) -> CustomerGroup:
    with get_db_session() as session:
        result = session.execute(
            insert(customer_groups).values(
                wholesaler_id=user_id,
                name=request.name,
                description=request.description,
                created_at=datetime.now(),
            )
        )
        group_id = result.inserted_primary_key[0]
        row = session.execute(select(customer_groups).where(customer_groups.c.id == group_id)).first()
        return _row_to_customer_group(row)


def list_customer_groups(user_id: str) -> List[CustomerGroup]:
    with get_db_session() as session:
        rows = session.execute(
            select(customer_groups)
            .where(customer_groups.c.wholesaler_id == user_id)
            .order_by(customer_groups.c.created_at, customer_groups.c.id)
        ).all()
        return [_row_to_customer_group(row) for row in rows]
