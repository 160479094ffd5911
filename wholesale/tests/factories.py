"""Row factories shared by the gating tests."""
from sqlalchemy import insert

from wholesale.core.database import (
    get_db_session,
    users as app_users,
    products,
    broadcasts,
    team_members,
    customer_groups,
)


def create_account(user_id: str, plan: str = "free", status: str = "active"):
    """Helper to create an account on a given plan."""
    with get_db_session() as session:
        session.execute(
            insert(app_users).values(
                user_id=user_id,
                email=f"{user_id}@example.com",
                business_name=f"Business {user_id}",
                current_plan=plan,
                subscription_status=status,
            )
        )


def add_products(user_id: str, count: int):
    with get_db_session() as session:
        for i in range(count):
            session.execute(
                insert(products).values(
                    wholesaler_id=user_id,
                    name=f"Product {i}",
                    price=10,
                )
            )


def add_broadcasts(user_id: str, created_at_list):
    with get_db_session() as session:
        for created_at in created_at_list:
            session.execute(
                insert(broadcasts).values(
                    wholesaler_id=user_id,
                    product_id=1,
                    message="New stock available",
                    created_at=created_at,
                )
            )


def add_team_members(user_id: str, statuses):
    with get_db_session() as session:
        for i, status in enumerate(statuses):
            session.execute(
                insert(team_members).values(
                    wholesaler_id=user_id,
                    email=f"member{i}@example.com",
                    status=status,
                )
            )


def add_customer_groups(user_id: str, count: int):
    with get_db_session() as session:
        for i in range(count):
            session.execute(
                insert(customer_groups).values(
                    wholesaler_id=user_id,
                    name=f"Group {i}",
                )
            )
