"""
Account domain service.
- get_account(user_id)
- get_or_create_account(user_id)
- find_account_by_stripe_ids(...)
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import select, insert, or_

from wholesale.core.database import get_db_session, users as app_users
from wholesale.models.account import Account


def _row_to_account(row) -> Account:
    return Account(
        user_id=row.user_id,
        created_at=row.created_at,
        email=row.email,
        business_name=row.business_name,
        role=row.role,
        current_plan=row.current_plan,
        subscription_status=row.subscription_status,
    )


def get_account(user_id: str) -> Optional[Account]:
    with get_db_session() as session:
        row = session.execute(select(app_users).where(app_users.c.user_id == user_id)).first()
        if not row:
            return None
        return _row_to_account(row)


def get_or_create_account(
    user_id: str,
    email: Optional[str] = None,
    business_name: Optional[str] = None,
) -> Account:
    """New accounts start on the free tier with an inactive subscription."""
    existing = get_account(user_id)
    if existing:
        return existing

    now = datetime.now()
    with get_db_session() as session:
        session.execute(
            insert(app_users).values(
                user_id=user_id,
                email=email,
                business_name=business_name,
                role="wholesaler",
                current_plan="free",
                subscription_status="inactive",
                created_at=now,
                updated_at=now,
            )
        )

    return Account(
        user_id=user_id,
        created_at=now,
        email=email,
        business_name=business_name,
        current_plan="free",
    )


def find_account_by_stripe_ids(
    subscription_id: Optional[str] = None,
    customer_id: Optional[str] = None,
) -> Optional[Account]:
    """Locate the account a billing event refers to."""
    clauses = []
    if subscription_id:
        clauses.append(app_users.c.stripe_subscription_id == subscription_id)
    if customer_id:
        clauses.append(app_users.c.stripe_customer_id == customer_id)
    if not clauses:
        return None

    with get_db_session() as session:
        row = session.execute(select(app_users).where(or_(*clauses))).first()
        return _row_to_account(row) if row else None
