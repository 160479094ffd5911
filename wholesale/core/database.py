"""
Database configuration and connection management.

This module provides:
- SQLAlchemy engine and session management
- Connection pooling with sane defaults (StaticPool for SQLite)
- Test database support
- Table definitions for accounts, plans and gated business records
"""
from typing import Optional
from contextlib import contextmanager
from datetime import datetime
import logging
from sqlalchemy import create_engine, MetaData, Table, Column, Integer, String, DateTime, Boolean, JSON, Text, Numeric, Index, select
from sqlalchemy.pool import QueuePool, StaticPool
from sqlalchemy.orm import sessionmaker
import os

from wholesale.core.config import settings

logger = logging.getLogger("wholesale")

# SQLAlchemy metadata for table definitions
metadata = MetaData()

# Connection pooling configuration
POOL_SIZE = 10
MAX_OVERFLOW = 20
POOL_TIMEOUT = 30
POOL_RECYCLE = 3600  # Recycle connections after 1 hour

# Global engine and session factory
_engine = None
_SessionLocal = None

def get_database_url() -> Optional[str]:
    """
    Get the database URL from settings or environment.

    For testing, use TEST_DATABASE_URL if available.
    """
    test_url = os.getenv("TEST_DATABASE_URL")
    if test_url:
        return test_url

    return settings.DATABASE_URL

def init_engine(database_url: Optional[str] = None):
    """
    Initialize the SQLAlchemy engine.

    Args:
        database_url: Optional override for DATABASE_URL
    """
    global _engine, _SessionLocal

    url = database_url or get_database_url()

    if not url:
        raise ValueError(
            "DATABASE_URL is not configured. "
            "Set DATABASE_URL in environment or .env file."
        )

    if url.startswith("sqlite"):
        # One shared connection so in-memory databases survive across sessions
        _engine = create_engine(
            url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    else:
        _engine = create_engine(
            url,
            poolclass=QueuePool,
            pool_size=POOL_SIZE,
            max_overflow=MAX_OVERFLOW,
            pool_timeout=POOL_TIMEOUT,
            pool_recycle=POOL_RECYCLE,
            echo=False,  # Set to True for SQL query logging
        )

    # Create session factory
    _SessionLocal = sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=_engine
    )

    return _engine

def get_engine():
    """Get the current SQLAlchemy engine."""
    global _engine
    if _engine is None:
        init_engine()
    return _engine

def get_session_factory():
    """Get the session factory."""
    global _SessionLocal
    if _SessionLocal is None:
        init_engine()
    return _SessionLocal

@contextmanager
def get_db_session():
    """
    Context manager for database sessions.

    Usage:
        with get_db_session() as session:
            session.execute(...)
    """
    SessionLocal = get_session_factory()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

def create_all_tables():
    """
    Create all tables defined in metadata.

    This is idempotent - tables that already exist will not be recreated.
    """
    engine = get_engine()
    metadata.create_all(bind=engine)

def drop_all_tables():
    """
    Drop all tables defined in metadata.

    WARNING: This is destructive! Only use in tests or development.
    """
    engine = get_engine()
    metadata.drop_all(bind=engine)

def reset_database():
    """
    Reset the database by dropping and recreating all tables.

    WARNING: This is destructive! Only use in tests.
    """
    drop_all_tables()
    create_all_tables()

def check_connection() -> bool:
    """
    Check if database connection is available.

    Returns:
        True if connection successful, False otherwise
    """
    try:
        engine = get_engine()
        with engine.connect() as conn:
            conn.execute(select(1))
        return True
    except Exception as e:
        logger.warning(f"Database connection check failed: {e}")
        return False

# Accounts carry their subscription state; written by billing webhooks and
# manual overrides, read by the gating layer.
users = Table(
    'app_users',
    metadata,
    Column('user_id', String(100), primary_key=True),
    Column('email', String(255), nullable=True, unique=True),
    Column('business_name', Text, nullable=True),
    Column('role', String(50), nullable=False, server_default='wholesaler'),
    Column('current_plan', String(50), nullable=True),
    Column('subscription_status', String(50), nullable=False, server_default='inactive'),
    Column('subscription_ends_at', DateTime, nullable=True),
    Column('stripe_customer_id', String(255), nullable=True, index=True),
    Column('stripe_subscription_id', String(255), nullable=True, index=True),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
    Column('updated_at', DateTime, default=datetime.now, onupdate=datetime.now, nullable=False),
)

# Plan reference data (free, standard, premium)
subscription_plans = Table(
    'subscription_plans',
    metadata,
    Column('plan_id', String(50), primary_key=True),
    Column('name', String(100), nullable=False),
    Column('description', Text, nullable=True),
    Column('monthly_price', Numeric(10, 2), nullable=False, server_default='0'),
    Column('currency', String(3), nullable=False, server_default='GBP'),
    Column('stripe_price_id', String(255), nullable=True, unique=True),
    Column('limits', JSON, nullable=False),
    Column('features', JSON, nullable=False),
    Column('sort_order', Integer, nullable=False, server_default='0'),
    Column('is_active', Boolean, nullable=False, server_default='1'),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
)

user_subscriptions = Table(
    'user_subscriptions',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, unique=True),
    Column('plan_id', String(50), nullable=False),
    Column('status', String(50), nullable=False),
    Column('stripe_subscription_id', String(255), nullable=True),
    Column('current_period_start', DateTime, nullable=True),
    Column('current_period_end', DateTime, nullable=True),
    Column('cancel_at_period_end', Boolean, nullable=False, default=False),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
    Column('updated_at', DateTime, default=datetime.now, onupdate=datetime.now, nullable=False),
)

# Gated business records. Timestamps are server-local (naive) so the
# month window used for broadcast counting compares like with like.
products = Table(
    'products',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('wholesaler_id', String(100), nullable=False, index=True),
    Column('name', String(255), nullable=False),
    Column('description', Text, nullable=True),
    Column('price', Numeric(10, 2), nullable=False),
    Column('currency', String(3), nullable=False, server_default='GBP'),
    Column('moq', Integer, nullable=False, server_default='1'),
    Column('stock', Integer, nullable=False, server_default='0'),
    Column('status', String(50), nullable=False, server_default='active'),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
)

broadcasts = Table(
    'broadcasts',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('wholesaler_id', String(100), nullable=False),
    Column('product_id', Integer, nullable=False),
    Column('customer_group_id', Integer, nullable=True),
    Column('message', Text, nullable=False),
    Column('status', String(50), nullable=False, server_default='pending'),
    Column('recipient_count', Integer, nullable=False, server_default='0'),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
    # Monthly window lookups: (wholesaler_id, created_at)
    Index('idx_broadcasts_wholesaler_created', 'wholesaler_id', 'created_at'),
)

team_members = Table(
    'team_members',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('wholesaler_id', String(100), nullable=False, index=True),
    Column('email', String(255), nullable=False),
    Column('first_name', String(100), nullable=True),
    Column('last_name', String(100), nullable=True),
    Column('role', String(50), nullable=False, server_default='member'),
    Column('status', String(50), nullable=False, server_default='pending'),
    Column('invited_at', DateTime, default=datetime.now, nullable=False),
)

customer_groups = Table(
    'customer_groups',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('wholesaler_id', String(100), nullable=False, index=True),
    Column('name', String(255), nullable=False),
    Column('description', Text, nullable=True),
    Column('created_at', DateTime, default=datetime.now, nullable=False),
)

subscription_audit_logs = Table(
    'subscription_audit_logs',
    metadata,
    Column('id', Integer, primary_key=True, autoincrement=True),
    Column('user_id', String(100), nullable=False, index=True),
    Column('event_type', String(50), nullable=False),
    Column('from_tier', String(50), nullable=True),
    Column('to_tier', String(50), nullable=True),
    Column('amount', Numeric(10, 2), nullable=True),
    Column('currency', String(3), nullable=True),
    Column('stripe_subscription_id', String(255), nullable=True),
    Column('stripe_customer_id', String(255), nullable=True),
    Column('reason', Text, nullable=True),
    Column('metadata', JSON, nullable=True),
    Column('timestamp', DateTime, default=datetime.now, nullable=False),
    Index('idx_subscription_audit_logs_timestamp', 'timestamp'),
)
