import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

# Load env from the project root .env (skipped under pytest)
if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv()

from wholesale.core.config import settings, validate_config
from wholesale.core.logging import configure_logging
from wholesale.core.middleware.request_id import RequestIdMiddleware
from wholesale.core.database import create_all_tables
from wholesale.core.errors import (
    AppError,
    GateError,
    app_error_handler,
    gate_error_handler,
    http_error_handler,
    unhandled_exception_handler,
)
from wholesale.api import (
    accounts,
    admin_subscription,
    billing,
    broadcasts,
    customer_groups,
    health,
    products,
    subscription,
    team,
)
from wholesale.features.plans.service import seed_plans

configure_logging(settings.ENV)
validate_config(strict=getattr(settings, "CONFIG_STRICT", False))


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = logging.getLogger("wholesale")
    logger.info("Starting wholesale backend...")
    try:
        create_all_tables()
        seed_plans()
    except Exception as e:
        # Readiness probe reports the database state
        logger.error(f"Database bootstrap failed: {e}")
    try:
        yield
    finally:
        logging.getLogger("wholesale").info("Stopping wholesale backend...")


app = FastAPI(title="Wholesale - Backend", lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(GateError, gate_error_handler)
app.add_exception_handler(AppError, app_error_handler)
app.add_exception_handler(HTTPException, http_error_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.root_router, tags=["health"])
app.include_router(accounts.router, tags=["accounts"])
app.include_router(products.router, tags=["products"])
app.include_router(broadcasts.router, tags=["broadcasts"])
app.include_router(team.router, tags=["team"])
app.include_router(customer_groups.router, tags=["customer-groups"])
app.include_router(subscription.router, tags=["subscription"])
app.include_router(admin_subscription.router, tags=["admin-subscription"])
app.include_router(billing.router, tags=["billing"])
