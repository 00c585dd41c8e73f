import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from socialboost.api.routes import (
    admin_subscriptions,
    billing,
    billing_webhook,
    dashboard,
    health,
    subscriptions,
    user_orders,
)
from socialboost.core.config import FRONTEND_URL, LOG_LEVEL, RUN_MIGRATIONS, is_production
from socialboost.core.errors import BillingError
from socialboost.core.logging_config import setup_logging
from socialboost.db.init_db import init_db
from socialboost.db.migrate import run_migrations

setup_logging(LOG_LEVEL)
logger = logging.getLogger(__name__)


# ============================================
# FASTAPI APP INIT
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    if RUN_MIGRATIONS:
        run_migrations()
    else:
        init_db()
    logger.info("SocialBoost billing API started")
    yield
    logger.info("SocialBoost billing API stopped")


app = FastAPI(title="SocialBoost Billing", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        FRONTEND_URL,
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type", "Stripe-Signature"],
)


# ============================================
# REGISTER ALL ROUTERS
# ============================================

app.include_router(billing.router)
app.include_router(billing_webhook.router)
app.include_router(subscriptions.router)
app.include_router(user_orders.router)
app.include_router(admin_subscriptions.router)
app.include_router(dashboard.router)
app.include_router(health.router)


# ============================================
# ERROR RESPONSES
# ============================================

@app.exception_handler(BillingError)
async def billing_error_handler(request: Request, exc: BillingError):
    """Render billing failures as {message, detail}; detail is hidden in production."""
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message} detail={exc.detail}")
    else:
        logger.warning(f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}")

    content = {"message": exc.message}
    if exc.detail is not None and not is_production():
        content["detail"] = exc.detail
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    content = {"message": "Something went wrong. Please try again."}
    if not is_production():
        content["detail"] = str(exc)
    return JSONResponse(status_code=500, content=content)


@app.get("/")
def root():
    return {"status": "SocialBoost billing API running"}
