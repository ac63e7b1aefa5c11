# app/main.py
import uvicorn
import os
import logging
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.openapi.utils import get_openapi
from app.core.config import settings
from app.core.database import engine, Base
from app.core.errors import LedgerError
from app.api.v1.routes import (
    accounts,
    auth,
    goals,
    invitations,
    notification,
    recurring,
    reports,
    transactions,
    users,
    vaults,
    webhooks,
)

# Model modules register their tables on Base.metadata before create_all
from app.models import (  # noqa: F401
    account as account_model,
    goal as goal_model,
    invitation as invitation_model,
    notification as notification_model,
    report as report_model,
    transaction as transaction_model,
    vault as vault_model,
)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Create all tables on startup (Alembic owns production schema changes)
async def create_db_and_tables():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    openapi_tags=[
        {"name": "Authentication", "description": "Registration and JWT login"},
        {"name": "User Management", "description": "Profile and subscription access"},
        {"name": "Vaults", "description": "Shared workspaces and their members"},
        {"name": "Accounts", "description": "Bank accounts, credit cards and investments"},
        {"name": "Transactions", "description": "Income, expenses and transfers"},
        {"name": "goals", "description": "Savings goals (caixinhas)"},
        {"name": "Reports", "description": "Cached monthly analysis"},
        {"name": "Notifications", "description": "In-app notifications"},
    ],
)

app.openapi_schema = None  # Clear any existing schema

def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema

    openapi_schema = get_openapi(
        title=app.title,
        version=app.version,
        description=app.description,
        routes=app.routes,
    )

    openapi_schema["components"]["securitySchemes"] = {
        "BearerAuth": {
            "type": "http",
            "scheme": "bearer"
        }
    }

    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi

# CORS Configuration
origins = [
    settings.FRONTEND_URL,
    "http://localhost:3000",  # Local development
    "http://localhost:3001",  # Backup local port
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

@app.exception_handler(LedgerError)
async def ledger_exception_handler(request, exc: LedgerError):
    """Domain errors carry their own HTTP status and error code"""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for better error responses"""
    if isinstance(exc, HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail}
        )

    logger.exception(f"Unhandled exception on {request.method} {request.url.path}: {exc}")

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"}
    )

# ------------------------------------------------------------
# ROOT ENDPOINT
# ------------------------------------------------------------
@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information"""
    return {
        "message": f"{settings.APP_NAME} is running!",
        "version": settings.VERSION
    }

# ------------------------------------------------------------
# HEALTH CHECK ENDPOINT
# ------------------------------------------------------------
@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": settings.VERSION,
        "environment": settings.ENVIRONMENT
    }

# ------------------------------------------------------------
# ROUTES
# ------------------------------------------------------------
app.include_router(auth.router, prefix="/api/v1/auth", tags=["Authentication"])
app.include_router(users.router, prefix="/api/v1/users", tags=["User Management"])
app.include_router(vaults.router, prefix="/api/v1")
app.include_router(invitations.router, prefix="/api/v1")
app.include_router(accounts.router, prefix="/api/v1")
app.include_router(transactions.router, prefix="/api/v1")
app.include_router(recurring.router, prefix="/api/v1")
app.include_router(goals.router, prefix="/api/v1")
app.include_router(reports.router, prefix="/api/v1")
app.include_router(notification.router, prefix="/api/v1/notification", tags=["Notifications"])
app.include_router(webhooks.router, prefix="/api/v1")

# ------------------------------------------------------------
# STARTUP EVENT
# ------------------------------------------------------------
@app.on_event("startup")
async def on_startup():
    """Startup event to create database tables"""
    await create_db_and_tables()
    logger.info("Database tables ready")
    logger.info(f"Frontend URL: {settings.FRONTEND_URL}")
    if not settings.OPENROUTER_API_KEY:
        logger.warning("OpenRouter API key not configured - reports will use the built-in summary")
    if not settings.SENDGRID_API_KEY:
        logger.warning("SendGrid API key not configured - emails will be skipped")

if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("app.main:app", host="0.0.0.0", port=port, reload=False)
