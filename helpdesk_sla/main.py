"""
Helpdesk SLA - Main Application
================================

SLA business-hours calculation and policy resolution service.

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Calendars, business-time arithmetic, policy resolution
- Infrastructure: Database, YAML configuration
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from helpdesk_sla.config import settings
from helpdesk_sla.infrastructure.database import init_database, close_database, create_tables
from helpdesk_sla.sla.infrastructure import SLAConfigManager
from helpdesk_sla.sla.interfaces import sla_router, holiday_router
from helpdesk_sla.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    register_exception_handlers,
)
from helpdesk_sla.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database
    3. Create database tables (development)
    4. Load SLA configuration and watch it for changes

    SHUTDOWN:
    1. Stop config watcher
    2. Close database connections
    """
    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting SLA service", extra={
        "version": settings.app_version,
        "environment": settings.environment,
        "timezone": settings.operating_timezone
    })

    init_database()

    if settings.environment == "development":
        try:
            await create_tables()
        except (OSError, SQLAlchemyError) as e:
            logger.warning("Database not available - running in degraded mode", extra={"error": str(e)})

    config_manager = SLAConfigManager()
    config_manager.load(settings.sla_config_path)
    if settings.sla_config_watch:
        config_manager.start_watching()

    app.state.sla_config_manager = config_manager
    app.state.settings = settings

    logger.info("SLA service started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down SLA service")
    config_manager.stop_watching()
    await close_database()
    logger.info("SLA service shutdown complete")


app = FastAPI(
    title="Helpdesk SLA API",
    description="""
    ## SLA Business-Hours Calculation & Policy Resolution

    Computes ticket due dates over a business calendar that skips nights,
    closed weekdays and holidays, and selects the most specific SLA policy
    for a ticket.

    **SLA endpoints** (`/sla`): due date calculation, business hours status,
    remaining time for a ticket, applicable policy, ticket targets and
    policy administration.

    **Holiday endpoints** (`/holidays`): range listing with recurring
    expansion, date check, single and bulk creation, update, deactivation
    and national holiday templates.

    Policy specificity, most to least specific:

    | Tier | Selectors |
    |------|-----------|
    | 1 | service item + priority |
    | 2 | service item |
    | 3 | department / service catalog + priority |
    | 4 | department / service catalog |
    | 5 | priority |
    | 6 | global |

    Within a tier, the policy matching more selectors wins, then a service
    catalog policy over a department one, then the newest.
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# === CORS Middleware ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# === Custom Middleware (from shared) ===
app.add_middleware(LoggingMiddleware)
app.add_middleware(CorrelationIDMiddleware)
register_exception_handlers(app)

# === Include Module Routers ===
app.include_router(sla_router)
app.include_router(holiday_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check(request: Request):
    """Health check endpoint for load balancers and orchestrators."""
    config_manager = getattr(request.app.state, "sla_config_manager", None)
    checks = {
        "sla_config": "loaded" if config_manager is not None else "not_loaded",
        "sla_config_watch": "running" if config_manager and config_manager.is_watching else "stopped",
        "timezone": settings.operating_timezone,
    }

    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "checks": checks
    }


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "service": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "sla": {
                "prefix": "/sla",
                "endpoints": [
                    "POST /sla/calculate - Calculate a due date",
                    "GET /sla/business-hours-status - Check business hours",
                    "POST /sla/calculate-remaining - Remaining SLA time for a ticket",
                    "GET /sla/policies/applicable/{ticketId} - Policy governing a ticket",
                    "GET /sla/tickets/{ticketId}/targets - SLA targets with fallback",
                    "GET /sla/policies - List policies",
                    "POST /sla/policies - Create policy",
                    "GET /sla/policies/{policyId} - Get policy",
                    "PUT /sla/policies/{policyId} - Update policy",
                    "DELETE /sla/policies/{policyId} - Delete or deactivate policy"
                ]
            },
            "holidays": {
                "prefix": "/holidays",
                "endpoints": [
                    "GET /holidays - Holidays in a date range",
                    "GET /holidays/check/{date} - Check a date",
                    "POST /holidays - Create holiday",
                    "POST /holidays/bulk - Create several holidays",
                    "GET /holidays/{holidayId} - Get holiday",
                    "PUT /holidays/{holidayId} - Update holiday",
                    "DELETE /holidays/{holidayId} - Deactivate holiday",
                    "GET /holidays/templates/{year} - National holiday template"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "helpdesk_sla.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
