"""
Servicio Técnico - Main Application
====================================

Order lifecycle engine of a technical-service workshop.

Modules:
- Órdenes: status transitions, semáforo, alert sweep, notification bell

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Entities and value objects
- Infrastructure: Database, config watcher, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from servicio_tecnico.config import settings
from servicio_tecnico.core import ApplicationException
from servicio_tecnico.infrastructure.database import (
    close_database,
    create_tables,
    get_session_context,
    init_database,
)
from servicio_tecnico.ordenes.application import AlertaSweepService
from servicio_tecnico.ordenes.infrastructure import (
    AlertaSweepScheduler,
    SemaforoConfigManager,
    SQLAlchemyNotificationGateway,
    SQLAlchemyOrdenRepository,
)
from servicio_tecnico.ordenes.interfaces import (
    cron_router,
    ejecutar_barrido,
    notificaciones_router,
    ordenes_router,
    sweep_lock,
)
from servicio_tecnico.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    global_exception_handler,
)
from servicio_tecnico.shared.infrastructure.logging import get_logger, log_latency, setup_logging

logger = get_logger(__name__)

# Global service instances
alertas_scheduler: AlertaSweepScheduler | None = None


def build_sweep_job(config_manager: SemaforoConfigManager):
    """Create the scheduler job; each run gets its own session."""

    async def alertas_sweep_job() -> None:
        if sweep_lock.locked():
            logger.info("Alert sweep already running, skipping scheduled run")
            return

        async with sweep_lock:
            try:
                with log_latency(logger, "alertas_sweep", trigger="scheduler"):
                    async with get_session_context() as session:
                        service = AlertaSweepService(
                            SQLAlchemyOrdenRepository(session),
                            SQLAlchemyNotificationGateway(session),
                            config_manager
                        )
                        await ejecutar_barrido(service, settings.alertas_sweep_timeout_seconds)
            except Exception as e:
                logger.error(
                    "Scheduled alert sweep failed",
                    extra={"error_type": type(e).__name__, "error": str(e)}
                )

    return alertas_sweep_job


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    STARTUP:
    1. Setup structured logging
    2. Initialize database and create tables
    3. Load semáforo thresholds and watch the file
    4. Start the alert sweep scheduler

    SHUTDOWN:
    1. Stop the scheduler
    2. Stop the config watcher
    3. Close database connections
    """
    global alertas_scheduler

    # === STARTUP ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Servicio Técnico", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    logger.info("Initializing database")
    init_database()

    # Note: If database is not available, the server will start but
    # database-dependent endpoints will fail
    try:
        await create_tables()
    except Exception as e:
        logger.warning(
            "Database not available - running in degraded mode",
            extra={"error": str(e)}
        )

    logger.info("Loading semáforo configuration")
    config_manager = SemaforoConfigManager()
    config_manager.load(settings.semaforo_config_path)
    config_manager.start_watching()
    app.state.semaforo_config = config_manager

    alertas_scheduler = AlertaSweepScheduler(
        interval_seconds=settings.alertas_sweep_interval_seconds
    )
    await alertas_scheduler.start(build_sweep_job(config_manager))

    logger.info("Servicio Técnico started successfully")

    yield  # Application runs here

    # === SHUTDOWN ===
    logger.info("Shutting down Servicio Técnico")

    await alertas_scheduler.stop()
    config_manager.stop_watching()
    await close_database()

    logger.info("Servicio Técnico shutdown complete")


app = FastAPI(
    title="Servicio Técnico API",
    description="""
    ## Order lifecycle engine

    ### 🚦 Semáforo
    - `GET /ordenes/{id}/semaforo` - Live color of an order
    - `GET /ordenes/semaforo/resumen` - Active orders per color

    ### 🔁 Status
    - `GET /ordenes/transiciones` - Transition table
    - `PATCH /ordenes/{id}/estado` - Validated status change

    ### 🔔 Alerts & notifications
    - `GET /cron/alertas` - Run the alert sweep (Vercel Cron)
    - `GET /notificaciones` - Notification bell of the caller
    - `PATCH /notificaciones/{id}` - Acknowledge one
    - `POST /notificaciones/marcar-todas` - Acknowledge all

    | Color | Meaning |
    |-------|---------|
    | 🔴 ROJO | Ready for pickup more than 5 days |
    | 🟠 NARANJA | Waiting for parts |
    | 🟡 AMARILLO | Diagnosis/quote without progress for more than 72h |
    | 🔵 AZUL | Received less than 24h ago |
    | 🟢 VERDE | On track |
    """,
    version=settings.app_version,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)
app.state.settings = settings

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
app.add_exception_handler(ApplicationException, application_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# === Include Module Routers ===
app.include_router(cron_router)
app.include_router(ordenes_router)
app.include_router(notificaciones_router)


# === Health Check Endpoint ===

@app.get("/health", tags=["Health"])
async def health_check():
    """
    Health check endpoint for load balancers and orchestrators.

    Reports config and scheduler state.
    """
    checks = {
        "semaforo_config": "loaded" if getattr(app.state, "semaforo_config", None) else "not_loaded",
        "alertas_scheduler": (
            "running" if alertas_scheduler and alertas_scheduler.is_running else "stopped"
        ),
        "alertas_sweep": "running" if sweep_lock.locked() else "idle",
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
        "service": "Servicio Técnico",
        "version": settings.app_version,
        "architecture": "Clean Architecture / Modular Monolith",
        "docs": "/docs",
        "health": "/health",
        "modules": {
            "ordenes": {
                "endpoints": [
                    "GET /cron/alertas - Run alert sweep",
                    "GET /ordenes/transiciones - Transition table",
                    "GET /ordenes/semaforo/resumen - Semáforo summary",
                    "GET /ordenes/{id}/semaforo - Order semáforo",
                    "PATCH /ordenes/{id}/estado - Change status",
                    "GET /notificaciones - Notification bell",
                    "PATCH /notificaciones/{id} - Acknowledge notification",
                    "POST /notificaciones/marcar-todas - Acknowledge all"
                ]
            }
        }
    }


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "servicio_tecnico.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
