"""Main FastAPI application."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from cascade.config import settings
from cascade.detection import routes as alert_routes
from cascade.detection.scheduler import alert_scheduler, setup_apscheduler
from cascade.insights import routes as insights_routes
from cascade.streams import routes as stream_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the alert scheduler when enabled."""
    scheduler = None
    if settings.ALERT_SCHEDULER_ENABLED:
        from apscheduler.schedulers.asyncio import AsyncIOScheduler

        scheduler = AsyncIOScheduler()
        setup_apscheduler(scheduler)
        scheduler.start()
        logger.info("Alert scheduler started")

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)


# Create FastAPI app
app = FastAPI(
    title="Cascade API",
    description="Streaming payroll - accrual read models and stream risk alerts",
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(stream_routes.router, prefix=f"{settings.API_V1_PREFIX}/streams", tags=["Streams"])
app.include_router(insights_routes.router, prefix=f"{settings.API_V1_PREFIX}/insights", tags=["Insights"])
app.include_router(alert_routes.router, prefix=f"{settings.API_V1_PREFIX}/alerts", tags=["Alerts"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Cascade API",
        "version": "0.1.0",
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "scheduler": alert_scheduler.get_status()}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cascade.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
