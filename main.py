# main.py
import logging
import os
from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from api import moods, reports
from api.dependencies import build_report_service, get_supabase_service_client
from api.middleware import ObservabilityMiddleware
from api.rate_limiter import limiter, rate_limit_exceeded_handler
from jobs.weekly_reports import WeeklyReportScheduler
from services.auth_cache import get_auth_cache
from services.errors import ServiceError

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("mood-api")

API_VERSION = "1.0.0"


async def generate_current_weekly_report():
    client = await get_supabase_service_client()
    return await build_report_service(client).generate_weekly_report()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: arm the weekly report scheduler.
    Shutdown: stop the scheduler and close the auth cache connection.
    """
    logger.info("=== Application Startup ===")

    supabase_url = os.getenv("SUPABASE_URL", "")
    service_key = os.getenv("SUPABASE_SERVICE_KEY", "")
    logger.info(
        "SUPABASE_URL=%s SERVICE_PREFIX=%s",
        supabase_url or "(not set)",
        service_key[:8] if service_key else "(not set)",
    )

    scheduler = WeeklyReportScheduler(generate_current_weekly_report)
    scheduler.start()
    app.state.scheduler = scheduler
    logger.info("=== Application Ready ===")

    yield

    logger.info("=== Application Shutdown ===")
    scheduler.stop()
    await get_auth_cache().close()
    logger.info("=== Shutdown Complete ===")


app = FastAPI(
    title="Mood Reports API",
    description="Mood tracking with weekly reports, patient evolution and risk-based grouping.",
    version=API_VERSION,
    lifespan=lifespan
)

app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def _rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    return rate_limit_exceeded_handler(request, exc)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError):
    log = logger.error if exc.status_code >= 500 else logger.info
    log("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception(
        "Unhandled exception: %s %s",
        request.method,
        request.url,
        exc_info=True
    )
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


def cors_origins() -> List[str]:
    """Local dev frontends plus any comma-separated ``CORS_ORIGINS``."""
    origins = ["http://localhost:3000", "http://localhost:5173"]
    extra = (origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(","))
    origins.extend(origin for origin in extra if origin and origin not in origins)
    return origins


ALLOWED_ORIGINS = cors_origins()
logger.info("CORS allowed origins: %s", ALLOWED_ORIGINS)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type", "Accept", "X-Request-ID"],
)

app.add_middleware(ObservabilityMiddleware)

app.include_router(reports.router)
app.include_router(moods.router)


@app.get("/", tags=["Health Check"])
def read_root():
    return {"message": f"Mood Reports API v{API_VERSION} is running", "status": "healthy"}


@app.get("/health", tags=["Health Check"])
def health_check(request: Request):
    scheduler = getattr(request.app.state, "scheduler", None)
    next_run = scheduler.next_run_at if scheduler else None
    return {
        "status": "healthy",
        "version": API_VERSION,
        "scheduler": {
            "state": scheduler.state.value if scheduler else "idle",
            "nextRunAt": next_run.isoformat() if next_run else None,
        },
    }
