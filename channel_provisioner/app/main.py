"""
FastAPI application entry point.

Run with:
    uvicorn channel_provisioner.app.main:app --reload --port 8000

Or from the project root:
    python -m uvicorn channel_provisioner.app.main:app --reload
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# ── Core infrastructure ──
from channel_provisioner.app.core.config import settings
from channel_provisioner.app.core.logging_config import setup_logging, get_logger
from channel_provisioner.app.core.errors import register_error_handlers
from channel_provisioner.app.core.middleware import RequestLoggingMiddleware
from channel_provisioner.app.core.health import run_health_check

# ── API routers ──
from channel_provisioner.app.api.v1.channels import router as channel_router

# ── Initialise logging ──
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage startup and shutdown events."""
    logger.info(
        "Starting %s v%s [%s] platform=%s",
        settings.APP_NAME, settings.APP_VERSION, settings.ENVIRONMENT,
        settings.PLATFORM_PROVIDER,
    )
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Provisions SMTP notification channels for the monitoring platform: "
        "fresh delivery endpoints or clones of existing channels, with "
        "HTML or plain-text alert templates, optional alternate console "
        "links, priority headers and what-if previews."
    ),
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ── Middleware stack (order matters — outermost first) ──

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS if not settings.CORS_ALLOW_ALL else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

register_error_handlers(app)

app.include_router(channel_router)


@app.get("/", tags=["root"])
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "platform_provider": settings.PLATFORM_PROVIDER,
        "modules": [
            "url-normalizer",
            "content-templates",
            "settings-resolver",
            "channel-assembler",
            "provisioning",
        ],
        "docs": "/docs",
    }


@app.get("/health", tags=["health"])
async def health_check():
    """Deep health probe — checks all subsystems."""
    report = await run_health_check()
    return report.to_dict()


@app.get("/health/live", tags=["health"])
async def liveness():
    """Kubernetes liveness probe — is the process alive?"""
    return {"status": "alive"}


@app.get("/health/ready", tags=["health"])
async def readiness():
    """Kubernetes readiness probe — can we provision channels?"""
    report = await run_health_check()
    if report.status.value == "unhealthy":
        return JSONResponse(status_code=503, content=report.to_dict())
    return report.to_dict()
