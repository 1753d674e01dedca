"""
Car Valuation Engine: FastAPI Application Entry Point

POST /v1/valuations           → paid valuation, stored for refinement
GET  /v1/valuations/{id}      → stored valuation
POST /v1/valuations/preview   → all three tiers, nothing stored
POST /v1/admin/refine-*       → refinement triggers
GET  /docs                    → OpenAPI / Swagger UI
"""
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import make_asgi_app

from app.api.admin_endpoint import router as admin_router
from app.api.dependencies import build_refiner, get_market_signal_source, get_storage_gateway
from app.api.valuation_endpoint import router as valuation_router
from app.core.config import get_settings
from app.services.refinement_scheduler import build_refinement_scheduler

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.ConsoleRenderer() if get_settings().app_env == "development"
        else structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.make_filtering_bound_logger(get_settings().log_level),
)
logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("valuation_engine_starting", model_version=settings.valuation_model_version)

    scheduler = None
    if settings.refinement_scheduler_enabled:
        scheduler = build_refinement_scheduler(
            build_refiner(get_storage_gateway(), get_market_signal_source()),
            hour=settings.refinement_hour,
            minute=settings.refinement_minute,
            timezone=settings.refinement_timezone,
        )
        scheduler.start()
        logger.info("refinement_scheduler_started", job_count=len(scheduler.get_jobs()))

    yield

    if scheduler is not None:
        scheduler.shutdown(wait=False)
    logger.info("valuation_engine_shutting_down")


app = FastAPI(
    title="Car Valuation Engine",
    description="Used-car market valuations in three tiers, refined daily against market signals",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (customer web app + internal tools) ──
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)

# ── Prometheus metrics ──
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# ── Routes ──
app.include_router(valuation_router)
app.include_router(admin_router)


@app.get("/", include_in_schema=False)
async def root():
    return {
        "service": "car-valuation-engine",
        "version": "1.0.0",
        "docs": "/docs",
        "valuate": "POST /v1/valuations",
    }
