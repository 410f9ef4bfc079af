# backend/app/main.py
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
from typing import AsyncGenerator

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.routing import APIRoute

from .core.config import settings
from .core.constants import API_VERSION, BRAND_NAME
from .errors import register_error_handlers
from .middleware.prometheus_middleware import PrometheusMiddleware
from .routes.v1 import (
    availability as availability_v1,
    bookings as bookings_v1,
    health as health_v1,
    instructors as instructors_v1,
    prometheus as prometheus_v1,
    reminders as reminders_v1,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle application startup/shutdown without deprecated events."""
    logger.info(f"{BRAND_NAME} API starting up...")
    logger.info(f"Environment: {settings.environment}")
    if not settings.booking_cron_secret and not settings.service_role_key:
        logger.warning("No reminder credentials configured; POST /api/v1/bookings/reminders is closed")
    yield
    logger.info(f"{BRAND_NAME} API shutting down...")


def _unique_operation_id(route: APIRoute) -> str:
    methods = "_".join(sorted(m.lower() for m in route.methods or []))
    path = route.path_format.replace("/", "_").replace("{", "").replace("}", "").strip("_")
    name = (route.name or "operation").lower().replace(" ", "_")
    return f"{methods}__{path}__{name}".strip("_")


def create_app() -> FastAPI:
    """Build the API application with middleware, error handlers and v1 routes."""
    application = FastAPI(
        title=f"{BRAND_NAME} API",
        description="Availability, booking and reminder API for coaching brands",
        version=API_VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=app_lifespan,
        generate_unique_id_function=_unique_operation_id,
    )
    register_error_handlers(application)

    allow_origins = settings.allowed_origins
    if allow_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=allow_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "OPTIONS"],
            allow_headers=["*"],
        )
    if settings.prometheus_enabled:
        application.add_middleware(PrometheusMiddleware)

    api_v1 = APIRouter(prefix="/api/v1")
    # Note: Route order matters - static /bookings paths must come BEFORE /bookings/{booking_id}
    api_v1.include_router(availability_v1.router, prefix="/bookings")
    api_v1.include_router(reminders_v1.router, prefix="/bookings")
    api_v1.include_router(bookings_v1.router, prefix="/bookings")
    api_v1.include_router(instructors_v1.router, prefix="/instructors")
    application.include_router(api_v1)

    application.include_router(health_v1.router, prefix="/health")
    if settings.prometheus_enabled:
        application.include_router(prometheus_v1.router)
    return application


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
