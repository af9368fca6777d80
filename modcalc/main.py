"""FastAPI app entry point for the ModCalc performance estimator."""

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.exceptions import HTTPException as StarletteHTTPException

from modcalc.api.limiter import limiter
from modcalc.api.routes import router
from modcalc.core.config import get_settings, validate_settings
from modcalc.core.logging import (
    log_db_query,
    log_external_call,
    log_request,
    log_response,
    logger,
    setup_logging,
)
from modcalc.services.db import get_supabase_client

# Validate settings on startup
try:
    validate_settings()
except ValueError as e:
    logger.error(f"Configuration error: {e}")
    raise

settings = get_settings()
setup_logging(settings.log_level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup / shutdown."""
    logger.info("Starting ModCalc API...")
    if not settings.ai_enabled:
        logger.info("MISTRAL_API_KEY not set - AI notes disabled")
    yield
    logger.info("Shutting down...")


app = FastAPI(
    title="ModCalc API",
    description="Estimate vehicle performance after aftermarket modifications",
    version="1.0.0",
    lifespan=lifespan,
)

# State for limiter
app.state.limiter = limiter

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# -----------------------------------------------------------------------------
# Error Handlers: every error body is {"error": <message>}
# -----------------------------------------------------------------------------


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(f"Rate limit exceeded client={get_remote_address(request)}")
    return JSONResponse(
        status_code=429,
        content={"error": "Rate limit exceeded. Try again later."},
    )


@app.exception_handler(RequestValidationError)
async def validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    in_body = any((err.get("loc") or ("",))[0] == "body" for err in errors)
    return JSONResponse(
        status_code=400,
        content={
            "error": "Invalid body" if in_body else "Invalid request",
            "detail": [
                {"loc": list(err.get("loc") or ()), "msg": err.get("msg", "")}
                for err in errors
            ],
        },
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    log_request(request.method, request.url.path)

    response = await call_next(request)

    duration_ms = (time.time() - start) * 1000
    log_response(request.method, request.url.path, response.status_code, duration_ms)

    return response


# Routes
app.include_router(router, prefix="/api")


# -----------------------------------------------------------------------------
# Health
# -----------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    supabase: dict[str, Any] | None = None


def _check_supabase() -> dict[str, Any]:
    start = time.time()
    try:
        get_supabase_client().table("cars").select("id").limit(1).execute()
        duration_ms = (time.time() - start) * 1000
        log_db_query("health_check", "cars", duration_ms)
        return {"status": "healthy", "latency_ms": round(duration_ms, 2)}
    except Exception as e:
        duration_ms = (time.time() - start) * 1000
        log_external_call("supabase", "health_check", False, duration_ms)
        return {
            "status": "unhealthy",
            "error": str(e),
            "latency_ms": round(duration_ms, 2),
        }


@app.get("/health", response_model=HealthResponse, response_model_exclude_none=True)
async def health(detailed: bool = False):
    """
    Health check endpoint.

    - Basic: Returns {"status": "ok"}
    - Detailed (?detailed=true): Checks Supabase connectivity
    """
    if not detailed:
        return {"status": "ok"}

    supabase_health = await asyncio.to_thread(_check_supabase)
    overall = "ok" if supabase_health["status"] == "healthy" else "degraded"
    return {"status": overall, "supabase": supabase_health}
